import logging
import threading
import unittest

import numpy as np

from yolo_overlay.config import DecodeConfig
from yolo_overlay.context import DecodeContext, FrameGate
from yolo_overlay.log import setup_logging
from yolo_overlay.runtime import DetectionStream, resolve_path
from yolo_overlay.types import ScoreMode


def _one_box_tensor() -> np.ndarray:
    ch = np.zeros((1, 84, 4), dtype=np.float32)
    ch[0, 0:4, 0] = [0.5, 0.5, 0.2, 0.2]
    ch[0, 4 + 2, 0] = 0.9
    return ch


class _FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestFrameGate(unittest.TestCase):
    def test_single_flight(self) -> None:
        gate = FrameGate()
        self.assertTrue(gate.try_acquire())
        self.assertTrue(gate.busy)
        self.assertFalse(gate.try_acquire())
        gate.release()
        self.assertFalse(gate.busy)
        self.assertTrue(gate.try_acquire())
        gate.release()


class TestDecodeContext(unittest.TestCase):
    def test_log_throttling(self) -> None:
        clock = _FakeClock()
        ctx = DecodeContext(log_interval_s=1.0, clock=clock)
        self.assertTrue(ctx.should_log())
        clock.now = 0.5
        self.assertFalse(ctx.should_log())
        clock.now = 1.0
        self.assertTrue(ctx.should_log())
        clock.now = 1.9
        self.assertFalse(ctx.should_log())

    def test_reset(self) -> None:
        ctx = DecodeContext()
        ctx.note_frame(dropped=True)
        ctx.note_frame(dropped=False)
        self.assertEqual((ctx.frames_seen, ctx.frames_dropped), (2, 1))
        ctx.reset()
        self.assertEqual((ctx.frames_seen, ctx.frames_dropped, ctx.frames_decoded), (0, 0, 0))
        self.assertIsNone(ctx.last_diagnostics)

    def test_negative_interval_rejected(self) -> None:
        with self.assertRaises(ValueError):
            DecodeContext(log_interval_s=-1.0)


class TestDetectionStream(unittest.TestCase):
    def test_submit_decodes_frame(self) -> None:
        frames = []

        def infer(frame):
            frames.append(frame)
            return _one_box_tensor()

        stream = DetectionStream(infer, DecodeConfig(score_mode=ScoreMode.CLASS_ONLY))
        result = stream.submit("frame-0")

        self.assertEqual(frames, ["frame-0"])
        self.assertEqual(len(result.detections), 1)
        self.assertEqual(result.detections[0].label, "car")
        self.assertEqual(stream.ctx.frames_seen, 1)
        self.assertEqual(stream.ctx.frames_decoded, 1)
        self.assertFalse(stream.ctx.gate.busy)

    def test_flat_output_with_shape(self) -> None:
        tensor = _one_box_tensor()
        stream = DetectionStream(lambda _: (tensor.ravel().tolist(), tensor.shape))
        result = stream("frame")
        self.assertEqual(len(result.detections), 1)

    def test_frame_dropped_while_busy(self) -> None:
        nested = []

        def infer(frame):
            # A frame arriving mid-decode must be dropped, not queued.
            nested.append(stream.submit("late-frame"))
            return _one_box_tensor()

        stream = DetectionStream(infer)
        result = stream.submit("frame")

        self.assertIsNotNone(result)
        self.assertEqual(nested, [None])
        self.assertEqual(stream.ctx.frames_seen, 2)
        self.assertEqual(stream.ctx.frames_dropped, 1)
        self.assertEqual(stream.ctx.frames_decoded, 1)

    def test_concurrent_submit_is_dropped(self) -> None:
        started = threading.Event()
        release = threading.Event()

        def infer(frame):
            started.set()
            release.wait(timeout=5.0)
            return _one_box_tensor()

        stream = DetectionStream(infer)
        results = []
        worker = threading.Thread(target=lambda: results.append(stream.submit("slow")))
        worker.start()
        try:
            self.assertTrue(started.wait(timeout=5.0))
            self.assertIsNone(stream.submit("fast"))
        finally:
            release.set()
            worker.join(timeout=5.0)

        self.assertEqual(len(results), 1)
        self.assertIsNotNone(results[0])
        self.assertEqual(stream.ctx.frames_dropped, 1)

    def test_bad_tensor_yields_empty_result(self) -> None:
        stream = DetectionStream(lambda _: np.zeros((1, 10, 9000), dtype=np.float32))
        result = stream.submit("frame")
        self.assertEqual(result.detections, ())
        self.assertEqual(result.diagnostics.failure, "unsupported_shape")

    def test_inference_error_propagates_and_releases_gate(self) -> None:
        def infer(frame):
            raise RuntimeError("interpreter failed")

        stream = DetectionStream(infer)
        with self.assertRaises(RuntimeError):
            stream.submit("frame")
        self.assertFalse(stream.ctx.gate.busy)
        self.assertIsNotNone(DetectionStream(lambda _: _one_box_tensor(), ctx=stream.ctx).submit("next"))

    def test_info_log_is_throttled(self) -> None:
        clock = _FakeClock()
        stream = DetectionStream(lambda _: _one_box_tensor(), ctx=DecodeContext(log_interval_s=10.0, clock=clock))
        with self.assertLogs("yolo_overlay.runtime", level="INFO") as logs:
            stream.submit("a")
            stream.submit("b")
            clock.now = 11.0
            stream.submit("c")
        self.assertEqual(len(logs.records), 2)

    def test_log_throttle_checked_while_gate_held(self) -> None:
        gate_states = []
        ctx = DecodeContext()

        def clock() -> float:
            gate_states.append(ctx.gate.busy)
            return 0.0

        ctx.clock = clock
        DetectionStream(lambda _: _one_box_tensor(), ctx=ctx).submit("frame")
        self.assertEqual(gate_states, [True])


class TestSetupLogging(unittest.TestCase):
    def test_configures_root_logger(self) -> None:
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        self.addCleanup(setattr, root, "handlers", saved_handlers)
        self.addCleanup(root.setLevel, saved_level)

        setup_logging("debug")
        self.assertEqual(root.level, logging.DEBUG)
        self.assertEqual(len(root.handlers), 1)


class TestResolvePath(unittest.TestCase):
    def test_absolute_path_unchanged(self) -> None:
        p = resolve_path("/tmp/tensor.npy")
        self.assertEqual(str(p), "/tmp/tensor.npy")

    def test_relative_to_explicit_root(self) -> None:
        p = resolve_path("tensor.npy", root="/tmp")
        self.assertEqual(p.name, "tensor.npy")
        self.assertTrue(p.is_absolute())


if __name__ == "__main__":
    unittest.main()
