"""Unit tests for the time_measurement module."""

import time
import unittest

from routebalance.utils.time_measurement import TimeMeasurement, TimeRecorder


class TestTimeMeasurement(unittest.TestCase):
    """Test cases for TimeMeasurement and TimeRecorder classes."""

    def test_recorder_initialization(self):
        recorder = TimeRecorder()
        self.assertEqual(recorder.measurements, [])

    def test_simple_sleep_block(self):
        recorder = TimeRecorder()
        with recorder.measure("sleep_test"):
            time.sleep(0.05)

        self.assertEqual(len(recorder.measurements), 1)
        measurement = recorder.measurements[0]
        self.assertIsInstance(measurement, TimeMeasurement)
        self.assertEqual(measurement.span_name, "sleep_test")
        self.assertGreaterEqual(measurement.wall_time, 0.05)
        self.assertLess(measurement.process_user_time, 0.1)

    def test_measurement_recorded_on_exception(self):
        recorder = TimeRecorder()
        with self.assertRaises(RuntimeError):
            with recorder.measure("failing"):
                raise RuntimeError("boom")
        self.assertEqual([m.span_name for m in recorder.measurements], ["failing"])

    def test_nested_spans_complete_inner_first(self):
        recorder = TimeRecorder()
        with recorder.measure("global"):
            with recorder.measure("iteration_1_normal"):
                pass
            with recorder.measure("iteration_2_normal"):
                pass
        names = [m.span_name for m in recorder.measurements]
        self.assertEqual(names, ["iteration_1_normal", "iteration_2_normal", "global"])

    def test_total_by_prefix(self):
        recorder = TimeRecorder()
        recorder.measurements = [
            TimeMeasurement("iteration_1_normal", 1.5, 0, 0, 0, 0),
            TimeMeasurement("iteration_1_recovery", 2.0, 0, 0, 0, 0),
            TimeMeasurement("global", 10.0, 0, 0, 0, 0),
        ]
        self.assertAlmostEqual(recorder.total("iteration_"), 3.5)
        self.assertAlmostEqual(recorder.total(), 13.5)


if __name__ == "__main__":
    unittest.main()
