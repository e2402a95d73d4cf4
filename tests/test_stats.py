"""Unit tests for engine.stats and engine.measurements."""

import unittest

from engine.errors import StatisticsUnderflow
from engine.measurements import Direction, MeasurementSet, SingleMeasurement
from engine.stats import (
    LatencyStats,
    TierSummary,
    calculate_jitter,
    calculate_percentile,
    format_latency,
    format_speed,
    overall_average,
)
from engine.tiers import K100, M1

from fakes import make_summary


class TestJitter(unittest.TestCase):
    def test_uses_collection_order(self):
        # Sorted this would be 5.0; consecutive differences are 10, 5, 10
        self.assertAlmostEqual(calculate_jitter([10.0, 20.0, 15.0, 25.0]), 25.0 / 3)

    def test_constant(self):
        self.assertEqual(calculate_jitter([10.0, 10.0, 10.0]), 0.0)

    def test_single_sample(self):
        self.assertEqual(calculate_jitter([42.0]), 0.0)

    def test_empty(self):
        self.assertEqual(calculate_jitter([]), 0.0)


class TestPercentile(unittest.TestCase):
    def test_median_interpolates(self):
        self.assertAlmostEqual(calculate_percentile([10, 20, 30, 40], 50), 25.0)

    def test_bounds(self):
        data = [5.0, 1.0, 4.0, 2.0, 3.0]
        self.assertEqual(calculate_percentile(data, 0), 1.0)
        self.assertEqual(calculate_percentile(data, 100), 5.0)

    def test_p10(self):
        self.assertAlmostEqual(calculate_percentile([10, 20, 30, 40], 10), 13.0)

    def test_unsorted_input(self):
        self.assertAlmostEqual(calculate_percentile([40, 10, 30, 20], 50), 25.0)

    def test_monotonic(self):
        data = [3.2, 9.1, 0.4, 7.7, 5.5, 1.8, 6.3]
        values = [calculate_percentile(data, p) for p in (0, 10, 25, 50, 75, 90, 100)]
        self.assertEqual(values, sorted(values))

    def test_underflow(self):
        with self.assertRaises(StatisticsUnderflow):
            calculate_percentile([1.0], 50)
        with self.assertRaises(StatisticsUnderflow):
            calculate_percentile([], 50)

    def test_out_of_range(self):
        with self.assertRaises(ValueError):
            calculate_percentile([1.0, 2.0], 101)


class TestLatencyStats(unittest.TestCase):
    def test_from_samples(self):
        stats = LatencyStats.from_samples([10.0, 20.0, 15.0, 25.0])
        self.assertEqual(stats.min, 10.0)
        self.assertEqual(stats.max, 25.0)
        self.assertAlmostEqual(stats.avg, 17.5)
        self.assertAlmostEqual(stats.median, 17.5)
        self.assertAlmostEqual(stats.jitter, 25.0 / 3)
        self.assertEqual(stats.samples, (10.0, 20.0, 15.0, 25.0))
        self.assertEqual(stats.count, 4)

    def test_single_sample(self):
        stats = LatencyStats.from_samples([12.0])
        self.assertEqual(stats.median, 12.0)
        self.assertEqual(stats.jitter, 0.0)

    def test_empty(self):
        with self.assertRaises(StatisticsUnderflow):
            LatencyStats.from_samples([])

    def test_to_dict(self):
        d = LatencyStats.from_samples([10.0, 12.0]).to_dict()
        self.assertEqual(d["avg_latency_ms"], 11.0)
        self.assertEqual(d["jitter_ms"], 2.0)
        self.assertEqual(d["latency_measurements"], [10.0, 12.0])


class TestMeasurements(unittest.TestCase):
    def test_speed(self):
        m = SingleMeasurement(Direction.DOWNLOAD, M1, 1_000_000, 0.08)
        self.assertAlmostEqual(m.speed_mbps, 100.0)

    def test_non_positive_elapsed(self):
        with self.assertRaises(ValueError):
            SingleMeasurement(Direction.DOWNLOAD, M1, 1_000_000, 0.0)

    def test_set_rejects_other_tier(self):
        mset = MeasurementSet(Direction.UPLOAD, K100)
        with self.assertRaises(ValueError):
            mset.add(SingleMeasurement(Direction.UPLOAD, M1, 1_000_000, 0.1))
        with self.assertRaises(ValueError):
            mset.add(SingleMeasurement(Direction.DOWNLOAD, K100, 100_000, 0.1))
        self.assertEqual(len(mset), 0)

    def test_set_elapsed(self):
        mset = MeasurementSet(Direction.UPLOAD, K100)
        for seconds in (0.1, 0.2, 0.3):
            mset.add(SingleMeasurement(Direction.UPLOAD, K100, 100_000, seconds))
        self.assertAlmostEqual(mset.total_elapsed, 0.6)
        self.assertAlmostEqual(mset.mean_elapsed, 0.2)


class TestTierSummary(unittest.TestCase):
    def test_order_statistics(self):
        # 1MB in 0.08s, 0.04s, 0.02s, 0.01s -> 100, 200, 400, 800 Mbps
        s = make_summary(Direction.DOWNLOAD, M1, [0.08, 0.04, 0.02, 0.01])
        self.assertEqual(s.count, 4)
        self.assertAlmostEqual(s.min, 100.0)
        self.assertAlmostEqual(s.max, 800.0)
        self.assertAlmostEqual(s.median, 300.0)
        self.assertAlmostEqual(s.mean, 375.0)
        self.assertLessEqual(s.min, s.p10)
        self.assertLessEqual(s.p10, s.q1)
        self.assertLessEqual(s.q1, s.median)
        self.assertLessEqual(s.median, s.q3)
        self.assertLessEqual(s.q3, s.p90)
        self.assertLessEqual(s.p90, s.max)
        self.assertAlmostEqual(s.total_elapsed, 0.15)

    def test_median_odd_count(self):
        # 100, 200, 400, 800, 1600 Mbps: the middle value
        s = make_summary(Direction.UPLOAD, M1, [0.08, 0.04, 0.02, 0.01, 0.005])
        self.assertEqual(s.count, 5)
        self.assertAlmostEqual(s.median, 400.0)
        self.assertAlmostEqual(s.q1, 200.0)
        self.assertAlmostEqual(s.q3, 800.0)

    def test_single_measurement_underflow(self):
        with self.assertRaises(StatisticsUnderflow):
            make_summary(Direction.DOWNLOAD, M1, [0.08])

    def test_to_dict(self):
        d = make_summary(Direction.UPLOAD, K100, [0.08, 0.08]).to_dict()
        self.assertEqual(d["test_type"], "Upload")
        self.assertEqual(d["payload_size"], 100_000)
        self.assertEqual(d["count"], 2)
        self.assertEqual(d["avg"], 10.0)

    def test_from_empty_set(self):
        with self.assertRaises(StatisticsUnderflow):
            TierSummary.from_measurements(MeasurementSet(Direction.DOWNLOAD, K100))


class TestOverallAverage(unittest.TestCase):
    def test_weighted_by_count(self):
        a = make_summary(Direction.DOWNLOAD, K100, [0.08, 0.08])  # 10 Mbps x2
        b = make_summary(Direction.DOWNLOAD, M1, [0.08] * 4)       # 100 Mbps x4
        self.assertAlmostEqual(overall_average([a, b]), 70.0)

    def test_empty(self):
        with self.assertRaises(StatisticsUnderflow):
            overall_average([])


class TestFormatting(unittest.TestCase):
    def test_speed(self):
        self.assertEqual(format_speed(95.5), "95.50 Mbps")
        self.assertEqual(format_speed(1500), "1.50 Gbps")

    def test_latency(self):
        self.assertEqual(format_latency(12.34), "12.3 ms")
        self.assertEqual(format_latency(1500), "1.50 s")


if __name__ == "__main__":
    unittest.main()
