import numpy as np
import pytest

from blockfee.core.fee_exceptions import HistogramConfigError
from blockfee.core.fee_histogram import FeeHistogram


class TestFeeHistogramConfig:
    """Histogram configuration validation."""

    def test_defaults_match_model_schema(self):
        histogram = FeeHistogram()
        assert histogram.bucket_count == 50
        assert histogram.max_value == 500.0
        assert histogram.bucket_width == 10.0

    def test_accepts_numpy_scalars(self):
        histogram = FeeHistogram(np.int64(4), np.float32(2.0))

        assert histogram.bucket_count == 4
        assert histogram.max_value == 2.0
        assert histogram.build([0.0, 1.9]) == [1, 0, 0, 1]

    @pytest.mark.parametrize("bucket_count", [0, -1, 2.5, True, "50"])
    def test_rejects_invalid_bucket_count(self, bucket_count):
        with pytest.raises(HistogramConfigError):
            FeeHistogram(bucket_count, 500.0)

    @pytest.mark.parametrize("max_value", [0.0, -10.0, float("inf"), float("nan"), True, "500"])
    def test_rejects_invalid_max_value(self, max_value):
        with pytest.raises(HistogramConfigError) as exc_info:
            FeeHistogram(50, max_value)
        assert exc_info.value.recoverable is False


class TestFeeHistogramBuild:
    """Bucketing of fee observations."""

    def test_empty_input_is_all_zero(self):
        assert FeeHistogram().build([]) == [0] * 50

    def test_counts_observations_per_bucket(self):
        buckets = FeeHistogram().build([1.0, 2.0, 9.99, 15.0, 42.0])

        assert len(buckets) == 50
        assert buckets[0] == 3
        assert buckets[1] == 1
        assert buckets[4] == 1
        assert sum(buckets) == 5

    def test_edge_belongs_to_upper_bucket(self):
        histogram = FeeHistogram()

        assert histogram.bucket_index(0.0) == 0
        assert histogram.bucket_index(10.0) == 1
        assert histogram.bucket_index(19.999) == 1
        assert histogram.bucket_index(20.0) == 2
        assert histogram.bucket_index(490.0) == 49

    def test_edge_assignment_is_stable_across_runs(self):
        histogram = FeeHistogram()
        first = histogram.build([10.0, 20.0, 30.0])
        for _ in range(5):
            assert histogram.build([10.0, 20.0, 30.0]) == first

    @pytest.mark.parametrize("rate", [499.999, 500.0, 500.0001, 10_000.0, float("inf")])
    def test_max_value_and_above_land_in_last_bucket(self, rate):
        assert FeeHistogram().bucket_index(rate) == 49

    @pytest.mark.parametrize("rate", [-0.5, -1000.0, float("nan")])
    def test_negative_and_nan_land_in_first_bucket(self, rate):
        assert FeeHistogram().bucket_index(rate) == 0

    def test_order_independent(self):
        rates = [3.5, 120.0, 77.7, 0.2, 500.0, 33.0, 33.0]
        histogram = FeeHistogram()
        assert histogram.build(rates) == histogram.build(list(reversed(rates)))
        assert histogram.build(rates) == histogram.build(sorted(rates))

    def test_accepts_generators(self):
        buckets = FeeHistogram(10, 100.0).build(rate for rate in (5.0, 15.0, 15.0))
        assert buckets[:3] == [1, 2, 0]

    def test_custom_configuration(self):
        histogram = FeeHistogram(4, 2.0)
        assert histogram.bucket_width == 0.5
        assert histogram.build([0.0, 0.5, 1.25, 1.9, 2.0, 7.0]) == [1, 1, 1, 3]
