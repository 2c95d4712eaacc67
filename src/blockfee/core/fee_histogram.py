"""Fee rate histogram used as the fee models' mempool feature."""

from __future__ import annotations

import math
import numbers
from typing import Iterable, List

from blockfee.core.constants import HISTOGRAM_BUCKET_COUNT, HISTOGRAM_MAX_VALUE
from blockfee.core.fee_exceptions import HistogramConfigError


class FeeHistogram:
    """Counts fee observations into ``bucket_count`` equal-width buckets.

    Bucket ``i`` covers ``[i * width, (i + 1) * width)`` where
    ``width = max_value / bucket_count``. A rate sitting exactly on an edge
    belongs to the bucket that edge opens. Rates at or above ``max_value``
    are counted in the last bucket; negative and NaN rates in the first.
    """

    def __init__(
        self,
        bucket_count: int = HISTOGRAM_BUCKET_COUNT,
        max_value: float = HISTOGRAM_MAX_VALUE,
    ) -> None:
        if isinstance(bucket_count, bool) or not isinstance(bucket_count, numbers.Integral) or bucket_count <= 0:
            raise HistogramConfigError(
                f"bucket_count must be a positive integer, got {bucket_count!r}",
                details={"bucket_count": bucket_count},
            )
        if (
            isinstance(max_value, bool)
            or not isinstance(max_value, numbers.Real)
            or not math.isfinite(max_value)
            or max_value <= 0
        ):
            raise HistogramConfigError(
                f"max_value must be a positive finite number, got {max_value!r}",
                details={"max_value": max_value},
            )

        self.bucket_count = int(bucket_count)
        self.max_value = float(max_value)

    @property
    def bucket_width(self) -> float:
        return self.max_value / self.bucket_count

    def bucket_index(self, rate: float) -> int:
        """Return the bucket a single fee rate is counted in."""
        if math.isnan(rate) or rate < 0:
            return 0
        if rate >= self.max_value:
            return self.bucket_count - 1
        # Division can round up to bucket_count just below max_value
        return min(math.floor(rate / self.bucket_width), self.bucket_count - 1)

    def build(self, observations: Iterable[float]) -> List[int]:
        """Count ``observations`` per bucket. Empty input gives all zeros."""
        buckets = [0] * self.bucket_count
        for rate in observations:
            buckets[self.bucket_index(float(rate))] += 1
        return buckets

    def __repr__(self) -> str:
        return f"FeeHistogram(bucket_count={self.bucket_count}, max_value={self.max_value})"


__all__ = ["FeeHistogram"]
