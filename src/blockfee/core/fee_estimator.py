"""
Model-backed fee rate estimation.

Two regression models ship with the package: a "low" model trained for
confirmation within one or two blocks and a "high" model for every longer
target. Each estimate assembles the models' named feature vector from the
requested target, the UTC calendar position of the evaluation time, the time
since the last block and a histogram of recently observed fee rates.
"""

from __future__ import annotations

import logging
import numbers
import time
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

import numpy as np

from blockfee.core.config import metrics_enabled_from_env
from blockfee.core.constants import (
    BUCKET_FEATURE_PREFIX,
    FEATURE_CONFIRMS_IN,
    FEATURE_DAY_OF_WEEK,
    FEATURE_DELTA_LAST,
    FEATURE_HOUR,
    HIGH_MODEL_ARTIFACT,
    HISTOGRAM_BUCKET_COUNT,
    HISTOGRAM_MAX_VALUE,
    LOW_MODEL_ARTIFACT,
    LOW_MODEL_MAX_TARGET,
    MAX_EPOCH_SECONDS,
    MODEL_BUCKET_FEATURES,
)
from blockfee.core.fee_exceptions import FeeModelError, InvalidEstimateRequestError
from blockfee.core.fee_histogram import FeeHistogram
from blockfee.core.fee_metrics import record_estimate, record_estimate_error
from blockfee.core.model_data import ModelData

logger = logging.getLogger(__name__)

DEFAULT_MODELS_DIR = Path(__file__).resolve().parent.parent / "models"


class ModelChoice(str, Enum):
    LOW = "low"
    HIGH = "high"


def _is_integer(value: object) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def _is_real(value: object) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _check_epoch_seconds(name: str, value: object) -> int:
    if not _is_integer(value) or not 0 <= value <= MAX_EPOCH_SECONDS:
        raise InvalidEstimateRequestError(
            f"{name} must be whole epoch seconds in [0, {MAX_EPOCH_SECONDS}], got {value!r}",
            details={name: repr(value)},
        )
    return int(value)


def _bucket_features(fee_buckets: Sequence[float]) -> List[np.float32]:
    try:
        count = len(fee_buckets)
    except TypeError as exc:
        raise InvalidEstimateRequestError(
            f"fee_buckets must be a sequence, got {type(fee_buckets).__name__}"
        ) from exc
    if count < MODEL_BUCKET_FEATURES:
        raise InvalidEstimateRequestError(
            f"fee_buckets must hold at least {MODEL_BUCKET_FEATURES} buckets, got {count}",
            details={"buckets": count},
        )

    features = []
    for index in range(MODEL_BUCKET_FEATURES):
        value = fee_buckets[index]
        if not _is_real(value):
            raise InvalidEstimateRequestError(
                f"fee_buckets[{index}] must be a number, got {value!r}",
                details={"bucket": index, "value": repr(value)},
            )
        features.append(np.float32(value))
    return features


class FeeEstimator:
    """
    Estimates the fee rate needed to confirm within a block target.

    Both models are loaded once at construction and never mutated, so one
    instance can be shared by any number of callers.

    Args:
        clock: Time source returning epoch seconds, used when an estimate is
            requested without an explicit timestamp
        models_dir: Directory holding ``low.bin`` and ``high.bin``
            (defaults to the artifacts shipped with the package)
        metrics_enabled: Record Prometheus metrics per estimate. ``None``
            reads ``BLOCKFEE_METRICS_ENABLED`` once, here.

    Raises:
        CorruptModelError: An artifact cannot be loaded. There is no
            fallback, the estimator is unusable without both models.
        ConfigurationError: ``BLOCKFEE_METRICS_ENABLED`` is not a boolean flag
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        models_dir: Optional[Union[str, Path]] = None,
        metrics_enabled: Optional[bool] = None,
    ) -> None:
        models_dir = Path(models_dir) if models_dir is not None else DEFAULT_MODELS_DIR
        self._models: Dict[ModelChoice, ModelData] = {
            ModelChoice.LOW: ModelData.from_file(models_dir / LOW_MODEL_ARTIFACT),
            ModelChoice.HIGH: ModelData.from_file(models_dir / HIGH_MODEL_ARTIFACT),
        }
        self._clock = clock
        self._histogram = FeeHistogram(HISTOGRAM_BUCKET_COUNT, HISTOGRAM_MAX_VALUE)
        if metrics_enabled is None:
            metrics_enabled = metrics_enabled_from_env()
        self._metrics_enabled = bool(metrics_enabled)

        logger.info(
            "Fee estimator ready",
            extra={
                "event": "fee_estimator.ready",
                "models_dir": str(models_dir),
                "metrics_enabled": self._metrics_enabled,
            },
        )

    @property
    def low(self) -> ModelData:
        return self._models[ModelChoice.LOW]

    @property
    def high(self) -> ModelData:
        return self._models[ModelChoice.HIGH]

    @property
    def metrics_enabled(self) -> bool:
        return self._metrics_enabled

    def model(self, choice: ModelChoice) -> ModelData:
        return self._models[ModelChoice(choice)]

    @staticmethod
    def select_model(block_target: int) -> ModelChoice:
        """Targets of one or two blocks use the low model, all others the high one."""
        if block_target <= LOW_MODEL_MAX_TARGET:
            return ModelChoice.LOW
        return ModelChoice.HIGH

    def build_features(
        self,
        block_target: int,
        timestamp: int,
        fee_buckets: Sequence[float],
        last_block_timestamp: int,
    ) -> Dict[str, np.float32]:
        """
        Assemble the named feature vector both models are trained on.

        Only the first ``MODEL_BUCKET_FEATURES`` histogram buckets become
        features (``b0`` .. ``b15``); any further buckets are ignored.
        """
        moment = datetime.fromtimestamp(timestamp, tz=timezone.utc)
        features = {
            FEATURE_CONFIRMS_IN: np.float32(block_target),
            FEATURE_DAY_OF_WEEK: np.float32(moment.weekday()),
            FEATURE_HOUR: np.float32(moment.hour),
            # Negative when the last block claims a time ahead of ours
            FEATURE_DELTA_LAST: np.float32(timestamp - last_block_timestamp),
        }
        for index in range(MODEL_BUCKET_FEATURES):
            features[f"{BUCKET_FEATURE_PREFIX}{index}"] = np.float32(fee_buckets[index])
        return features

    def estimate(
        self,
        block_target: int,
        timestamp: Optional[int],
        fee_observations: Iterable[float],
        last_block_timestamp: int,
    ) -> float:
        """
        Estimate the fee rate for confirmation within ``block_target`` blocks.

        Args:
            block_target: Desired confirmation horizon in blocks (>= 1)
            timestamp: Evaluation time in epoch seconds, ``None`` for the
                injected clock's current time
            fee_observations: Fee rates of transactions confirmed in roughly
                the last ten blocks whose fee rate is known. May be empty.
            last_block_timestamp: Epoch seconds of the most recent block

        Returns:
            Estimated fee rate in the unit of ``fee_observations`` (a
            single-precision value)

        Raises:
            InvalidEstimateRequestError: Arguments out of range or not numeric
            MissingFeatureError: A model expects a feature that is not assembled
            NonFiniteEstimateError: The model produced NaN or infinity
        """
        return self._guarded(
            self._estimate_from_observations,
            block_target,
            timestamp,
            fee_observations,
            last_block_timestamp,
        )

    def estimate_with_buckets(
        self,
        block_target: int,
        timestamp: Optional[int],
        fee_buckets: Sequence[float],
        last_block_timestamp: int,
    ) -> float:
        """Estimate from an already built fee histogram of at least 16 buckets."""
        return self._guarded(self._estimate, block_target, timestamp, fee_buckets, last_block_timestamp)

    def _guarded(self, estimate_fn: Callable[..., float], block_target: Any, *args: Any) -> float:
        try:
            return estimate_fn(block_target, *args)
        except FeeModelError as exc:
            record_estimate_error(type(exc).__name__, enabled=self._metrics_enabled)
            logger.warning(
                "Fee estimate failed: %s",
                exc.message,
                extra={
                    "event": "fee_estimator.failed",
                    "error_type": type(exc).__name__,
                    "block_target": repr(block_target),
                },
            )
            raise

    def _clock_seconds(self) -> int:
        now = self._clock()
        try:
            seconds = int(now)
        except (TypeError, ValueError, OverflowError) as exc:
            raise InvalidEstimateRequestError(
                f"clock returned {now!r}, not epoch seconds",
                details={"clock": repr(now)},
            ) from exc
        return _check_epoch_seconds("clock time", seconds)

    def _estimate_from_observations(
        self,
        block_target: int,
        timestamp: Optional[int],
        fee_observations: Iterable[float],
        last_block_timestamp: int,
    ) -> float:
        try:
            fee_buckets = self._histogram.build(fee_observations)
        except (TypeError, ValueError, OverflowError) as exc:
            raise InvalidEstimateRequestError(
                f"fee_observations must be numeric fee rates: {exc}",
                details={"error": str(exc)},
            ) from exc
        return self._estimate(block_target, timestamp, fee_buckets, last_block_timestamp)

    def _estimate(
        self,
        block_target: int,
        timestamp: Optional[int],
        fee_buckets: Sequence[float],
        last_block_timestamp: int,
    ) -> float:
        if not _is_integer(block_target) or block_target < 1:
            raise InvalidEstimateRequestError(
                f"block_target must be a positive integer, got {block_target!r}",
                details={"block_target": repr(block_target)},
            )
        if timestamp is None:
            timestamp = self._clock_seconds()
        else:
            timestamp = _check_epoch_seconds("timestamp", timestamp)
        last_block_timestamp = _check_epoch_seconds("last_block_timestamp", last_block_timestamp)
        buckets = _bucket_features(fee_buckets)

        features = self.build_features(int(block_target), timestamp, buckets, last_block_timestamp)
        choice = self.select_model(block_target)
        fee_rate = float(self._models[choice].predict(features))

        record_estimate(choice.value, fee_rate, enabled=self._metrics_enabled)
        logger.debug(
            "Estimated %.3f sat/vB for %d blocks",
            fee_rate,
            block_target,
            extra={
                "event": "fee_estimator.estimate",
                "model": choice.value,
                "block_target": int(block_target),
                "fee_rate": fee_rate,
            },
        )
        return fee_rate


__all__ = ["FeeEstimator", "ModelChoice", "DEFAULT_MODELS_DIR"]
