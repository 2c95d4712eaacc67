"""
blockfee - model-backed transaction fee rate estimation.

    from blockfee import FeeEstimator

    estimator = FeeEstimator()
    fee_rate = estimator.estimate(2, None, recent_fee_rates, last_block_timestamp)
"""

from blockfee.core.fee_estimator import FeeEstimator, ModelChoice
from blockfee.core.fee_exceptions import (
    CorruptModelError,
    DimensionMismatchError,
    FeeModelError,
    HistogramConfigError,
    InvalidEstimateRequestError,
    MissingFeatureError,
    ModelDeserializationError,
    NonFiniteEstimateError,
)
from blockfee.core.fee_histogram import FeeHistogram
from blockfee.core.model_data import Activation, Layer, ModelData

__version__ = "0.1.0"

__all__ = [
    "Activation",
    "CorruptModelError",
    "DimensionMismatchError",
    "FeeEstimator",
    "FeeHistogram",
    "FeeModelError",
    "HistogramConfigError",
    "InvalidEstimateRequestError",
    "Layer",
    "MissingFeatureError",
    "ModelChoice",
    "ModelData",
    "ModelDeserializationError",
    "NonFiniteEstimateError",
]
