"""
Fee model exception hierarchy for blockfee.

Provides typed exceptions for model loading and fee estimation so a host
application can tell a corrupt artifact (fatal at construction) apart from a
per-call failure it can recover from by falling back to a default fee policy.
"""

from __future__ import annotations
from typing import Optional, Any, Dict, Iterable


class FeeModelError(Exception):
    """Base exception for all fee model errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
        recoverable: Whether the caller can fall back and carry on
    """

    recoverable = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: Optional[bool] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if recoverable is not None:
            self.recoverable = recoverable


# ==================== Artifact Errors ====================


class CorruptModelError(FeeModelError):
    """Raised when a model artifact cannot be turned into a usable model.

    Embedded artifacts are fixed at build time, so this is only expected
    while validating a freshly exported artifact.
    """
    pass


class ModelDeserializationError(CorruptModelError):
    """Raised when artifact bytes are malformed, truncated or inconsistent."""

    def __init__(
        self,
        message: str,
        offset: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.offset = offset
        if offset is not None:
            self.details.setdefault("offset", offset)


class DimensionMismatchError(CorruptModelError):
    """Raised when layer shapes disagree with each other or the feature count."""
    pass


# ==================== Estimation Errors ====================


class MissingFeatureError(FeeModelError):
    """Raised when the feature vector lacks names the model declares."""

    recoverable = True

    def __init__(self, missing: Iterable[str], **kwargs: Any) -> None:
        self.missing = tuple(missing)
        super().__init__(
            f"Missing model features: {', '.join(self.missing)}",
            details={"missing": list(self.missing)},
            **kwargs,
        )


class NonFiniteEstimateError(FeeModelError):
    """Raised when the model produces NaN or an infinite fee rate."""

    recoverable = True

    def __init__(self, value: float, **kwargs: Any) -> None:
        self.value = value
        super().__init__(
            f"Model produced a non-finite estimate: {value}",
            details={"value": repr(value)},
            **kwargs,
        )


class InvalidEstimateRequestError(FeeModelError):
    """Raised when estimate arguments are outside their accepted range."""

    recoverable = True


# ==================== Configuration Errors ====================


class HistogramConfigError(FeeModelError):
    """Raised when a histogram is configured with non-positive bounds."""
    pass


__all__ = [
    "FeeModelError",
    "CorruptModelError",
    "ModelDeserializationError",
    "DimensionMismatchError",
    "MissingFeatureError",
    "NonFiniteEstimateError",
    "InvalidEstimateRequestError",
    "HistogramConfigError",
]
