"""
blockfee Constants

Fixed values baked into the trained fee models' input schema. Changing any of
these without retraining and re-exporting the artifacts in
``blockfee/models`` silently breaks the estimates.
"""

from typing import Final

# =============================================================================
# HISTOGRAM [MODEL SCHEMA - DO NOT CHANGE]
# =============================================================================

HISTOGRAM_BUCKET_COUNT: Final[int] = 50
HISTOGRAM_MAX_VALUE: Final[float] = 500.0  # sat/vB, everything above lands in the last bucket

# Only the first buckets are model inputs, named b0..b15
MODEL_BUCKET_FEATURES: Final[int] = 16

# =============================================================================
# FEATURE NAMES
# =============================================================================

FEATURE_CONFIRMS_IN: Final[str] = "confirms_in"
FEATURE_DAY_OF_WEEK: Final[str] = "day_of_week"
FEATURE_HOUR: Final[str] = "hour"
FEATURE_DELTA_LAST: Final[str] = "delta_last"
BUCKET_FEATURE_PREFIX: Final[str] = "b"

# =============================================================================
# MODEL SELECTION
# =============================================================================

# Block targets up to and including this value use the "low" model
LOW_MODEL_MAX_TARGET: Final[int] = 2

LOW_MODEL_ARTIFACT: Final[str] = "low.bin"
HIGH_MODEL_ARTIFACT: Final[str] = "high.bin"

# =============================================================================
# ARTIFACT WIRE FORMAT
# =============================================================================

MODEL_MAGIC: Final[bytes] = b"BFMD"
MODEL_FORMAT_VERSION: Final[int] = 1

# =============================================================================
# REQUEST LIMITS
# =============================================================================

MAX_EPOCH_SECONDS: Final[int] = 2**32 - 1  # unsigned 32-bit timestamps
