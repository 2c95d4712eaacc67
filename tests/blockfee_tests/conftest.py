import sys
from pathlib import Path

import pytest

# Ensure the src directory (for `blockfee.*`) is on the Python path before collection runs.
project_root = Path(__file__).resolve().parents[2]
src_path = project_root / "src"
sys.path.insert(0, str(src_path))

# Counts from a busy mempool: most traffic in the low buckets, a long tail above
SAMPLE_BUCKETS = [
    12, 40, 65, 48, 31, 22, 15, 11, 9, 6, 5, 4, 3, 3, 2, 2,
    1, 1, 1, 1, 0, 0, 1, 0, 0, 0, 0, 0, 0, 0,
    0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 1,
]


@pytest.fixture(scope="session")
def estimator():
    """Fee estimator over the shipped artifacts, shared read-only by all tests"""
    from blockfee.core.fee_estimator import FeeEstimator

    return FeeEstimator()


@pytest.fixture
def sample_buckets():
    return list(SAMPLE_BUCKETS)


@pytest.fixture
def fee_observations():
    """Fee rates (sat/vB) seen over the last blocks"""
    return [1.0, 1.0, 2.5, 3.0, 4.2, 5.0, 8.8, 10.0, 12.5, 15.0, 21.0, 35.5, 60.0, 140.0, 510.0]


@pytest.fixture
def tiny_model():
    """Two-feature linear model: ((a - 1) / 2 * 2 - b + 0.5) * 4 + 10"""
    from blockfee.core.model_data import Activation, Layer, ModelData

    return ModelData(
        feature_names=["a", "b"],
        input_offset=[1.0, 0.0],
        input_scale=[2.0, 1.0],
        layers=[Layer([[2.0, -1.0]], [0.5], Activation.IDENTITY)],
        output_offset=10.0,
        output_scale=4.0,
    )
