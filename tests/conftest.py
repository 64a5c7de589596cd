import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from rmi_models.utils.data_loader import TrainingData


@pytest.fixture
def bucketed_data():
    """Sorted uint64 keys spread over four top-bit buckets, exact in float64."""
    rng = np.random.default_rng(7)
    keys = []
    for top in (1, 3, 4, 9):
        offsets = np.sort(rng.choice(1 << 30, size=300, replace=False)).astype(np.uint64)
        keys.append((np.uint64(top) << np.uint64(60)) + (offsets << np.uint64(20)))
    return TrainingData(np.concatenate(keys))
