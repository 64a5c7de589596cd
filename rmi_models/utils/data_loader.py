"""
===============================================================================
DATA LOADER MODULE
===============================================================================
Training data for the learned-index models.

TrainingData is the read-only view every model trains from: a sorted
sequence of (key, position) pairs with random access. Keys convert to both
uint64 (for bit extraction) and float64 (for line fitting).

The DatasetGenerator class creates synthetic sorted key sets:
    • Sequential: ordered numbers (best-case data)
    • Uniform: random spread across a range
    • Mixed: clustered/random blend to simulate real-world skew
    • Uint64: integer keys spread over the full 64-bit range

load_sosd() reads a SOSD benchmark key file (8-byte count header followed by
uint32 or uint64 keys, width taken from the `_uint32` / `_uint64` suffix).

Usage:
    from rmi_models.utils.data_loader import DatasetGenerator, TrainingData

    data = TrainingData(DatasetGenerator.generate_uint64(10000))
    print(data.get(0), len(data))
===============================================================================
"""

from pathlib import Path

import numpy as np
import matplotlib.pyplot as plt


class TrainingData:
    """Sorted (key, position) view backed by NumPy arrays."""

    def __init__(self, keys, positions=None, dtype=None):
        self.keys = np.asarray(keys, dtype=dtype)
        if self.keys.ndim != 1:
            raise ValueError("keys must be a 1-D sequence")
        if positions is None:
            positions = np.arange(self.keys.shape[0], dtype=np.int64)
        self.positions = np.asarray(positions, dtype=np.int64)
        if self.positions.shape != self.keys.shape:
            raise ValueError(
                f"{self.keys.shape[0]} keys but {self.positions.shape[0]} positions"
            )
        self._float_keys = None
        self._uint_keys = None

    @classmethod
    def from_pairs(cls, pairs, dtype=None) -> "TrainingData":
        """Build a view from an ordered sequence of (key, position) pairs."""
        pairs = list(pairs)
        if not pairs:
            return cls.empty(dtype)
        keys, positions = zip(*pairs)
        return cls(keys, positions, dtype=dtype)

    @classmethod
    def empty(cls, dtype=None) -> "TrainingData":
        return cls(np.array([], dtype=dtype or np.uint64))

    def __len__(self) -> int:
        return int(self.keys.shape[0])

    def __iter__(self):
        for i in range(len(self)):
            yield self.get(i)

    def get(self, index: int):
        return self.keys[index].item(), int(self.positions[index])

    def get_key(self, index: int):
        return self.keys[index].item()

    def slice(self, start: int, stop: int) -> "TrainingData":
        return TrainingData(self.keys[start:stop], self.positions[start:stop])

    def keys_as_float(self) -> np.ndarray:
        if self._float_keys is None:
            self._float_keys = self.keys.astype(np.float64)
        return self._float_keys

    def keys_as_uint(self) -> np.ndarray:
        if self._uint_keys is None:
            self._uint_keys = self.keys.astype(np.uint64)
        return self._uint_keys

    def positions_as_float(self) -> np.ndarray:
        return self.positions.astype(np.float64)

    def max_position(self) -> int:
        return int(self.positions.max()) if len(self) else 0

    def __repr__(self) -> str:
        return f"TrainingData(n={len(self)}, dtype={self.keys.dtype})"


class DatasetGenerator:
    """Generate sorted synthetic key sets for training and benchmarks."""

    @staticmethod
    def generate_uniform(size: int, min_val: int = 0, max_val: int = 1_000_000) -> np.ndarray:
        """Uniformly distributed random keys."""
        keys = np.random.uniform(min_val, max_val, size)
        return np.sort(keys)

    @staticmethod
    def generate_sequential(size: int, start: int = 0, step: int = 1) -> np.ndarray:
        """Sequential keys (0, 1, 2, …)."""
        return np.arange(start, start + size * step, step, dtype=np.float64)

    @staticmethod
    def generate_mixed(size: int) -> np.ndarray:
        """Mixed distribution: uniform + two clusters."""
        uniform = np.random.uniform(0, 1_000_000, int(size * 0.4))
        cluster1 = np.random.normal(250_000, 10_000, int(size * 0.3))
        cluster2 = np.random.normal(750_000, 10_000, int(size * 0.3))
        keys = np.concatenate([uniform, cluster1, cluster2])
        return np.sort(np.unique(keys))[:size]

    @staticmethod
    def generate_uint64(size: int, seed=None) -> np.ndarray:
        """Uniform integer keys over the whole unsigned 64-bit range."""
        rng = np.random.default_rng(seed)
        keys = rng.integers(0, 2**64, size, dtype=np.uint64)
        return np.sort(keys)


def load_sosd(path) -> TrainingData:
    """Read a SOSD binary key file into a TrainingData view."""
    path = Path(path)
    suffix = path.name.rsplit("_", 1)[-1]
    widths = {"uint32": "<u4", "uint64": "<u8"}
    if suffix not in widths:
        raise ValueError(f"cannot infer key width from file name {path.name!r}")

    with open(path, "rb") as fh:
        header = np.fromfile(fh, dtype="<u8", count=1)
        if header.size != 1:
            raise ValueError(f"{path} is missing its key count header")
        count = int(header[0])
        keys = np.fromfile(fh, dtype=widths[suffix], count=count)

    if keys.size != count:
        raise ValueError(f"{path} declares {count} keys but holds {keys.size}")
    return TrainingData(keys.astype(np.uint64))


# -----------------------------------------------------------------------------
# Quick-run tester: show interactive plots
# -----------------------------------------------------------------------------
if __name__ == "__main__":
    print("Generating datasets and plotting\n")

    size = 100_000  # 100k points per plot

    seq = DatasetGenerator.generate_sequential(size)
    uniform = DatasetGenerator.generate_uniform(size)
    wide = DatasetGenerator.generate_uint64(size, seed=0)

    def plot_data(data, title):
        plt.figure(figsize=(10, 4))
        plt.plot(data, '.', markersize=1)
        plt.title(f"{title} ({size:,} points)")
        plt.xlabel("Index")
        plt.ylabel("Key Value")
        plt.tight_layout()
        plt.show()

    plot_data(seq, "Sequential Dataset")
    plot_data(uniform, "Uniform Dataset")
    plot_data(wide.astype(np.float64), "Uint64 Dataset")
