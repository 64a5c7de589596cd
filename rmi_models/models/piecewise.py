"""
===============================================================================
PIECEWISE CORRECTOR (SINGLE-HIDDEN-LAYER RELU NETWORK)
===============================================================================
A tiny ReLU network that reproduces a continuous piecewise-linear function
exactly at its breakpoints. No gradient descent: the weights are written
down directly from the breakpoints.

Build, for breakpoints (x_0, y_0) ... (x_n, y_n):
  -output bias = y_0
  -one hidden unit per segment i, with slope s_i = (y_{i+1}-y_i)/(x_{i+1}-x_i):
       weight  = |s_i - s_{i-1}|   (s_{-1} = 0)
       bias    = -x_i * weight
       output  = +1 if s_i > s_{i-1} else -1

  f(x) = y_0 + sum_i out_i * relu(weight_i * x + bias_i)

Each unit switches on at x_i and adds the change in slope there, so f follows
the polyline through every breakpoint and stays flat at y_0 left of x_0.

File format: little-endian float64 records [weights1][weights2][biases1][bias2]
with the three arrays of equal length (count - 1) / 3.
===============================================================================
"""

import logging
from pathlib import Path

import numpy as np

from rmi_models.config import FLOAT_RECORD
from rmi_models.errors import (
    DatasetOrderError,
    DegenerateDatasetError,
    MalformedModelFileError,
    NumericRangeError,
)

logger = logging.getLogger(__name__)

# Upper bound on hidden activations materialized per inference batch
_BATCH_CELLS = 1 << 20


class PiecewiseCorrector:
    """Single-hidden-layer ReLU interpolant over a breakpoint set."""

    def __init__(self, weights1=(), weights2=(), biases1=(), bias2: float = 0.0):
        self.weights1 = np.asarray(weights1, dtype=np.float64)
        self.weights2 = np.asarray(weights2, dtype=np.float64)
        self.biases1 = np.asarray(biases1, dtype=np.float64)
        self.bias2 = float(bias2)
        if not (self.weights1.shape == self.weights2.shape == self.biases1.shape):
            raise ValueError("hidden layer arrays must have equal length")
        self.is_trained = False

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------
    def train(self, breakpoints) -> "PiecewiseCorrector":
        """Fit the network to a TrainingData of breakpoints (sorted by key)."""
        n = len(breakpoints)
        if n == 0:
            raise DegenerateDatasetError("cannot train a corrector from zero breakpoints")

        xs = breakpoints.keys_as_float()
        ys = breakpoints.positions_as_float()
        dx = np.diff(xs)
        if np.any(dx == 0.0):
            raise NumericRangeError("two breakpoints share a key; slope is undefined")
        if np.any(dx < 0.0):
            raise DatasetOrderError("breakpoints must be in increasing key order")

        slopes = np.diff(ys) / dx
        prev = np.concatenate(([0.0], slopes[:-1]))

        self.bias2 = float(ys[0])
        self.weights1 = np.abs(slopes - prev)
        self.biases1 = -(xs[:-1] * self.weights1)
        self.weights2 = np.where(slopes > prev, 1.0, -1.0)
        self.is_trained = True
        return self

    @property
    def num_units(self) -> int:
        return int(self.weights1.shape[0])

    # ------------------------------------------------------------------
    # Inference
    # ------------------------------------------------------------------
    def inference(self, x: float) -> float:
        return float(self.inference_many(np.array([x], dtype=np.float64))[0])

    def inference_many(self, xs) -> np.ndarray:
        xs = np.asarray(xs, dtype=np.float64)
        out = np.empty(xs.shape[0], dtype=np.float64)
        step = max(1, _BATCH_CELLS // max(1, self.num_units))
        for lo in range(0, xs.shape[0], step):
            chunk = xs[lo:lo + step]
            hidden = np.maximum(np.outer(chunk, self.weights1) + self.biases1, 0.0)
            # row-wise sum keeps each prediction independent of batch size
            out[lo:lo + step] = np.sum(hidden * self.weights2, axis=1) + self.bias2
        return out

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def to_array(self) -> np.ndarray:
        return np.concatenate(
            [self.weights1, self.weights2, self.biases1, [self.bias2]]
        ).astype(FLOAT_RECORD)

    def save(self, path) -> Path:
        path = Path(path)
        self.to_array().tofile(path)
        logger.debug("saved corrector with %d units to %s", self.num_units, path)
        return path

    @classmethod
    def load(cls, path) -> "PiecewiseCorrector":
        path = Path(path)
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise MalformedModelFileError(path, str(exc)) from exc

        if len(raw) % 8:
            raise MalformedModelFileError(path, f"{len(raw)} bytes is not a whole number of records")
        values = np.frombuffer(raw, dtype=FLOAT_RECORD).astype(np.float64)
        count = values.shape[0]
        if count == 0 or (count - 1) % 3:
            raise MalformedModelFileError(path, f"record count {count} is not 3k + 1")

        k = (count - 1) // 3
        model = cls(values[:k], values[k:2 * k], values[2 * k:3 * k], values[-1])
        model.is_trained = True
        return model

    def get_memory_usage(self) -> int:
        return (3 * self.num_units + 1) * 8

    def __repr__(self) -> str:
        return f"PiecewiseCorrector(units={self.num_units}, bias2={self.bias2})"
