"""
===============================================================================
SEGMENTATION TRAINER
===============================================================================
Greedy, single pass, left-to-right segmentation of a bucket of sorted data
into line segments whose interior points all lie within `threshold` of the
line joining the segment's endpoints.

  l = start
  for r = start+2 .. stop-1:
      skip r when key[l] == key[r] or key[l] == key[r-1]   (zero-width line)
      fit the line through point l and point r
      if any point strictly between l and r-1 is off by more than threshold:
          emit breakpoint r-1, and l = r-1

The first point of the range opens the first segment and the last point of
the range closes the final one. The breakpoints feed a PiecewiseCorrector.

Cost: every candidate r re-checks all interior points of the open segment, so
a bucket of m points that never violates the threshold takes O(m^2) work
(about 2 s for 40k collinear points). Keep buckets small, or raise `prefix`.
===============================================================================
"""

import logging

import numpy as np

from rmi_models.errors import ConfigError, DegenerateDatasetError
from rmi_models.models.piecewise import PiecewiseCorrector
from rmi_models.utils.data_loader import TrainingData

logger = logging.getLogger(__name__)


def derive_breakpoints(data, start: int, stop: int, threshold: float) -> TrainingData:
    """Breakpoints of the greedy segmentation of data[start:stop]."""
    if not threshold >= 0.0:
        raise ConfigError(f"threshold must be non-negative, got {threshold}")
    if stop <= start:
        raise DegenerateDatasetError(f"empty range [{start}, {stop})")

    # Duplicates are judged on the float keys the lines are fitted in;
    # distinct uint64 keys can round to the same double.
    xs = data.keys_as_float()
    ys = data.positions_as_float()

    points = [start]
    left = start
    for right in range(start + 2, stop):
        if xs[left] == xs[right] or xs[left] == xs[right - 1]:
            continue

        slope = (ys[right] - ys[left]) / (xs[right] - xs[left])
        intercept = ys[left] - slope * xs[left]

        interior = slice(left + 1, right - 1)
        err = np.abs(slope * xs[interior] + intercept - ys[interior])
        if np.any(err > threshold):
            points.append(right - 1)
            left = right - 1

    if xs[stop - 1] != xs[points[-1]]:
        points.append(stop - 1)

    idx = np.asarray(points, dtype=np.int64)
    logger.debug("range [%d, %d): %d breakpoints", start, stop, idx.shape[0])
    return TrainingData(data.keys[idx], data.positions[idx])


def train_segment(data, start: int, stop: int, threshold: float) -> PiecewiseCorrector:
    """Segment data[start:stop] and fit a corrector to the breakpoints."""
    breakpoints = derive_breakpoints(data, start, stop, threshold)
    return PiecewiseCorrector().train(breakpoints)
