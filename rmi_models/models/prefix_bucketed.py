"""
===============================================================================
PREFIX-BUCKETED CORRECTOR MODEL ("learned_fib")
===============================================================================
A bottom-layer model that splits the key space by its leading `prefix` bits
into 2**prefix buckets and fits one PiecewiseCorrector per bucket.

Build:
  1) Compute every key's bucket (its top `prefix` bits). Sorted keys give
     non-decreasing buckets, so each bucket is one contiguous run.
  2) For each non-empty run, segment it greedily under `threshold` and train
     that bucket's corrector on the breakpoints. Empty buckets keep an
     untrained corrector that predicts 0.
  3) Re-predict the whole training set and record the max absolute error
     (floored to an integer) as the model's error bound.

Predict(key):
  -Select the bucket from the key's top bits, evaluate its corrector.

Files: `save(out_dir)` writes nn_<bucket>.bin per bucket plus manifest.json
into a directory chosen by the caller.
===============================================================================
"""

import json
import logging
from pathlib import Path

import numpy as np

from rmi_models.config import check_prefix_bits
from rmi_models.errors import ConfigError, DatasetOrderError, MalformedModelFileError
from rmi_models.models.base import (
    Model,
    ModelDataType,
    ModelKind,
    ModelParam,
    ModelRestriction,
    ParamKind,
)
from rmi_models.models.piecewise import PiecewiseCorrector
from rmi_models.models.segmentation import train_segment
from rmi_models.utils.bits import top_bits, top_bits_array
from rmi_models.utils.data_loader import TrainingData

logger = logging.getLogger(__name__)

MANIFEST_NAME = "manifest.json"


class PrefixBucketedModel(Model):
    """Per-prefix-bucket ReLU correctors with a global error bound."""

    kind = ModelKind.PREFIX_BUCKETED

    def __init__(self, prefix: int = 4, threshold: float = 8.0):
        """
        Args:
            prefix: Number of leading key bits selecting a bucket (2**prefix
                    correctors are allocated).
            threshold: Max interior error tolerated by the segmentation.
        """
        self.prefix = check_prefix_bits(prefix)
        if not threshold >= 0.0:
            raise ConfigError(f"threshold must be non-negative, got {threshold}")
        self.threshold = float(threshold)

        self.correctors = [PiecewiseCorrector() for _ in range(1 << self.prefix)]
        # None until build_from_sorted_data has scanned the training set
        self.max_error = None

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------
    def build_from_sorted_data(self, data) -> "PrefixBucketedModel":
        if not isinstance(data, TrainingData):
            data = TrainingData(data)
        n = len(data)
        if n == 0:
            logger.debug("learned_fib: empty training set, all buckets untrained")
            self.max_error = 0
            return self

        buckets = top_bits_array(data.keys_as_uint(), self.prefix).astype(np.int64)
        if np.any(np.diff(buckets) < 0):
            raise DatasetOrderError("keys must be sorted so each bucket is one contiguous run")

        cuts = np.flatnonzero(np.diff(buckets)) + 1
        starts = np.concatenate(([0], cuts))
        stops = np.concatenate((cuts, [n]))
        for start, stop in zip(starts.tolist(), stops.tolist()):
            bucket = int(buckets[start])
            self.correctors[bucket] = train_segment(data, start, stop, self.threshold)

        self.max_error = self._check_error(data)
        logger.debug(
            "learned_fib: %d/%d buckets trained, %d hidden units, max error %d",
            starts.shape[0],
            len(self.correctors),
            sum(nn.num_units for nn in self.correctors),
            self.max_error,
        )
        return self

    def _check_error(self, data) -> int:
        predicted = self.predict_many(data.keys)
        err = np.abs(predicted - data.positions_as_float())
        return int(np.floor(err.max()))

    # ------------------------------------------------------------------
    # Predict
    # ------------------------------------------------------------------
    def bucket_index(self, key) -> int:
        return top_bits(key, self.prefix)

    def predict_to_float(self, key) -> float:
        return self.correctors[self.bucket_index(key)].inference(float(key))

    def predict_many(self, keys) -> np.ndarray:
        keys = np.asarray(keys)
        xs = keys.astype(np.float64)
        buckets = top_bits_array(keys.astype(np.uint64), self.prefix).astype(np.int64)

        order = np.argsort(buckets, kind="stable")
        ordered = buckets[order]
        cuts = np.flatnonzero(np.diff(ordered)) + 1
        out = np.empty(keys.shape[0], dtype=np.float64)
        for group in np.split(order, cuts):
            if group.size:
                nn = self.correctors[int(buckets[group[0]])]
                out[group] = nn.inference_many(xs[group])
        return out

    def trained_buckets(self) -> list:
        return [i for i, nn in enumerate(self.correctors) if nn.is_trained]

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------
    def input_type(self) -> ModelDataType:
        return ModelDataType.INT

    def output_type(self) -> ModelDataType:
        return ModelDataType.INT

    def params(self) -> list:
        units = [nn.num_units for nn in self.correctors]
        offsets = np.concatenate(([0], np.cumsum(units, dtype=np.int64)))
        return [
            ModelParam.from_int(self.prefix),
            ModelParam.from_array(ParamKind.INT_ARRAY, offsets),
            ModelParam.from_array(ParamKind.FLOAT_ARRAY, self._concat("weights1")),
            ModelParam.from_array(ParamKind.FLOAT_ARRAY, self._concat("biases1")),
            ModelParam.from_array(ParamKind.FLOAT_ARRAY, self._concat("weights2")),
            ModelParam.from_array(
                ParamKind.FLOAT_ARRAY, [nn.bias2 for nn in self.correctors]
            ),
        ]

    def _concat(self, attr: str) -> np.ndarray:
        return np.concatenate([getattr(nn, attr) for nn in self.correctors])

    def code(self) -> str:
        return """
inline double learned_fib(uint64_t prefix, const uint64_t offsets[],
                          const double w1[], const double b1[],
                          const double w2[], const double bias2[],
                          uint64_t inp) {
    const uint64_t bucket = prefix == 0 ? 0 : inp >> (64 - prefix);
    const double x = (double) inp;
    double acc = bias2[bucket];
    for (uint64_t i = offsets[bucket]; i < offsets[bucket + 1]; i++) {
        acc += w2[i] * fmax(0.0, fma(w1[i], x, b1[i]));
    }
    return acc;
}"""

    def function_name(self) -> str:
        return "learned_fib"

    def needs_bounds_check(self) -> bool:
        return True

    def restriction(self) -> ModelRestriction:
        return ModelRestriction.MUST_BE_BOTTOM

    def error_bound(self):
        return self.max_error

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def save(self, out_dir) -> list:
        """Write one file per bucket plus a manifest; returns the written paths."""
        out_dir = Path(out_dir)
        out_dir.mkdir(parents=True, exist_ok=True)

        written = []
        for i, nn in enumerate(self.correctors):
            written.append(nn.save(out_dir / f"nn_{i}.bin"))

        manifest = {
            "prefix": self.prefix,
            "threshold": self.threshold,
            "max_error": self.max_error,
            "files": [p.name for p in written],
            "trained": self.trained_buckets(),
        }
        manifest_path = out_dir / MANIFEST_NAME
        manifest_path.write_text(json.dumps(manifest, indent=2))
        written.append(manifest_path)

        logger.info("saved learned_fib (%d buckets) to %s", len(self.correctors), out_dir)
        return written

    @classmethod
    def load(cls, out_dir) -> "PrefixBucketedModel":
        out_dir = Path(out_dir)
        manifest_path = out_dir / MANIFEST_NAME
        try:
            manifest = json.loads(manifest_path.read_text())
            prefix = int(manifest["prefix"])
            files = list(manifest["files"])
            trained = set(manifest.get("trained", range(len(files))))
            model = cls(prefix=prefix, threshold=float(manifest["threshold"]))
            max_error = manifest["max_error"]
            model.max_error = None if max_error is None else int(max_error)
        except (OSError, ValueError, KeyError, TypeError) as exc:
            raise MalformedModelFileError(manifest_path, str(exc)) from exc

        if len(files) != len(model.correctors):
            raise MalformedModelFileError(
                manifest_path,
                f"{len(files)} corrector files for {len(model.correctors)} buckets",
            )
        for i, name in enumerate(files):
            nn = PiecewiseCorrector.load(out_dir / name)
            nn.is_trained = i in trained
            model.correctors[i] = nn

        logger.info("loaded learned_fib (%d buckets) from %s", len(files), out_dir)
        return model
