"""
===============================================================================
RADIX MODELS
===============================================================================
Parameter-light models that read a fixed-width bit field out of the key.

RadixModel (top layer only):
  -params: (common_prefix, bits) where `bits` is the bit length of the
   largest position and `common_prefix` the leading bits all keys share.
  -predict: (key << common_prefix) >> (64 - bits), an integer in [0, 2**bits).

RadixTable (any layer):
  -slot(key) = ((key << prefix) >> prefix) >> (64 - prefix - bits)
  -table[slot] holds the position of the first key landing in that slot.
   Slots nobody lands in inherit the next observed position, so the table
   never decreases. Slots past the last observed one hold len(table).
  -predict: table[slot(key)], a lower-bound hint for a bounded search.
===============================================================================
"""

import logging

import numpy as np

from rmi_models.config import check_table_bits
from rmi_models.errors import ConfigError, DatasetOrderError
from rmi_models.models.base import (
    Model,
    ModelDataType,
    ModelKind,
    ModelParam,
    ModelRestriction,
    ParamKind,
)
from rmi_models.utils.bits import (
    MASK64,
    as_uint,
    common_prefix_size,
    extract_bits,
    extract_bits_array,
    num_bits,
)
from rmi_models.utils.data_loader import TrainingData

logger = logging.getLogger(__name__)


class RadixModel(Model):
    """Top-layer bit-field extractor."""

    kind = ModelKind.RADIX

    def __init__(self):
        self.prefix_bits = 0
        self.bits = 0

    def build_from_sorted_data(self, data) -> "RadixModel":
        if not isinstance(data, TrainingData):
            data = TrainingData(data)
        if len(data) == 0:
            self.prefix_bits, self.bits = 0, 0
            return self

        largest = data.max_position()
        self.bits = num_bits(largest)
        logger.debug(
            "radix layer using %d bits, from largest value %d (max models: %d)",
            self.bits, largest, (1 << self.bits),
        )
        self.prefix_bits = common_prefix_size(data.keys_as_uint())
        logger.debug("radix layer common prefix: %d", self.prefix_bits)
        return self

    def predict_to_int(self, key) -> int:
        return extract_bits(key, self.prefix_bits, self.bits)

    def predict_to_float(self, key) -> float:
        return float(self.predict_to_int(key))

    def radix_values(self, keys) -> np.ndarray:
        return extract_bits_array(np.asarray(keys).astype(np.uint64), self.prefix_bits, self.bits)

    def input_type(self) -> ModelDataType:
        return ModelDataType.INT

    def output_type(self) -> ModelDataType:
        return ModelDataType.INT

    def params(self) -> list:
        return [ModelParam.from_int(self.prefix_bits), ModelParam.from_int(self.bits)]

    def code(self) -> str:
        return """
inline uint64_t radix(uint64_t prefix_length, uint64_t bits, uint64_t inp) {
    return (inp << prefix_length) >> (64 - bits);
}"""

    def function_name(self) -> str:
        return "radix"

    def needs_bounds_check(self) -> bool:
        return False

    def restriction(self) -> ModelRestriction:
        return ModelRestriction.MUST_BE_TOP


class RadixTable(Model):
    """Bit-field lookup into a table of first-occurrence positions."""

    kind = ModelKind.RADIX_TABLE

    def __init__(self, bits: int = 8):
        self.table_bits = check_table_bits(bits)
        self.prefix_bits = 0
        self.hint_table = np.full(1 << self.table_bits, 1 << self.table_bits, dtype=np.uint32)

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------
    def build_from_sorted_data(self, data) -> "RadixTable":
        if not isinstance(data, TrainingData):
            data = TrainingData(data)
        size = 1 << self.table_bits
        self.prefix_bits = common_prefix_size(data.keys_as_uint())
        self.hint_table = np.full(size, size, dtype=np.uint32)
        if len(data) == 0:
            return self

        if data.max_position() > np.iinfo(np.uint32).max:
            raise ConfigError("positions do not fit the uint32 hint table")

        slots = self.slot_values(data.keys)
        if np.any(np.diff(slots.astype(np.int64)) < 0):
            raise DatasetOrderError("radix table slots must be non-decreasing")

        observed, first = np.unique(slots, return_index=True)
        first_pos = data.positions[first]
        last = int(observed[-1])

        # every slot up to the last observed one takes the first position at
        # or after it; the rest keep the len(table) sentinel
        nxt = np.searchsorted(observed, np.arange(last + 1, dtype=np.uint64), side="left")
        self.hint_table[:last + 1] = first_pos[nxt]

        logger.debug(
            "radix table: prefix %d, %d bits, %d of %d slots observed",
            self.prefix_bits, self.table_bits, observed.shape[0], size,
        )
        return self

    def _shift(self) -> int:
        return 64 - self.prefix_bits - self.table_bits

    def slot(self, key) -> int:
        if self.prefix_bits >= 64:
            return 0
        masked = ((as_uint(key) << self.prefix_bits) & MASK64) >> self.prefix_bits
        shift = self._shift()
        return masked >> shift if shift > 0 else masked

    def slot_values(self, keys) -> np.ndarray:
        keys = np.asarray(keys).astype(np.uint64)
        p = self.prefix_bits
        if p >= 64:
            return np.zeros(keys.shape, dtype=np.uint64)
        masked = np.right_shift(np.left_shift(keys, np.uint64(p)), np.uint64(p))
        shift = self._shift()
        if shift >= 64:
            return np.zeros(keys.shape, dtype=np.uint64)
        if shift > 0:
            return np.right_shift(masked, np.uint64(shift))
        return masked

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------
    def predict_to_int(self, key) -> int:
        return int(self.hint_table[self.slot(key)])

    def predict_to_float(self, key) -> float:
        return float(self.predict_to_int(key))

    def input_type(self) -> ModelDataType:
        return ModelDataType.INT

    def output_type(self) -> ModelDataType:
        return ModelDataType.INT

    def params(self) -> list:
        return [
            ModelParam.from_int(self.prefix_bits),
            ModelParam.from_array(ParamKind.INT32_ARRAY, self.hint_table),
        ]

    def code(self) -> str:
        # C shifts by >= 64 or < 0 are undefined; mirror slot() instead
        shift = self._shift()
        if self.prefix_bits >= 64 or shift >= 64:
            body = "table[0]"
        else:
            body = f"table[((inp << prefix_length) >> prefix_length) >> {max(0, shift)}]"
        return f"""
inline uint64_t radix_table(uint64_t prefix_length, const uint32_t* table, uint64_t inp) {{
    return {body};
}}"""

    def function_name(self) -> str:
        return "radix_table"

    def needs_bounds_check(self) -> bool:
        return False

    def restriction(self) -> ModelRestriction:
        return ModelRestriction.NONE
