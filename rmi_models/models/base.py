"""
===============================================================================
MODEL CONTRACT
===============================================================================
Every model family in a learned index exposes the same surface so the
(external) index assembler can stack them into layers:

  -predict_to_float / predict_to_int: position estimate for a key
  -input_type / output_type: whether keys and predictions are int or float
  -params: ordered, typed constants fully describing the trained model
  -code / function_name: C source template evaluating the prediction
  -needs_bounds_check: whether the caller must clamp the prediction
  -restriction: which layer of the index the model may occupy
  -error_bound: max training error, when the family computes one

The families form a closed set, enumerated by ModelKind.
===============================================================================
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

import numpy as np


class ModelKind(Enum):
    RADIX = "radix"
    RADIX_TABLE = "radix_table"
    PREFIX_BUCKETED = "learned_fib"


class ModelDataType(Enum):
    INT = "int"
    FLOAT = "float"

    def c_type(self) -> str:
        return "uint64_t" if self is ModelDataType.INT else "double"


class ModelRestriction(Enum):
    NONE = "none"
    MUST_BE_TOP = "must_be_top"
    MUST_BE_BOTTOM = "must_be_bottom"


class ParamKind(Enum):
    INT = "int"
    FLOAT = "float"
    INT32_ARRAY = "int32_array"
    INT_ARRAY = "int_array"
    FLOAT_ARRAY = "float_array"


_C_TYPES = {
    ParamKind.INT: "uint64_t",
    ParamKind.FLOAT: "double",
    ParamKind.INT32_ARRAY: "uint32_t",
    ParamKind.INT_ARRAY: "uint64_t",
    ParamKind.FLOAT_ARRAY: "double",
}

_ARRAY_DTYPES = {
    ParamKind.INT32_ARRAY: np.uint32,
    ParamKind.INT_ARRAY: np.uint64,
    ParamKind.FLOAT_ARRAY: np.float64,
}


@dataclass(frozen=True)
class ModelParam:
    """One trained constant handed to the code generator."""

    kind: ParamKind
    value: object

    @classmethod
    def from_int(cls, value) -> "ModelParam":
        return cls(ParamKind.INT, int(value))

    @classmethod
    def from_float(cls, value) -> "ModelParam":
        return cls(ParamKind.FLOAT, float(value))

    @classmethod
    def from_array(cls, kind: ParamKind, values) -> "ModelParam":
        if kind not in _ARRAY_DTYPES:
            raise ValueError(f"{kind} is not an array parameter kind")
        arr = np.array(values, dtype=_ARRAY_DTYPES[kind])
        arr.setflags(write=False)
        return cls(kind, arr)

    def is_array(self) -> bool:
        return self.kind in _ARRAY_DTYPES

    def size(self) -> int:
        """Size in bytes once embedded in generated code."""
        if self.is_array():
            return int(self.value.nbytes)
        return 8

    def c_type(self) -> str:
        return _C_TYPES[self.kind]

    def c_value(self) -> str:
        if self.kind is ParamKind.INT:
            return f"{self.value}UL"
        if self.kind is ParamKind.FLOAT:
            return _c_float(self.value)
        if self.kind is ParamKind.FLOAT_ARRAY:
            items = (_c_float(v) for v in self.value.tolist())
        else:
            items = (f"{v}UL" for v in self.value.tolist())
        return "{" + ", ".join(items) + "}"

    def __len__(self) -> int:
        return int(self.value.shape[0]) if self.is_array() else 1


def _c_float(value: float) -> str:
    if math.isinf(value):
        return "INFINITY" if value > 0 else "-INFINITY"
    if math.isnan(value):
        return "NAN"
    return repr(float(value))


class Model(ABC):
    """Interface shared by every model family."""

    kind: ModelKind

    @abstractmethod
    def predict_to_float(self, key) -> float:
        ...

    def predict_to_int(self, key) -> int:
        """Floor of the float prediction, clamped at zero."""
        pred = self.predict_to_float(key)
        return int(max(0.0, math.floor(pred)))

    @abstractmethod
    def input_type(self) -> ModelDataType:
        ...

    @abstractmethod
    def output_type(self) -> ModelDataType:
        ...

    @abstractmethod
    def params(self) -> list:
        ...

    @abstractmethod
    def code(self) -> str:
        ...

    @abstractmethod
    def function_name(self) -> str:
        ...

    def needs_bounds_check(self) -> bool:
        return True

    def restriction(self) -> ModelRestriction:
        return ModelRestriction.NONE

    def error_bound(self):
        """Max absolute training error, or None if not computed."""
        return None

    def get_memory_usage(self) -> int:
        """Approximate size in bytes of the trained constants."""
        return sum(p.size() for p in self.params())
