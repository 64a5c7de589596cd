"""Tests for the radix extractor and the radix hint table."""

from __future__ import annotations

import numpy as np
import pytest

from rmi_models.errors import ConfigError, DatasetOrderError
from rmi_models.models import ModelRestriction, ParamKind
from rmi_models.models.radix import RadixModel, RadixTable
from rmi_models.utils.data_loader import DatasetGenerator, TrainingData


def _u64(values) -> np.ndarray:
    return np.array(values, dtype=np.uint64)


# ----------------------------------------------------------------------
# RadixModel
# ----------------------------------------------------------------------
def test_radix_params_from_data() -> None:
    model = RadixModel().build_from_sorted_data(TrainingData(np.arange(1000, dtype=np.uint64)))
    assert (model.prefix_bits, model.bits) == (54, 10)
    assert [p.value for p in model.params()] == [54, 10]
    # the shared prefix is all zeros, so the key itself comes back
    assert [model.predict_to_int(k) for k in (0, 1, 500, 999)] == [0, 1, 500, 999]


def test_radix_values_stay_in_range() -> None:
    data = TrainingData(DatasetGenerator.generate_uint64(5000, seed=1))
    model = RadixModel().build_from_sorted_data(data)
    values = model.radix_values(data.keys)

    assert model.bits == 13
    assert values.max() < (1 << model.bits)
    assert values[::97].tolist() == [model.predict_to_int(k) for k in data.keys[::97]]
    assert np.all(np.diff(values.astype(np.int64)) >= 0)


def test_radix_empty_data() -> None:
    model = RadixModel().build_from_sorted_data(TrainingData.empty())
    assert (model.prefix_bits, model.bits) == (0, 0)
    assert model.predict_to_int(12345) == 0


def test_radix_contract() -> None:
    model = RadixModel().build_from_sorted_data(_u64([1, 2, 3]))
    assert model.restriction() is ModelRestriction.MUST_BE_TOP
    assert model.needs_bounds_check() is False
    assert model.error_bound() is None
    assert model.function_name() == "radix"
    assert "(inp << prefix_length) >> (64 - bits)" in model.code()
    assert model.predict_to_float(3) == float(model.predict_to_int(3))
    assert model.get_memory_usage() == 16


# ----------------------------------------------------------------------
# RadixTable
# ----------------------------------------------------------------------
def test_hint_table_back_fill_example() -> None:
    # slots (top two bits) 0, 0, 2, 2, 3 at positions 0..4
    keys = _u64([1, 2, (2 << 62) | 1, (2 << 62) | 5, (3 << 62) | 7])
    table = RadixTable(bits=2).build_from_sorted_data(TrainingData(keys))

    assert table.prefix_bits == 0
    assert table.slot_values(keys).tolist() == [0, 0, 2, 2, 3]
    assert table.hint_table.tolist() == [0, 2, 2, 4]


def test_hint_table_trailing_sentinel() -> None:
    keys = _u64([1 << 61, 3 << 61, 4 << 61])
    table = RadixTable(bits=3).build_from_sorted_data(TrainingData(keys))

    assert table.slot_values(keys).tolist() == [1, 3, 4]
    assert table.hint_table.tolist() == [0, 0, 1, 1, 2, 8, 8, 8]
    assert table.predict_to_int(7 << 61) == 8


def test_hint_table_skips_common_prefix() -> None:
    keys = _u64([0x0F00000000000000, 0x0F00000000000001, 0x0F80000000000000])
    table = RadixTable(bits=1).build_from_sorted_data(TrainingData(keys))

    assert table.prefix_bits == 8
    assert [table.slot(k) for k in keys] == [0, 0, 1]
    assert table.hint_table.tolist() == [0, 2]


def test_hint_table_properties_on_random_data() -> None:
    data = TrainingData(DatasetGenerator.generate_uint64(20_000, seed=2))
    table = RadixTable(bits=10).build_from_sorted_data(data)
    slots = table.slot_values(data.keys)

    assert np.all(np.diff(table.hint_table.astype(np.int64)) >= 0)
    first = {}
    for slot, pos in zip(slots.tolist(), data.positions.tolist()):
        first.setdefault(slot, pos)
    for slot, pos in first.items():
        assert table.hint_table[slot] == pos
    for key, pos in list(data)[::250]:
        assert table.predict_to_int(key) <= pos


def test_hint_table_empty_data() -> None:
    table = RadixTable(bits=2).build_from_sorted_data(TrainingData.empty())
    assert table.hint_table.tolist() == [4, 4, 4, 4]


def test_hint_table_rejects_unsorted_keys() -> None:
    keys = _u64([3 << 62, 1 << 62])
    with pytest.raises(DatasetOrderError):
        RadixTable(bits=2).build_from_sorted_data(TrainingData(keys))


@pytest.mark.parametrize("bits", [-1, 32])
def test_hint_table_rejects_bad_width(bits: int) -> None:
    with pytest.raises(ConfigError):
        RadixTable(bits=bits)


def test_hint_table_contract() -> None:
    keys = _u64([1 << 61, 3 << 61, 4 << 61])
    table = RadixTable(bits=3).build_from_sorted_data(TrainingData(keys))
    prefix, hints = table.params()

    assert table.restriction() is ModelRestriction.NONE
    assert table.needs_bounds_check() is False
    assert table.function_name() == "radix_table"
    assert ">> prefix_length) >> 61]" in table.code()
    assert hints.kind is ParamKind.INT32_ARRAY
    assert hints.c_type() == "uint32_t"
    assert hints.size() == 8 * 4
    assert hints.c_value() == "{0UL, 0UL, 1UL, 1UL, 2UL, 8UL, 8UL, 8UL}"


def test_hint_table_code_clamps_wide_shift() -> None:
    # keys differ only in bit 0, so prefix (63) + bits (2) exceeds 64
    keys = _u64([0x0F00000000000000, 0x0F00000000000001])
    table = RadixTable(bits=2).build_from_sorted_data(TrainingData(keys))

    assert table.prefix_bits + table.table_bits > 64
    assert [table.slot(k) for k in keys] == [0, 1]
    assert table.slot_values(keys).tolist() == [0, 1]
    assert ">> 0]" in table.code()
    assert "(64 -" not in table.code()


def test_hint_table_code_for_identical_keys() -> None:
    table = RadixTable(bits=2).build_from_sorted_data(TrainingData(_u64([7, 7, 7])))
    assert table.prefix_bits == 64
    assert "return table[0];" in table.code()
