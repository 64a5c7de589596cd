"""Tests for the training data view, generators and SOSD loading."""

from __future__ import annotations

import numpy as np
import pytest

from rmi_models.utils.data_loader import DatasetGenerator, TrainingData, load_sosd


def test_view_access() -> None:
    data = TrainingData(np.array([3, 5, 5, 9], dtype=np.uint64))
    assert len(data) == 4
    assert data.get(2) == (5, 2)
    assert data.get_key(3) == 9
    assert list(data) == [(3, 0), (5, 1), (5, 2), (9, 3)]
    assert data.keys_as_float().dtype == np.float64
    assert data.keys_as_uint().dtype == np.uint64
    assert data.max_position() == 3


def test_from_pairs_and_slice() -> None:
    data = TrainingData.from_pairs([(10, 4), (20, 7), (30, 9)], dtype=np.uint64)
    assert data.positions.tolist() == [4, 7, 9]

    sub = data.slice(1, 3)
    assert list(sub) == [(20, 7), (30, 9)]
    assert len(TrainingData.from_pairs([])) == 0


def test_mismatched_lengths() -> None:
    with pytest.raises(ValueError):
        TrainingData([1, 2, 3], [0, 1])


def test_generators_are_sorted() -> None:
    for keys in (
        DatasetGenerator.generate_uniform(500),
        DatasetGenerator.generate_sequential(500),
        DatasetGenerator.generate_mixed(500),
        DatasetGenerator.generate_uint64(500, seed=0),
    ):
        assert np.all(np.diff(keys.astype(np.float64)) >= 0)
    assert DatasetGenerator.generate_uint64(10, seed=0).dtype == np.uint64


@pytest.mark.parametrize("suffix, dtype", [("uint64", "<u8"), ("uint32", "<u4")])
def test_load_sosd(tmp_path, suffix: str, dtype: str) -> None:
    keys = np.array([1, 4, 9, 16, 25], dtype=dtype)
    path = tmp_path / f"books_5_{suffix}"
    with open(path, "wb") as fh:
        np.array([keys.size], dtype="<u8").tofile(fh)
        keys.tofile(fh)

    data = load_sosd(path)
    assert data.keys.dtype == np.uint64
    assert data.keys.tolist() == [1, 4, 9, 16, 25]
    assert data.positions.tolist() == [0, 1, 2, 3, 4]


def test_load_sosd_rejects_bad_files(tmp_path) -> None:
    with pytest.raises(ValueError):
        load_sosd(tmp_path / "keys.bin")

    short = tmp_path / "short_uint64"
    np.array([10, 1, 2], dtype="<u8").tofile(short)
    with pytest.raises(ValueError):
        load_sosd(short)

    empty = tmp_path / "empty_uint64"
    empty.write_bytes(b"")
    with pytest.raises(ValueError):
        load_sosd(empty)
