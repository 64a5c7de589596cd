"""Tests for ModelConfig."""

from __future__ import annotations

from pathlib import Path

import pytest

from rmi_models.config import MAX_PREFIX_BITS, ModelConfig
from rmi_models.errors import ConfigError


def test_defaults_are_valid() -> None:
    cfg = ModelConfig().validate()
    assert cfg.threshold == 8.0
    assert cfg.prefix_bits == 4
    assert cfg.table_bits == 8
    assert cfg.model_dir == Path("./models")


def test_from_env(monkeypatch) -> None:
    monkeypatch.setenv("RMI_THRESHOLD", "2.5")
    monkeypatch.setenv("RMI_PREFIX_BITS", "6")
    monkeypatch.setenv("RMI_TABLE_BITS", "12")
    monkeypatch.setenv("RMI_MODEL_DIR", "/tmp/rmi")

    cfg = ModelConfig.from_env()
    assert cfg == ModelConfig(2.5, 6, 12, Path("/tmp/rmi"))


def test_from_env_overrides(monkeypatch) -> None:
    monkeypatch.setenv("RMI_PREFIX_BITS", "6")
    cfg = ModelConfig.from_env(prefix_bits=3)
    assert cfg.prefix_bits == 3


def test_from_env_rejects_garbage(monkeypatch) -> None:
    monkeypatch.setenv("RMI_TABLE_BITS", "many")
    with pytest.raises(ConfigError):
        ModelConfig.from_env()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"threshold": -0.1},
        {"threshold": float("nan")},
        {"prefix_bits": MAX_PREFIX_BITS + 1},
        {"table_bits": -2},
    ],
)
def test_validate_rejects(kwargs) -> None:
    with pytest.raises(ConfigError):
        ModelConfig(**kwargs).validate()


def test_config_is_frozen() -> None:
    with pytest.raises(AttributeError):
        ModelConfig().threshold = 1.0


@pytest.mark.parametrize("kwargs", [{"prefix_bits": 2.5}, {"table_bits": 8.0}, {"prefix_bits": None}])
def test_validate_rejects_non_integer_widths(kwargs) -> None:
    with pytest.raises(ConfigError):
        ModelConfig(**kwargs).validate()


def test_numpy_integer_widths_are_accepted() -> None:
    import numpy as np

    cfg = ModelConfig(prefix_bits=np.int64(3), table_bits=np.uint8(6)).validate()
    assert cfg.prefix_bits == 3
