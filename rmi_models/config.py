"""
===============================================================================
CONFIGURATION
===============================================================================
Training knobs shared by the model families, with environment overrides.

    RMI_THRESHOLD     segmentation error threshold (float)
    RMI_PREFIX_BITS   key prefix width for the bucketed corrector model
    RMI_TABLE_BITS    slot bit width of the radix hint table
    RMI_MODEL_DIR     directory used when saving corrector files

Usage:
    from rmi_models.config import ModelConfig

    cfg = ModelConfig.from_env().validate()
===============================================================================
"""

from __future__ import annotations

import numbers
import os
from dataclasses import dataclass, field, replace
from pathlib import Path

from rmi_models.errors import ConfigError

# Bucketed model allocates 2**prefix correctors up front
MAX_PREFIX_BITS = 24
# the past-the-end sentinel 2**bits must fit in a uint32 slot
MAX_TABLE_BITS = 31
# On-disk record: little-endian IEEE-754 double
FLOAT_RECORD = "<f8"


@dataclass(frozen=True)
class ModelConfig:
    """Immutable training configuration."""

    threshold: float = 8.0
    prefix_bits: int = 4
    table_bits: int = 8
    model_dir: Path = field(default_factory=lambda: Path("./models"))

    @classmethod
    def from_env(cls, **overrides) -> "ModelConfig":
        """Build a config from RMI_* environment variables, then apply overrides."""
        base = cls()
        try:
            cfg = cls(
                threshold=float(os.environ.get("RMI_THRESHOLD", base.threshold)),
                prefix_bits=int(os.environ.get("RMI_PREFIX_BITS", base.prefix_bits)),
                table_bits=int(os.environ.get("RMI_TABLE_BITS", base.table_bits)),
                model_dir=Path(os.environ.get("RMI_MODEL_DIR", str(base.model_dir))),
            )
        except ValueError as exc:
            raise ConfigError(f"invalid RMI_* environment value: {exc}") from exc
        return replace(cfg, **overrides) if overrides else cfg

    def validate(self) -> "ModelConfig":
        """Fail fast on out-of-range values; returns self for chaining."""
        if not self.threshold >= 0.0:
            raise ConfigError(f"threshold must be non-negative, got {self.threshold}")
        check_prefix_bits(self.prefix_bits)
        check_table_bits(self.table_bits)
        return self


def _check_width(name: str, value) -> None:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise ConfigError(f"{name} must be an integer, got {value!r}")


def check_prefix_bits(prefix: int) -> int:
    _check_width("prefix", prefix)
    if not 0 <= prefix <= MAX_PREFIX_BITS:
        raise ConfigError(f"prefix must be in [0, {MAX_PREFIX_BITS}], got {prefix}")
    return int(prefix)


def check_table_bits(bits: int) -> int:
    _check_width("table bits", bits)
    if not 0 <= bits <= MAX_TABLE_BITS:
        raise ConfigError(f"table bits must be in [0, {MAX_TABLE_BITS}], got {bits}")
    return int(bits)
