"""Model families of the learned index and a name-keyed trainer."""

from rmi_models.config import ModelConfig
from rmi_models.models.base import (
    Model,
    ModelDataType,
    ModelKind,
    ModelParam,
    ModelRestriction,
    ParamKind,
)
from rmi_models.models.piecewise import PiecewiseCorrector
from rmi_models.models.prefix_bucketed import PrefixBucketedModel
from rmi_models.models.radix import RadixModel, RadixTable
from rmi_models.models.segmentation import derive_breakpoints, train_segment

__all__ = [
    "Model",
    "ModelDataType",
    "ModelKind",
    "ModelParam",
    "ModelRestriction",
    "ParamKind",
    "PiecewiseCorrector",
    "PrefixBucketedModel",
    "RadixModel",
    "RadixTable",
    "derive_breakpoints",
    "train_segment",
    "train_model",
]


def train_model(kind, data, config: ModelConfig = None) -> Model:
    """Build the model family named by ``kind`` (a ModelKind or its name)."""
    config = (config or ModelConfig()).validate()
    if not isinstance(kind, ModelKind):
        try:
            kind = ModelKind(kind)
        except ValueError:
            names = ", ".join(k.value for k in ModelKind)
            raise ValueError(f"unknown model type {kind!r} (expected one of: {names})") from None

    if kind is ModelKind.RADIX:
        model = RadixModel()
    elif kind is ModelKind.RADIX_TABLE:
        model = RadixTable(bits=config.table_bits)
    elif kind is ModelKind.PREFIX_BUCKETED:
        model = PrefixBucketedModel(prefix=config.prefix_bits, threshold=config.threshold)
    else:  # pragma: no cover - ModelKind is closed
        raise AssertionError(kind)
    return model.build_from_sorted_data(data)
