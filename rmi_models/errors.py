"""
===============================================================================
ERRORS
===============================================================================
Exception hierarchy for the learned-index model layer.

    LearnedIndexError
      ├── MalformedModelFileError   saved model unreadable or corrupt (fatal)
      ├── DegenerateDatasetError    nothing to train from (zero points)
      ├── NumericRangeError         zero key-delta reached a slope computation
      ├── DatasetOrderError         keys are not in non-decreasing order
      └── ConfigError               invalid model configuration

Nothing here is retried. Sparse buckets are not errors: they train to a
constant model instead.
===============================================================================
"""


class LearnedIndexError(Exception):
    """Base class for every error raised by rmi_models."""


class MalformedModelFileError(LearnedIndexError):
    """A serialized corrector could not be read back."""

    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"malformed model file {path}: {reason}")


class DegenerateDatasetError(LearnedIndexError):
    """Training was asked to proceed without a single data point."""


class NumericRangeError(LearnedIndexError):
    """Two breakpoints share a key, so the slope between them is undefined."""


class DatasetOrderError(LearnedIndexError):
    """Keys were not presented in non-decreasing order."""


class ConfigError(LearnedIndexError, ValueError):
    """A model parameter is outside its legal range."""
