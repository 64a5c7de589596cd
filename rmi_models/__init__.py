"""Learned-index model layer: radix extractors, hint tables and ReLU correctors."""

__version__ = "0.1.0"
