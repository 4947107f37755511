"""Shared utilities."""

from ._logging import LogFormatType, create_logger, create_null_logger

__all__ = [
    "LogFormatType",
    "create_logger",
    "create_null_logger",
]
