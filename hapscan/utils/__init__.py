"""Utility modules for infrastructure and helpers."""

from .memory_monitor import MemoryMonitor
from .logging_setup import setup_logger, component_logger
from .validation import validate_cli_arguments
from .indexing import ensure_variant_index, infer_input_format

__all__ = [
    "MemoryMonitor",
    "setup_logger",
    "component_logger",
    "validate_cli_arguments",
    "ensure_variant_index",
    "infer_input_format",
]
