"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Logging and metrics for the adapter process.
"""

from .logging import configure_logging, parse_level
from .metrics import ServerMetrics

__all__ = ["ServerMetrics", "configure_logging", "parse_level"]
