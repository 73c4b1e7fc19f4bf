"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

MCP server exposing the vmanomaly anomaly-detection API as tools.
"""

__version__ = "0.1.0"

SERVER_NAME = "mcp-vmanomaly"

__all__ = ["SERVER_NAME", "__version__"]
