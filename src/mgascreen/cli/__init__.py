"""
CLI commands for mgascreen.

Provides the command-line interface for screening alignment results.
"""

__all__ = ["assign", "main"]
