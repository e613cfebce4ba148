"""
Utility functions for gridbook.

This module provides:
- logging: console logging setup and the file-based OperationLogger
"""

from .logging import OperationLogger, configure_logging

__all__ = [
    'OperationLogger',
    'configure_logging',
]
