"""
CLI runner module.

Provides commands:
- extract: Transactions from OCR text (file or Paperless document)
- correct: Learn from a reviewed correction batch
- patterns: Show learned merchant patterns
- init-config: Write a default config file
"""

from .main import create_cli, main

__all__ = [
    "create_cli",
    "main",
]
