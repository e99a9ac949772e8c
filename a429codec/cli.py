"""
Command-line interface module for a429codec.
This module is imported by __main__.py to provide the CLI functionality.
"""

# The actual CLI is implemented in __main__.py

from .__main__ import cli, main

__all__ = ['cli', 'main']
