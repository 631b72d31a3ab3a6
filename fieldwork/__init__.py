"""Execution-sheet workflow engine for forestry worksheets."""

__version__ = "0.1.0"
