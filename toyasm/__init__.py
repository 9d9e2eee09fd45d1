"""A simulated segmented-memory CPU with a parser and interpreter for a toy assembly language."""

__version__ = "0.1.0"