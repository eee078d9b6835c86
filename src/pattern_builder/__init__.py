"""Filename pattern builder: infer, generate and validate grouping patterns."""

__version__ = "0.1.0"
