"""Beans: a file-backed issue graph with link analysis and parallel launchers."""

__version__ = "0.4.0"
