# src/__init__.py — v1
"""promptassembler: recipe-driven prompt assembly for multi-stage AI pipelines."""

from promptassembler.version import __version__

__all__ = ["__version__"]
