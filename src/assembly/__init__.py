# src/assembly/__init__.py — v1
