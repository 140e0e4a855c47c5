# src/recipe/__init__.py — v1
