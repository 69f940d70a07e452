"""Robokache: hosted store for hierarchical, access-controlled documents."""

__version__ = "1.0.0"
