"""Slotkeeper — availability and booking lifecycle engine."""

__version__ = "0.1.0"
