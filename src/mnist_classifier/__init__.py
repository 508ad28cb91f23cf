"""Digit classifier training with an accuracy-driven checkpoint policy."""

__version__ = "0.0.1"
