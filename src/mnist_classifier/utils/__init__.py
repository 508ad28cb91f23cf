"""Shared helpers for mnist_classifier."""
