"""Metric primitives, collectors, and a low-level Prometheus HTTP API client."""

__version__ = "0.1.0"