"""Logging, correlation context, denial buffer and metrics."""
