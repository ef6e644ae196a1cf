"""Core scoring and smoothing modules."""
