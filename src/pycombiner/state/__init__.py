"""State layer.

This package holds the latest known value per input path and decides,
per combination rule, which of those values are ready to be combined.
"""
