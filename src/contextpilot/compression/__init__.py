"""Token-budget compression of ranked context."""

from .compressor import RELEVANCE_THRESHOLDS, ContextCompressor, compression_summary

__all__ = ["ContextCompressor", "RELEVANCE_THRESHOLDS", "compression_summary"]
