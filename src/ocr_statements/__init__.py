"""
OCR statement text → structured transactions → human review → learned patterns

A deterministic, testable extractor that turns noisy OCR text from bank and
card statements into transactions with confidence scoring, routes uncertain
rows to review, and learns from approved corrections.
"""

__version__ = "0.1.0"
