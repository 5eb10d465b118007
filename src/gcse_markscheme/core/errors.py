"""
Module: core.errors

Purpose:
    Exceptions for corrupted reference data. Ordinary detection misses are
    never exceptions (they are `found=False` results); these are raised
    only when the corpus itself cannot be trusted.

Key Classes:
    - DataIntegrityError: Required corpus metadata or structure is missing

Used By:
    - core.models.corpus: Sub-question label validation
    - loading.parser: Ingestion of raw corpus documents
    - detection.service: Materialising matched papers
"""

from __future__ import annotations


class DataIntegrityError(Exception):
    """Reference data is missing required metadata or structure."""
    pass
