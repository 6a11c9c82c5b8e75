"""
Validation Module

Validates catalogs and row payloads before the scheduler mutates anything.

Exports:
    - check_row_data: Coerce a payload to 1-D or raise MalformedRowError
    - check_bundle_files: List catalog files missing from a bundle
    - CatalogIntegrityError: Raised when an operation has no valid master
    - MalformedRowError: Raised when a row payload is not 1-D
"""

from .input_validation import (
    check_row_data,
    check_bundle_files,
    CatalogIntegrityError,
    MalformedRowError,
    BUNDLE_CATALOG_FILES,
    BUNDLE_MATRIX_FILES,
)

__all__ = [
    'check_row_data',
    'check_bundle_files',
    'CatalogIntegrityError',
    'MalformedRowError',
    'BUNDLE_CATALOG_FILES',
    'BUNDLE_MATRIX_FILES',
]
