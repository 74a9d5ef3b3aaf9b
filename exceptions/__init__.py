"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    DatabaseError,

    # Lookups
    TemplateNotFoundError,
    MediaNotFoundError,
    ProductNotFoundError,

    # Normalization
    ConfigurationError,
    EmptyDataError,
    StaleCacheError,

    # Parsers
    UnsupportedFormatError,
    PriceListParseError,

    # Matching
    DuplicateSupplierCodeError,

    # Writes
    CatalogWriteError,
    RecalculationError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "DatabaseError",

    # Lookups
    "TemplateNotFoundError",
    "MediaNotFoundError",
    "ProductNotFoundError",

    # Normalization
    "ConfigurationError",
    "EmptyDataError",
    "StaleCacheError",

    # Parsers
    "UnsupportedFormatError",
    "PriceListParseError",

    # Matching
    "DuplicateSupplierCodeError",

    # Writes
    "CatalogWriteError",
    "RecalculationError",
]
