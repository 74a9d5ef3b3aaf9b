"""
Custom exception classes for the application.

Every error carries a machine-readable code, an HTTP status and a details
dict naming the offending identifier (template, media or product id).
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "TEMPLATE_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
        stats: Partial result attached when a batch operation fails midway
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        self.stats: Optional[Any] = None
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found: {identifier}",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# LOOKUP ERRORS
# ===================

class TemplateNotFoundError(NotFoundError):
    """Price template not found."""

    def __init__(self, template_id: str):
        super().__init__(
            resource="Price template",
            identifier=template_id,
            code="TEMPLATE_NOT_FOUND"
        )


class MediaNotFoundError(NotFoundError):
    """Price list media file not found."""

    def __init__(self, media_id: str):
        super().__init__(
            resource="Media file",
            identifier=media_id,
            code="MEDIA_NOT_FOUND"
        )


class ProductNotFoundError(NotFoundError):
    """Catalog product not found."""

    def __init__(self, product_id: str):
        super().__init__(
            resource="Product",
            identifier=product_id,
            code="PRODUCT_NOT_FOUND"
        )


# ===================
# NORMALIZATION ERRORS
# ===================

class ConfigurationError(ValidationError):
    """Template is missing configuration needed for the requested step."""

    def __init__(self, message: str, template_id: Optional[str] = None, **details):
        super().__init__(
            code="TEMPLATE_NOT_CONFIGURED",
            message=message,
            details={"template_id": template_id, **details}
        )


class EmptyDataError(ValidationError):
    """Parsing succeeded but produced no records."""

    def __init__(self, template_id: str, media_id: str):
        super().__init__(
            code="PRICE_LIST_EMPTY",
            message=(
                "No data found in price list. "
                "Check column mapping and start row configuration."
            ),
            details={"template_id": template_id, "media_id": media_id}
        )


class StaleCacheError(ConflictError):
    """Normalized data was written by another request since it was read."""

    def __init__(self, template_id: str, expected_version: Optional[int]):
        super().__init__(
            code="TEMPLATE_CACHE_STALE",
            message="Price template was updated concurrently, retry the parse",
            details={"template_id": template_id, "expected_version": expected_version}
        )


# ===================
# PARSER ERRORS
# ===================

class UnsupportedFormatError(ValidationError):
    """No parser handles the file extension."""

    def __init__(self, extension: str, supported: list[str]):
        super().__init__(
            code="UNSUPPORTED_FORMAT",
            message=f"No parser available for file type: {extension}",
            details={"extension": extension, "supported": supported}
        )


class PriceListParseError(ValidationError):
    """Price list file could not be read."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="PRICE_LIST_PARSE_ERROR",
            message=message,
            details=details
        )


# ===================
# MATCHING ERRORS
# ===================

class DuplicateSupplierCodeError(ValidationError):
    """Supplier file repeats codes and the policy forbids it."""

    def __init__(self, codes: list[str]):
        super().__init__(
            code="DUPLICATE_SUPPLIER_CODE",
            message=f"Price list contains {len(codes)} duplicated supplier codes",
            details={"codes": codes}
        )


# ===================
# WRITE ERRORS
# ===================

class CatalogWriteError(AppError):
    """Catalog store rejected a batch update."""

    def __init__(
        self,
        message: str,
        product_ids: Optional[list[str]] = None,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="CATALOG_WRITE_FAILED",
            message=message,
            status_code=502,
            details={"product_ids": product_ids or [], **(details or {})}
        )


class RecalculationError(AppError):
    """Currency recalculation could not run."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code="RECALCULATION_FAILED",
            message=message,
            status_code=500,
            details=details
        )
