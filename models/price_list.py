"""
Supplier price list schemas.

A price list file is parsed into an ordered list of SupplierLineRecord,
one per data row, using the template's column mapping.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import Field, TypeAdapter, field_validator

from models.base import BaseSchema, FrozenSchema


class ColumnType(str, Enum):
    """What a mapped spreadsheet column contains."""
    PRODUCT_CODE = "product_code"
    PRODUCT_NAME = "product_name"
    PURCHASE_PRICE = "purchase_price"
    RETAIL_PRICE = "retail_price"
    LIST_PRICE = "list_price"
    AVAILABILITY = "availability"
    IGNORE = "ignore"


class SupplierLineRecord(FrozenSchema):
    """
    One normalized row of a supplier price list.

    Codes are not unique within a file; the matcher decides how duplicates
    are treated.
    """

    code: str = Field("", description="Supplier SKU, uppercased (may be empty)")
    name: str = Field("", description="Supplier product name")
    purchase_price: Optional[Decimal] = None
    retail_price: Optional[Decimal] = None
    list_price: Optional[Decimal] = None
    availability: Optional[int] = Field(None, description="Quantity in stock at supplier")

    @field_validator("code", "name", mode="before")
    @classmethod
    def none_is_empty(cls, v):
        return "" if v is None else v


# Serializer for the normalized_data cache blob
LINE_RECORDS = TypeAdapter(list[SupplierLineRecord])


class Media(BaseSchema):
    """Uploaded price list file."""

    id: str
    file_name: str = ""
    file_extension: Optional[str] = None
    path: str = Field(..., description="Path relative to settings.media_root")
    updated_at: Optional[datetime] = Field(None, description="Source last-modified timestamp")

    @field_validator("file_extension")
    @classmethod
    def extension_lowercase(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return v.lower().lstrip(".")


class ParserConfig(BaseSchema):
    """Arguments handed to a raw parser adapter."""

    start_row: int = Field(2, ge=1, description="1-indexed first data row")
    column_mapping: dict[str, list[ColumnType]] = Field(default_factory=dict)
    delimiter: Optional[str] = Field(None, description="CSV delimiter, sniffed when omitted")
    max_rows: Optional[int] = Field(None, ge=1)


class FilePreview(BaseSchema):
    """First rows of a file, used to configure the column mapping."""

    headers: dict[str, str] = Field(default_factory=dict)
    rows: list[dict[str, str]] = Field(default_factory=list)
    suggested_start_row: int = 2
    detected_delimiter: Optional[str] = None
