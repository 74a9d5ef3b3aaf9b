"""
Base class for supplier price list parsers.

Holds the cell normalisation every format shares: spreadsheet column
letters, prices written with local separators and currency signs,
supplier codes and free-text stock values.
"""

import re
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

from models.price_list import ColumnType, FilePreview, ParserConfig, SupplierLineRecord

CURRENCY_SIGNS = re.compile(r"[₴$€£\s ]")
NON_NUMERIC = re.compile(r"[^\d.\-]")
FIRST_NUMBER = re.compile(r"-?\d+(?:[.,]\d+)?")
PRICE_HEADER = re.compile(r"price|цена|ціна|cost|стоимость", re.IGNORECASE)


def column_to_index(column: str) -> int:
    """'A' -> 0, 'Z' -> 25, 'AA' -> 26. Numeric strings are taken as indexes."""
    if column.isdigit():
        return int(column)
    index = 0
    for char in column.upper():
        index = index * 26 + (ord(char) - ord("A") + 1)
    return index - 1


def index_to_column(index: int) -> str:
    """0 -> 'A', 26 -> 'AA'."""
    column = ""
    index += 1
    while index > 0:
        index, remainder = divmod(index - 1, 26)
        column = chr(remainder + ord("A")) + column
    return column


def normalize_price(value: Optional[str]) -> Optional[Decimal]:
    """
    Parse a price cell.

    "1 234,50 ₴" -> 1234.50, "1,234.50" -> 1234.50, "" -> None
    """
    if value is None or str(value).strip() == "":
        return None

    cleaned = CURRENCY_SIGNS.sub("", str(value))
    if "," in cleaned and "." in cleaned:
        # Whichever separator comes last is the decimal one
        if cleaned.rfind(",") > cleaned.rfind("."):
            cleaned = cleaned.replace(".", "").replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")
    else:
        cleaned = cleaned.replace(",", ".")
    cleaned = NON_NUMERIC.sub("", cleaned)

    if cleaned in ("", "-"):
        return None
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return None


def normalize_code(value: Optional[str]) -> str:
    if value is None:
        return ""
    return str(value).strip().upper()


def normalize_name(value: Optional[str]) -> str:
    if value is None:
        return ""
    return str(value).strip()


def normalize_availability(value: Optional[str]) -> Optional[int]:
    """First number in the cell, truncated to int ('> 10 шт' -> 10)."""
    if value is None:
        return None
    match = FIRST_NUMBER.search(str(value))
    if not match:
        return None
    return int(float(match.group(0).replace(",", ".")))


class PriceListParser(ABC):
    """
    A raw parser adapter.

    Subclasses load a file into rows keyed by column letter; mapping those
    rows onto SupplierLineRecord is shared.
    """

    name: str = "Parser"
    extensions: tuple[str, ...] = ()

    def supports(self, extension: Optional[str]) -> bool:
        return bool(extension) and extension.lower() in self.extensions

    @abstractmethod
    def read_rows(self, path: Path, config: ParserConfig) -> list[dict[str, str]]:
        """Return every row of the file as {column_letter: cell_text}."""

    def parse(self, path: Path, config: ParserConfig) -> list[SupplierLineRecord]:
        rows = self.read_rows(path, config)

        records = []
        for row_number, row in enumerate(rows, start=1):
            if row_number < config.start_row:
                continue
            if config.max_rows is not None and len(records) >= config.max_rows:
                break

            record = self.map_row(row, config.column_mapping)
            if record is None:
                continue
            records.append(record)

        return records

    def preview(self, path: Path, preview_rows: int = 5) -> FilePreview:
        rows = self.read_rows(path, ParserConfig())
        head = rows[: preview_rows + 2]
        headers = dict(head[0]) if head else {}

        suggested = 2
        for column, title in headers.items():
            if PRICE_HEADER.search(title or ""):
                suggested = self.detect_data_start_row(head[1:], column) + 1
                break

        return FilePreview(
            headers=headers,
            rows=head[:preview_rows],
            suggested_start_row=suggested,
        )

    @staticmethod
    def map_row(row: dict[str, str], mapping: dict[str, list[ColumnType]]) -> Optional[SupplierLineRecord]:
        """Map one row; rows without a code and without any price are dropped."""
        item: dict = {}
        for column, types in mapping.items():
            cell = row.get(column)
            for column_type in types:
                if column_type == ColumnType.PRODUCT_CODE:
                    item["code"] = normalize_code(cell)
                elif column_type == ColumnType.PRODUCT_NAME:
                    item["name"] = normalize_name(cell)
                elif column_type == ColumnType.PURCHASE_PRICE:
                    item["purchase_price"] = normalize_price(cell)
                elif column_type == ColumnType.RETAIL_PRICE:
                    item["retail_price"] = normalize_price(cell)
                elif column_type == ColumnType.LIST_PRICE:
                    item["list_price"] = normalize_price(cell)
                elif column_type == ColumnType.AVAILABILITY:
                    item["availability"] = normalize_availability(cell)

        has_price = any(
            item.get(key) is not None
            for key in ("purchase_price", "retail_price", "list_price")
        )
        if not item.get("code") and not has_price:
            return None
        return SupplierLineRecord(**item)

    @staticmethod
    def detect_data_start_row(rows: list[dict[str, str]], price_column: str) -> int:
        """1-indexed position of the first row with a positive price."""
        for index, row in enumerate(rows):
            price = normalize_price(row.get(price_column))
            if price is not None and price > 0:
                return index + 1
        return 2
