"""
CSV and Excel price list parsers built on pandas.

Cells are read as text so that codes keep leading zeros and prices keep
the supplier's separators until normalize_price sees them.
"""

from pathlib import Path
from typing import Optional
import structlog

import pandas as pd

from exceptions import PriceListParseError
from models.price_list import FilePreview, ParserConfig
from parsers.base import PriceListParser, index_to_column

logger = structlog.get_logger(__name__)

DEFAULT_DELIMITER = ","
FALLBACK_DELIMITERS = (";", "\t", "|")


def _frame_to_rows(frame: pd.DataFrame) -> list[dict[str, str]]:
    """DataFrame with positional columns -> list of {letter: text}."""
    letters = [index_to_column(i) for i in range(len(frame.columns))]
    rows = []
    for values in frame.itertuples(index=False, name=None):
        rows.append({
            letter: ("" if pd.isna(value) else str(value))
            for letter, value in zip(letters, values)
        })
    return rows


class CsvPriceParser(PriceListParser):
    """Delimited text files; the delimiter is sniffed from the first lines."""

    name = "CSV Parser"
    extensions = ("csv", "txt")

    def read_rows(self, path: Path, config: ParserConfig) -> list[dict[str, str]]:
        delimiter = config.delimiter or self.detect_delimiter(path)
        try:
            frame = pd.read_csv(
                path,
                sep=delimiter,
                header=None,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=False,
                encoding="utf-8-sig",
                engine="python",
            )
        except Exception as e:
            logger.error("csv_read_failed", path=str(path), error=str(e))
            raise PriceListParseError(
                message="Failed to read CSV file",
                details={"path": str(path), "original_error": str(e)}
            )
        return _frame_to_rows(frame)

    def preview(self, path: Path, preview_rows: int = 5) -> FilePreview:
        preview = super().preview(path, preview_rows)
        preview.detected_delimiter = self.detect_delimiter(path)
        return preview

    @staticmethod
    def detect_delimiter(path: Path, sample_lines: int = 5) -> str:
        """Pick the delimiter that splits the first lines most consistently."""
        try:
            with open(path, encoding="utf-8-sig", errors="replace") as handle:
                lines = [line for _, line in zip(range(sample_lines), handle)]
        except OSError as e:
            raise PriceListParseError(
                message="Cannot open CSV file",
                details={"path": str(path), "original_error": str(e)}
            )

        best: Optional[str] = None
        best_count = 0
        for delimiter in (DEFAULT_DELIMITER, *FALLBACK_DELIMITERS):
            counts = [line.count(delimiter) for line in lines if line.strip()]
            if not counts or min(counts) == 0:
                continue
            if min(counts) > best_count:
                best, best_count = delimiter, min(counts)
        return best or DEFAULT_DELIMITER


class ExcelPriceParser(PriceListParser):
    """xlsx/xls workbooks; only the first sheet is read."""

    name = "Excel Parser"
    extensions = ("xlsx", "xls")

    def read_rows(self, path: Path, config: ParserConfig) -> list[dict[str, str]]:
        try:
            frame = pd.read_excel(
                path,
                sheet_name=0,
                header=None,
                dtype=str,
                keep_default_na=False,
                engine="xlrd" if path.suffix.lower() == ".xls" else "openpyxl",
            )
        except Exception as e:
            logger.error("excel_read_failed", path=str(path), error=str(e))
            raise PriceListParseError(
                message="Failed to read Excel file",
                details={"path": str(path), "original_error": str(e)}
            )
        return _frame_to_rows(frame)
