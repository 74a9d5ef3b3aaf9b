"""
Supplier price list parser adapters.
"""

from parsers.base import PriceListParser
from parsers.tabular_parser import CsvPriceParser, ExcelPriceParser
from parsers.registry import ParserRegistry, get_parser_registry

__all__ = [
    "PriceListParser",
    "CsvPriceParser",
    "ExcelPriceParser",
    "ParserRegistry",
    "get_parser_registry",
]
