"""
Parser registry: picks the parser adapter for a media file by extension.
"""

from pathlib import Path
from typing import Optional
import structlog

from config import settings
from exceptions import PriceListParseError, UnsupportedFormatError
from models.price_list import FilePreview, Media, ParserConfig, SupplierLineRecord
from parsers.base import PriceListParser
from parsers.tabular_parser import CsvPriceParser, ExcelPriceParser

logger = structlog.get_logger(__name__)


class ParserRegistry:
    """Ordered set of parser adapters; the first that supports a file wins."""

    def __init__(self, media_root: Path, parsers: Optional[list[PriceListParser]] = None):
        self.media_root = Path(media_root)
        self.parsers: list[PriceListParser] = parsers if parsers is not None else [
            CsvPriceParser(),
            ExcelPriceParser(),
        ]

    def get_parser(self, media: Media) -> Optional[PriceListParser]:
        for parser in self.parsers:
            if parser.supports(media.file_extension):
                return parser
        return None

    def resolve_path(self, media: Media) -> Path:
        path = self.media_root / media.path
        if not path.is_file():
            raise PriceListParseError(
                message=f"File not found: {media.path}",
                details={"media_id": media.id, "path": str(path)}
            )
        return path

    def parse(self, media: Media, config: ParserConfig) -> list[SupplierLineRecord]:
        """
        Parse a media file into supplier line records.

        Raises:
            UnsupportedFormatError: No parser for the extension
            PriceListParseError: File missing or unreadable
        """
        parser = self._require_parser(media)
        path = self.resolve_path(media)

        logger.info(
            "parsing_price_list",
            media_id=media.id,
            parser=parser.name,
            start_row=config.start_row,
            mapped_columns=len(config.column_mapping)
        )
        records = parser.parse(path, config)
        logger.info("price_list_parsed", media_id=media.id, records=len(records))
        return records

    def preview(self, media: Media, preview_rows: int = 5) -> FilePreview:
        parser = self._require_parser(media)
        return parser.preview(self.resolve_path(media), preview_rows)

    def supported_extensions(self) -> list[str]:
        extensions: list[str] = []
        for parser in self.parsers:
            for extension in parser.extensions:
                if extension not in extensions:
                    extensions.append(extension)
        return extensions

    def parser_info(self) -> list[dict]:
        return [
            {"name": parser.name, "extensions": list(parser.extensions)}
            for parser in self.parsers
        ]

    def _require_parser(self, media: Media) -> PriceListParser:
        parser = self.get_parser(media)
        if parser is None:
            raise UnsupportedFormatError(
                extension=media.file_extension or "unknown",
                supported=self.supported_extensions()
            )
        return parser


_parser_registry: Optional[ParserRegistry] = None

def get_parser_registry() -> ParserRegistry:
    """Get or create ParserRegistry instance."""
    global _parser_registry
    if _parser_registry is None:
        _parser_registry = ParserRegistry(Path(settings.media_root))
    return _parser_registry
