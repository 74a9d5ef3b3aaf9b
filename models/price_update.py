"""
Request and response bodies of the price update API.
"""

from typing import Optional

from pydantic import Field

from models.apply import ApplyStats, MatchDecision, RecalcPriceType, RecalculationStats
from models.base import BaseSchema
from models.matching import MatchPair
from models.price_list import SupplierLineRecord


class TemplateRequest(BaseSchema):
    template_id: str = Field(..., min_length=1)


class PreviewFileRequest(BaseSchema):
    media_id: str = Field(..., min_length=1)
    preview_rows: int = Field(5, ge=1, le=100)


class ParseRequest(TemplateRequest):
    media_id: Optional[str] = Field(None, description="Defaults to the template's selected media")
    force_refresh: bool = False


class ParseResponse(BaseSchema):
    success: bool = True
    data: list[SupplierLineRecord]
    count: int


class UpdateMatchRequest(TemplateRequest):
    product_id: str = Field(..., min_length=1)
    supplier_code: str = Field(..., min_length=1)


class AutoMatchRequest(TemplateRequest):
    batch_size: int = Field(50, ge=1, le=1000)
    offset: int = Field(0, ge=0)


class ConfirmMatchesRequest(TemplateRequest):
    matches: list[MatchPair] = Field(default_factory=list)


class ApplyRequest(TemplateRequest):
    confirmed_matches: list[MatchDecision] = Field(
        default_factory=list,
        description="Empty applies every matched preview row"
    )


class ApplyResponse(BaseSchema):
    success: bool = True
    stats: ApplyStats


class RecalculateRequest(BaseSchema):
    price_type: RecalcPriceType = RecalcPriceType.RETAIL
    limit: Optional[int] = Field(None, ge=1)


class RecalculateResponse(BaseSchema):
    success: bool = True
    stats: RecalculationStats
