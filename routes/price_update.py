"""
Price update API routes.

Supplier price list reconciliation: parse, preview, match, confirm, apply.
All endpoints return the standard error envelope on failure.
"""

from fastapi import APIRouter, Header
from fastapi.responses import JSONResponse
from typing import Optional
import structlog

from models.price_update import (
    ApplyRequest,
    ApplyResponse,
    AutoMatchRequest,
    ConfirmMatchesRequest,
    ParseRequest,
    ParseResponse,
    PreviewFileRequest,
    RecalculateRequest,
    RecalculateResponse,
    TemplateRequest,
    UpdateMatchRequest,
)
from services.price_update_service import get_price_update_service
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/price-update", tags=["Price Update"])


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        content = e.to_dict()
        # A failed apply still reports its per-item counts
        if e.stats is not None:
            content["stats"] = e.stats.model_dump(mode="json")
        return JSONResponse(
            status_code=e.status_code,
            content=content
        )
    # Unexpected error
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


# ===================
# PARSING
# ===================

@router.post("/preview-file")
async def preview_file(data: PreviewFileRequest):
    """
    Raw first rows of a file, used to set up the column mapping.

    Raises:
        404: Media not found
        422: Unsupported file type
    """
    try:
        service = get_price_update_service()
        preview = service.preview_file(data.media_id, data.preview_rows)
        return {"success": True, "data": preview}

    except Exception as e:
        return handle_error(e)


@router.post("/parse", response_model=ParseResponse)
async def parse_price_list(data: ParseRequest):
    """
    Parse and normalize a template's price list.

    Served from the template cache unless the media file changed or
    force_refresh is set.
    """
    try:
        service = get_price_update_service()
        records = service.parse_and_normalize(
            data.template_id,
            media_id=data.media_id,
            force_refresh=data.force_refresh
        )
        return ParseResponse(data=records, count=len(records))

    except Exception as e:
        return handle_error(e)


@router.get("/supported-types")
async def supported_types():
    """File types the parsers can read."""
    try:
        service = get_price_update_service()
        return {"success": True, "data": service.supported_types()}

    except Exception as e:
        return handle_error(e)


# ===================
# MATCHING
# ===================

@router.post("/match-preview")
async def match_preview(data: TemplateRequest):
    """Matched product rows, unmatched price list lines and counts."""
    try:
        service = get_price_update_service()
        preview = service.match_preview(data.template_id)
        return {"success": True, "data": preview}

    except Exception as e:
        return handle_error(e)


@router.post("/update-match")
async def update_match(data: UpdateMatchRequest):
    """Manually pair a product with a supplier code."""
    try:
        service = get_price_update_service()
        service.update_match(data.template_id, data.product_id, data.supplier_code)
        return {"success": True}

    except Exception as e:
        return handle_error(e)


@router.post("/auto-match")
async def auto_match(data: AutoMatchRequest):
    """Fuzzy name proposals for unmatched lines. Nothing is saved."""
    try:
        service = get_price_update_service()
        result = service.auto_match(
            data.template_id,
            batch_size=data.batch_size,
            offset=data.offset
        )
        return {"success": True, "data": result}

    except Exception as e:
        return handle_error(e)


@router.post("/confirm-matches")
async def confirm_matches(data: ConfirmMatchesRequest):
    """Save reviewed product / supplier code pairs."""
    try:
        service = get_price_update_service()
        result = service.confirm_all_matches(data.template_id, data.matches)
        return {"success": True, "data": result}

    except Exception as e:
        return handle_error(e)


# ===================
# WRITES
# ===================

@router.post("/apply", response_model=ApplyResponse)
async def apply_prices(
    data: ApplyRequest,
    x_user_id: Optional[str] = Header(None, description="User recorded on the template")
):
    """
    Write confirmed prices, supplier codes and stock to the catalog.

    Raises:
        422: No decisions given and no matched rows
        502: Catalog rejected the batch (body includes stats)
    """
    try:
        service = get_price_update_service()
        stats = service.apply_prices(
            data.template_id,
            decisions=data.confirmed_matches,
            user_id=x_user_id
        )
        return ApplyResponse(stats=stats)

    except Exception as e:
        return handle_error(e)


@router.post("/recalculate", response_model=RecalculateResponse)
async def recalculate_prices(data: RecalculateRequest):
    """Convert stored supplier prices to base currency prices."""
    try:
        service = get_price_update_service()
        stats = service.recalculate(data.price_type, data.limit)
        return RecalculateResponse(stats=stats)

    except Exception as e:
        return handle_error(e)
