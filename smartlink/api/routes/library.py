"""
Library API routes.
Metadata extraction for links added to the library.
"""
import logging

from fastapi import APIRouter, Depends, Request

from smartlink.api.rate_limit import enforce_extraction_rate_limit
from smartlink.api.schemas import ExtractMetadataRequest, ExtractMetadataResponse
from smartlink.services.errors import ServiceUnavailableError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/library", tags=["library"])


@router.post(
    "/extract-metadata",
    response_model=ExtractMetadataResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(enforce_extraction_rate_limit)]
)
async def extract_metadata(body: ExtractMetadataRequest, request: Request):
    """Extract title, author, tags etc. for a URL."""
    services = request.app.state.services
    if not services.llm_configured:
        raise ServiceUnavailableError("OpenAI API key not configured", retryable=False)

    content = await services.extraction_service.extract_content(
        body.url,
        force_refresh=body.force_refresh
    )

    return ExtractMetadataResponse(data=content.to_dict())
