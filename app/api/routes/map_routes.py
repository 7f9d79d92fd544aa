"""
Map Routes

GET /map/search - Address / place keyword search (Kakao)
"""

import logging

import httpx
from fastapi import APIRouter, HTTPException, Query

from app.core.errors import SERVER_ERROR
from app.schemas.schemas import AddressSearchResponse
from app.services import map_service

router = APIRouter(prefix="/map", tags=["Map"])
logger = logging.getLogger(__name__)


@router.get("/search", response_model=AddressSearchResponse)
async def search_address(address: str = Query(..., min_length=1)):
    """Only places that have a road address are returned."""
    try:
        results = await map_service.search_address(address)
    except httpx.HTTPError as e:
        logger.error("Kakao search failed: %s", e)
        raise HTTPException(status_code=500, detail=SERVER_ERROR)

    return AddressSearchResponse(search_result_list=results)
