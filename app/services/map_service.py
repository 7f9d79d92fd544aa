"""
Kakao Local API client - keyword place search for job posting addresses.
"""

import logging
from typing import List

import httpx

from app.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

_httpx_timeout = httpx.Timeout(10.0, connect=5.0)


def format_documents(documents: List[dict]) -> List[dict]:
    """Keep only places with a road address, shaped for the address picker."""
    results = []
    for document in documents or []:
        road_address = (document or {}).get("road_address_name")
        if not road_address:
            continue
        results.append({
            "address": f"{road_address} {document.get('place_name') or ''}",
            "x": document.get("x"),
            "y": document.get("y"),
        })
    return results


async def search_address(query: str) -> List[dict]:
    """Search Kakao by keyword. Raises httpx.HTTPError on upstream failure."""
    async with httpx.AsyncClient(timeout=_httpx_timeout) as client:
        response = await client.get(
            settings.kakao_search_url,
            headers={"Authorization": f"KakaoAK {settings.kakao_api_key}"},
            params={"query": query},
        )
        response.raise_for_status()
        data = response.json()

    return format_documents(data.get("documents", []))
