"""
routes/api_routes.py

Responsibility: The thin JSON API over the DNS core: health, capability
descriptors, credential verification and the all-accounts zone listing.
Does NOT: manage credentials, edit records, or talk to vendors directly.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from dependencies import get_provider_service
from exceptions import DnsProviderError
from providers.models import Zone
from providers.registry import get_all_capabilities, get_capabilities
from services.provider_service import ProviderService

logger = logging.getLogger(__name__)

router = APIRouter()


def _http_error(exc: DnsProviderError) -> HTTPException:
    """Maps an adapter error to an HTTPException, defaulting to 502 for vendor failures."""
    status = exc.http_status if exc.http_status and 400 <= exc.http_status < 600 else 502
    return HTTPException(status_code=status, detail=exc.to_dict())


def _zone_dict(zone: Zone) -> dict[str, Any]:
    return {
        "id": zone.id,
        "name": zone.name,
        "status": zone.status,
        "recordCount": zone.record_count,
        "updatedAt": zone.updated_at,
        "meta": zone.meta,
    }


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness check."""
    return {"status": "ok"}


@router.get("/api/providers")
async def list_providers() -> list[dict[str, Any]]:
    """Returns every registered vendor's capability descriptor."""
    return [caps.to_dict() for caps in get_all_capabilities()]


@router.get("/api/providers/{provider}")
async def get_provider(provider: str) -> dict[str, Any]:
    """
    Returns one vendor's capability descriptor.

    Raises:
        HTTPException: 404 for an unknown vendor id.
    """
    try:
        return get_capabilities(provider).to_dict()
    except DnsProviderError as exc:
        raise HTTPException(status_code=404, detail=exc.to_dict()) from exc


@router.post("/api/credentials/{credential_id}/verify")
async def verify_credential(
    credential_id: int,
    service: ProviderService = Depends(get_provider_service),
) -> dict[str, bool]:
    """
    Checks whether a stored credential is accepted by its vendor.

    Returns:
        {"valid": bool}. An unknown credential id answers 404.
    """
    try:
        valid = await service.check_auth(credential_id)
    except DnsProviderError as exc:
        raise _http_error(exc) from exc
    return {"valid": valid}


@router.get("/api/providers/{provider}/zones")
async def list_zones_for_provider(
    provider: str,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize"),
    keyword: str | None = None,
    service: ProviderService = Depends(get_provider_service),
) -> dict[str, Any]:
    """
    Lists zones across every stored credential of one vendor.

    Credentials whose call failed are listed under "failures" instead of
    failing the whole request.
    """
    try:
        get_capabilities(provider)
    except DnsProviderError as exc:
        raise HTTPException(status_code=404, detail=exc.to_dict()) from exc

    zones, failures = await service.get_zones_for_all(provider, page, page_size, keyword)
    return {
        "zones": [_zone_dict(zone) for zone in zones],
        "failures": [
            {
                "credentialId": outcome.credential_id,
                "credentialName": outcome.credential_name,
                "error": outcome.error.to_dict() if outcome.error else None,
            }
            for outcome in failures
        ],
    }
