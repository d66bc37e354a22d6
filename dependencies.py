"""
dependencies.py

Responsibility: Declares all FastAPI Depends() provider functions for
services and repositories used throughout the application.
Does NOT: contain business logic, HTTP handlers, or DB schema definitions.
"""

from __future__ import annotations

import httpx
from fastapi import Depends, Request
from sqlmodel import Session

from config import Settings
from db.database import get_session
from providers.retry import exponential_backoff
from repositories.credential_repository import CredentialRepository
from services.adapter_cache import AdapterCache
from services.provider_service import ProviderService

# ---------------------------------------------------------------------------
# Infrastructure: shared app-level resources
# ---------------------------------------------------------------------------


def get_http_client(request: Request) -> httpx.AsyncClient:
    """
    Returns the shared httpx.AsyncClient stored on app.state.

    The client is created once during the FastAPI lifespan and reused by
    every adapter, so connection pools are shared across vendors.

    Args:
        request: The current FastAPI Request (injected automatically).

    Returns:
        The application-level httpx.AsyncClient.
    """
    return request.app.state.http_client


def get_adapter_cache(request: Request) -> AdapterCache:
    """Returns the AdapterCache created in the lifespan."""
    return request.app.state.adapter_cache


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


# ---------------------------------------------------------------------------
# Repository providers
# ---------------------------------------------------------------------------


def get_credential_repo(
    session: Session = Depends(get_session),
    cache: AdapterCache = Depends(get_adapter_cache),
) -> CredentialRepository:
    """
    Provides a CredentialRepository for the current request's DB session.

    Secret rotations and deletions evict the credential's cached adapter.

    Args:
        session: The DB session injected by get_session.
        cache: The application-level AdapterCache.

    Returns:
        A CredentialRepository instance.
    """
    return CredentialRepository(session, on_change=cache.invalidate)


# ---------------------------------------------------------------------------
# Service providers
# ---------------------------------------------------------------------------


def get_provider_service(
    credential_repo: CredentialRepository = Depends(get_credential_repo),
    http_client: httpx.AsyncClient = Depends(get_http_client),
    cache: AdapterCache = Depends(get_adapter_cache),
    settings: Settings = Depends(get_settings),
) -> ProviderService:
    """
    Provides a ProviderService wired to the request's credential repository.

    The adapter cache outlives the request, so adapters built here are
    reused by later requests for the same credential.

    Args:
        credential_repo: Source of stored credentials.
        http_client: The application-level httpx.AsyncClient.
        cache: The application-level AdapterCache.
        settings: Runtime settings supplying the retry backoff schedule.

    Returns:
        A ProviderService instance.
    """
    return ProviderService(
        credential_repo,
        http_client,
        cache,
        backoff=exponential_backoff(settings.retry_base_delay, settings.retry_max_delay),
    )
