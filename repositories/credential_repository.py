"""
repositories/credential_repository.py

Responsibility: Provides read/write access to stored DNS vendor credentials
in SQLite via SQLModel, and hands them to the core already decrypted.
Does NOT: call any DNS vendor, cache adapters, or log secret values.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from sqlmodel import Session, select

from db.models import DnsCredential, utc_now
from logger import describe_secrets
from providers.models import ProviderCredentials

logger = logging.getLogger(__name__)


@dataclass(repr=False)
class StoredCredential:
    """A decrypted credential row, detached from the session."""

    id: int
    name: str
    provider: str
    secrets: dict[str, str] = field(default_factory=dict)
    account_id: str | None = None

    def to_provider_credentials(self) -> ProviderCredentials:
        return ProviderCredentials(
            provider=self.provider,
            secrets=dict(self.secrets),
            account_id=self.account_id,
        )

    def __repr__(self) -> str:
        return (
            f"StoredCredential(id={self.id}, name={self.name!r}, provider={self.provider!r}, "
            f"secrets={describe_secrets(self.secrets)})"
        )


class CredentialSource(Protocol):
    """What ProviderService needs from credential storage."""

    def get(self, credential_id: int) -> StoredCredential | None: ...

    def list_for_provider(self, provider: str) -> list[StoredCredential]: ...


def _identity(value: str) -> str:
    return value


class CredentialRepository:
    """
    Manages persistence of DnsCredential rows.

    Secret values pass through ``decrypt`` on the way out and ``encrypt`` on
    the way in; both default to identity, leaving key management to the
    deployment.

    Collaborators:
        - Session: SQLModel DB session injected at construction time
    """

    def __init__(
        self,
        session: Session,
        decrypt: Callable[[str], str] | None = None,
        encrypt: Callable[[str], str] | None = None,
        on_change: Callable[[int], None] | None = None,
    ) -> None:
        """
        Initialises the repository with an active DB session.

        Args:
            session: An open SQLModel Session for the current request.
            decrypt: Maps a stored secret value to plaintext.
            encrypt: Maps a plaintext secret value to its stored form.
            on_change: Called with the credential id after its secrets are
                replaced or the row is deleted, e.g. AdapterCache.invalidate.
        """
        self._session = session
        self._decrypt = decrypt or _identity
        self._encrypt = encrypt or _identity
        self._on_change = on_change

    # ---------------------------------------------------------------------------
    # CredentialSource
    # ---------------------------------------------------------------------------

    def get(self, credential_id: int) -> StoredCredential | None:
        """
        Returns one decrypted credential.

        Args:
            credential_id: Primary key of the DnsCredential row.

        Returns:
            The StoredCredential, or None if no such row exists.
        """
        row = self._session.get(DnsCredential, credential_id)
        return self._to_stored(row) if row is not None else None

    def list_for_provider(self, provider: str) -> list[StoredCredential]:
        """
        Returns every credential of one vendor, default account first.

        Args:
            provider: Vendor id.

        Returns:
            A list of StoredCredential, possibly empty.
        """
        statement = (
            select(DnsCredential)
            .where(DnsCredential.provider == provider)
            .order_by(DnsCredential.is_default.desc(), DnsCredential.id)
        )
        return [self._to_stored(row) for row in self._session.exec(statement).all()]

    # ---------------------------------------------------------------------------
    # Writes
    # ---------------------------------------------------------------------------

    def add(
        self,
        name: str,
        provider: str,
        secrets: dict[str, str],
        account_id: str | None = None,
        is_default: bool = False,
    ) -> StoredCredential:
        """
        Stores a new credential.

        Returns:
            The stored credential with its assigned id.
        """
        row = DnsCredential(
            name=name,
            provider=provider,
            secrets_json=self._encode(secrets),
            account_id=account_id,
            is_default=is_default,
        )
        self._session.add(row)
        self._session.commit()
        self._session.refresh(row)
        logger.info(
            "Stored %s credential %s (%s) secrets=%s",
            provider, row.id, name, describe_secrets(secrets),
        )
        return self._to_stored(row)

    def update_secrets(self, credential_id: int, secrets: dict[str, str]) -> StoredCredential | None:
        """
        Replaces a credential's secrets.

        Returns:
            The updated credential, or None if no such row exists.
        """
        row = self._session.get(DnsCredential, credential_id)
        if row is None:
            return None
        row.secrets_json = self._encode(secrets)
        row.updated_at = utc_now()
        self._session.add(row)
        self._session.commit()
        self._session.refresh(row)
        logger.info("Updated secrets of credential %s.", credential_id)
        self._notify(credential_id)
        return self._to_stored(row)

    def delete(self, credential_id: int) -> bool:
        """
        Removes a credential.

        Returns:
            True if a row was deleted, False if it did not exist.
        """
        row = self._session.get(DnsCredential, credential_id)
        if row is None:
            return False
        self._session.delete(row)
        self._session.commit()
        logger.info("Deleted credential %s.", credential_id)
        self._notify(credential_id)
        return True

    # ---------------------------------------------------------------------------
    # Internal helpers
    # ---------------------------------------------------------------------------

    def _notify(self, credential_id: int) -> None:
        if self._on_change is not None:
            self._on_change(credential_id)

    def _encode(self, secrets: dict[str, str]) -> str:
        return json.dumps({k: self._encrypt(str(v)) for k, v in secrets.items()})

    def _to_stored(self, row: DnsCredential) -> StoredCredential:
        try:
            raw = json.loads(row.secrets_json or "{}")
        except (json.JSONDecodeError, TypeError):
            logger.warning("secrets_json of credential %s is corrupt; treating as empty.", row.id)
            raw = {}
        return StoredCredential(
            id=row.id,
            name=row.name,
            provider=row.provider,
            secrets={k: self._decrypt(str(v)) for k, v in raw.items()},
            account_id=row.account_id,
        )
