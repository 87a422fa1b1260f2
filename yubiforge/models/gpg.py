"""Parsed views of gpg's human-readable listings."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class SecretKeyEntry(BaseModel):
    """One ``sec`` block of ``gpg --list-secret-keys --keyid-format LONG``."""

    model_config = ConfigDict(frozen=True)

    key_id: str  # 16 hex digits
    algorithm: str
    fingerprint: str | None = None
    uids: list[str] = []
    stub: bool = False  # "sec#" or "sec>": secret part lives elsewhere

    def has_email(self, email: str) -> bool:
        """Exact, case-insensitive match of ``<email>`` in a user ID."""
        wanted = f"<{email.strip().lower()}>"
        return any(wanted in uid.lower() for uid in self.uids)


class CardStatus(BaseModel):
    """Summary of ``gpg --card-status`` for the inserted token."""

    model_config = ConfigDict(frozen=True)

    reader: str = ""
    serial: str = ""
    signature_key: str | None = None
    encryption_key: str | None = None
    authentication_key: str | None = None

    @property
    def has_keys(self) -> bool:
        """Whether any OpenPGP slot already holds a key."""
        return any(
            (self.signature_key, self.encryption_key, self.authentication_key)
        )
