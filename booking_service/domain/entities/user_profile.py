from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class UserProfile:
    external_id: str
    email: str
    display_name: str | None = None

    @staticmethod
    def from_payload(external_id: str, payload: dict[str, Any]) -> "UserProfile":
        """Build a profile from a user-service response (name arrives as `nombre` or `name`)."""
        email = str(payload.get("email") or "").strip()
        if not email:
            raise ValueError("user payload has no email")
        name = payload.get("nombre") or payload.get("name")
        return UserProfile(
            external_id=str(payload.get("id") or payload.get("_id") or external_id),
            email=email,
            display_name=str(name).strip() if name else None,
        )
