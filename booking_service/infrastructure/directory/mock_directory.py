from __future__ import annotations

import logging

from booking_service.application.exceptions import NotFoundUpstreamError, UpstreamUnavailableError
from booking_service.application.ports.user_directory import UserDirectoryPort
from booking_service.domain.entities.user_profile import UserProfile


class MockUserDirectory(UserDirectoryPort):
    """
    In-memory directory for local runs and tests.
    With `auto_register` every unknown id resolves to a generated profile.
    """

    def __init__(self, profiles: list[UserProfile] | None = None, auto_register: bool = False) -> None:
        self._profiles: dict[str, UserProfile] = {p.external_id: p for p in profiles or []}
        self._auto_register = auto_register
        self.unavailable = False
        self.calls: list[tuple[str, str]] = []
        self._logger = logging.getLogger(__name__)

    def add(self, profile: UserProfile) -> None:
        self._profiles[profile.external_id] = profile

    def verify(self, external_id: str) -> UserProfile:
        self.calls.append(("verify", external_id))
        profile = self._lookup(external_id)
        if profile is None:
            raise NotFoundUpstreamError("user not found in identity service")
        return profile

    def get_profile(self, external_id: str) -> UserProfile:
        self.calls.append(("get_profile", external_id))
        profile = self._lookup(external_id)
        if profile is None:
            raise UpstreamUnavailableError(f"no profile for {external_id}")
        return profile

    def _lookup(self, external_id: str) -> UserProfile | None:
        if self.unavailable:
            raise UpstreamUnavailableError("user service unavailable")
        profile = self._profiles.get(external_id)
        if profile is None and self._auto_register:
            profile = UserProfile(
                external_id=external_id,
                email=f"{external_id}@example.com",
                display_name="Usuario",
            )
            self._profiles[external_id] = profile
            self._logger.info("Mock user registered", extra={"external_id": external_id})
        return profile
