from __future__ import annotations

import logging
from typing import Any

import httpx

from booking_service.application.exceptions import NotFoundUpstreamError, UpstreamUnavailableError
from booking_service.application.ports.user_directory import UserDirectoryPort
from booking_service.core.config import settings
from booking_service.domain.entities.user_profile import UserProfile


class UserServiceDirectory(UserDirectoryPort):
    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = base_url or settings.USER_SERVICE_URL
        if not self._base_url:
            raise ValueError("USER_SERVICE_URL is required for the user service directory")
        self._client = httpx.Client(
            base_url=self._base_url,
            timeout=timeout if timeout is not None else settings.UPSTREAM_TIMEOUT_SECONDS,
            transport=transport,
        )
        self._logger = logging.getLogger(__name__)

    def verify(self, external_id: str) -> UserProfile:
        response = self._fetch(external_id)
        if response.status_code == 404:
            self._logger.warning("User not found in user service", extra={"external_id": external_id})
            raise NotFoundUpstreamError("user not found in identity service")
        return self._profile_from(external_id, response)

    def get_profile(self, external_id: str) -> UserProfile:
        response = self._fetch(external_id)
        if response.status_code == 404:
            raise UpstreamUnavailableError(f"user service has no profile for {external_id}")
        return self._profile_from(external_id, response)

    def close(self) -> None:
        self._client.close()

    def _fetch(self, external_id: str) -> httpx.Response:
        try:
            return self._client.get(f"/users/{external_id}")
        except httpx.HTTPError as e:
            self._logger.error(
                "User service request failed",
                extra={"external_id": external_id, "error": str(e)},
            )
            raise UpstreamUnavailableError("user service unavailable") from e

    def _profile_from(self, external_id: str, response: httpx.Response) -> UserProfile:
        if response.status_code >= 400:
            self._logger.error(
                "User service error",
                extra={"external_id": external_id, "status": response.status_code},
            )
            raise UpstreamUnavailableError(f"user service answered {response.status_code}")
        try:
            payload: Any = response.json()
            if not isinstance(payload, dict):
                raise ValueError("user payload is not an object")
            return UserProfile.from_payload(external_id, payload)
        except ValueError as e:
            self._logger.error(
                "User service returned an unusable payload",
                extra={"external_id": external_id, "error": str(e)},
            )
            raise UpstreamUnavailableError("user service returned an invalid profile") from e
