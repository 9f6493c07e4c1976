from abc import ABC, abstractmethod

from booking_service.domain.entities.user_profile import UserProfile


class UserDirectoryPort(ABC):
    @abstractmethod
    def verify(self, external_id: str) -> UserProfile:
        """
        Confirm the identity exists in the user service.
        Raises NotFoundUpstreamError if it does not, UpstreamUnavailableError if the check failed.
        """
        raise NotImplementedError

    @abstractmethod
    def get_profile(self, external_id: str) -> UserProfile:
        """Fetch profile data. Raises UpstreamUnavailableError on any failure."""
        raise NotImplementedError
