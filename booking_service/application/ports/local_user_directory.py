from abc import ABC, abstractmethod

from booking_service.domain.entities.local_user import LocalUser
from booking_service.domain.entities.user_profile import UserProfile


class LocalUserDirectoryPort(ABC):
    @abstractmethod
    def upsert(self, external_id: str, profile: UserProfile) -> LocalUser:
        """
        Return the local user for `external_id`, creating it from `profile` if absent.
        Atomic on the unique external id; an existing record is returned unchanged.
        """
        raise NotImplementedError

    @abstractmethod
    def find_by_external_id(self, external_id: str) -> LocalUser | None:
        raise NotImplementedError

    @abstractmethod
    def find_by_id(self, user_id: str) -> LocalUser | None:
        raise NotImplementedError
