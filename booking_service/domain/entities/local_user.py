from dataclasses import dataclass


@dataclass(frozen=True)
class LocalUser:
    id: str
    external_id: str
    email: str
    display_name: str | None = None
