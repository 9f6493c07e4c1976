from dataclasses import dataclass


@dataclass(frozen=True)
class BookingNotice:
    email: str
    display_name: str | None
    service_name: str
    formatted_date: str

    def to_payload(self) -> dict[str, str]:
        return {
            "email": self.email,
            "nombre": self.display_name or "Usuario",
            "servicio": self.service_name,
            "fecha": self.formatted_date,
        }
