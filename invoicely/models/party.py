from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from invoicely.settings import settings


class Address(BaseModel):
    street1: str
    street2: str = ""
    city: str
    state: str
    country: str
    zip: str

    @property
    def locality_line(self) -> str:
        return f"{self.city}, {self.state} {self.zip}"

    def lines(self) -> list[str]:
        result = [self.street1]
        if self.street2:
            result.append(self.street2)
        result.append(self.locality_line)
        result.append(self.country)
        return result


class PartyInfo(BaseModel):
    """Shared shape of the invoice sender and recipient."""

    display_name: str
    email: str
    phone: str = ""
    address: Address


class Client(PartyInfo):
    id: int | None = None
    uuid: str = ""
    owner_id: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


class SenderProfile(PartyInfo):
    owner_id: str = ""
    currency: str = settings.default_currency
    created_at: datetime | None = None
    updated_at: datetime | None = None
