from abc import ABC, abstractmethod
from decimal import Decimal

from invoicely.models.invoice import InvoiceDocument
from invoicely.models.party import Client, SenderProfile
from invoicely.models.suggestion import ItemSuggestion


class ProfileRepository(ABC):
    @abstractmethod
    def get_by_owner(self, owner_id: str) -> SenderProfile | None: ...

    @abstractmethod
    def save(self, profile: SenderProfile) -> SenderProfile: ...


class ClientRepository(ABC):
    @abstractmethod
    def create(self, client: Client) -> Client: ...

    @abstractmethod
    def get_by_id(self, client_id: int) -> Client | None: ...

    @abstractmethod
    def get_by_uuid(self, uuid: str) -> Client | None: ...

    @abstractmethod
    def list_by_owner(self, owner_id: str) -> list[Client]: ...

    @abstractmethod
    def update(self, client: Client) -> Client: ...

    @abstractmethod
    def delete(self, client_id: int) -> None: ...


class InvoiceRepository(ABC):
    @abstractmethod
    def create(self, invoice: InvoiceDocument) -> InvoiceDocument: ...

    @abstractmethod
    def get_by_id(self, invoice_id: int) -> InvoiceDocument | None: ...

    @abstractmethod
    def get_by_uuid(self, uuid: str) -> InvoiceDocument | None: ...

    @abstractmethod
    def list_by_owner(self, owner_id: str) -> list[InvoiceDocument]: ...

    @abstractmethod
    def update(self, invoice: InvoiceDocument) -> InvoiceDocument: ...

    @abstractmethod
    def delete(self, invoice_id: int) -> None: ...

    @abstractmethod
    def latest_for_client(self, owner_id: str, client_id: int) -> InvoiceDocument | None: ...

    @abstractmethod
    def top_item_names(self, owner_id: str, limit: int) -> list[ItemSuggestion]: ...

    @abstractmethod
    def recent_unit_cost(self, owner_id: str, item_name: str) -> Decimal | None: ...
