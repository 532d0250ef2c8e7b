from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Connection, text
from sqlalchemy.engine import RowMapping
from ulid import ULID

from invoicely.constants import UTC
from invoicely.models.invoice import InvoiceDocument, InvoiceStatus, LineItem
from invoicely.models.party import Address, Client, SenderProfile
from invoicely.models.suggestion import ItemSuggestion
from invoicely.repositories.base import ClientRepository, InvoiceRepository, ProfileRepository


def _now() -> datetime:
    return datetime.now(UTC)


def _party_params(party: Client | SenderProfile) -> dict:
    return {
        "display_name": party.display_name,
        "email": party.email,
        "phone": party.phone,
        "street1": party.address.street1,
        "street2": party.address.street2,
        "city": party.address.city,
        "state": party.address.state,
        "country": party.address.country,
        "zip": party.address.zip,
    }


def _address(row: RowMapping) -> Address:
    return Address(
        street1=row["street1"],
        street2=row["street2"],
        city=row["city"],
        state=row["state"],
        country=row["country"],
        zip=row["zip"],
    )


class SQLAlchemyProfileRepository(ProfileRepository):
    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    def get_by_owner(self, owner_id: str) -> SenderProfile | None:
        row = (
            self.conn.execute(
                text("SELECT * FROM sender_profiles WHERE owner_id = :owner_id"),
                {"owner_id": owner_id},
            )
            .mappings()
            .fetchone()
        )
        if row is None:
            return None
        return SenderProfile(
            owner_id=row["owner_id"],
            display_name=row["display_name"],
            email=row["email"],
            phone=row["phone"],
            address=_address(row),
            currency=row["currency"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def save(self, profile: SenderProfile) -> SenderProfile:
        now = _now()
        params = _party_params(profile) | {"owner_id": profile.owner_id, "currency": profile.currency, "now": now}
        if self.get_by_owner(profile.owner_id) is None:
            self.conn.execute(
                text(
                    "INSERT INTO sender_profiles (owner_id, display_name, email, phone, street1, street2, "
                    "city, state, country, zip, currency, created_at, updated_at) "
                    "VALUES (:owner_id, :display_name, :email, :phone, :street1, :street2, "
                    ":city, :state, :country, :zip, :currency, :now, :now)"
                ),
                params,
            )
        else:
            self.conn.execute(
                text(
                    "UPDATE sender_profiles SET display_name = :display_name, email = :email, phone = :phone, "
                    "street1 = :street1, street2 = :street2, city = :city, state = :state, "
                    "country = :country, zip = :zip, currency = :currency, updated_at = :now "
                    "WHERE owner_id = :owner_id"
                ),
                params,
            )
        self.conn.commit()
        result = self.get_by_owner(profile.owner_id)
        if result is None:
            raise RuntimeError(f"Failed to retrieve profile after save (owner={profile.owner_id})")
        return result


class SQLAlchemyClientRepository(ClientRepository):
    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    def create(self, client: Client) -> Client:
        now = _now()
        result = self.conn.execute(
            text(
                "INSERT INTO clients (uuid, owner_id, display_name, email, phone, street1, street2, "
                "city, state, country, zip, created_at, updated_at) "
                "VALUES (:uuid, :owner_id, :display_name, :email, :phone, :street1, :street2, "
                ":city, :state, :country, :zip, :now, :now)"
            ),
            _party_params(client) | {"uuid": str(ULID()), "owner_id": client.owner_id, "now": now},
        )
        client_id = result.lastrowid
        self.conn.commit()
        created = self.get_by_id(client_id)
        if created is None:
            raise RuntimeError(f"Failed to retrieve client after create (id={client_id})")
        return created

    @staticmethod
    def _row_to_client(row: RowMapping) -> Client:
        return Client(
            id=row["id"],
            uuid=row["uuid"],
            owner_id=row["owner_id"],
            display_name=row["display_name"],
            email=row["email"],
            phone=row["phone"],
            address=_address(row),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def _fetch_one(self, where: str, params: dict) -> Client | None:
        row = (
            self.conn.execute(
                text(f"SELECT * FROM clients WHERE {where} AND deleted_at IS NULL"),
                params,
            )
            .mappings()
            .fetchone()
        )
        if row is None:
            return None
        return self._row_to_client(row)

    def get_by_id(self, client_id: int) -> Client | None:
        return self._fetch_one("id = :id", {"id": client_id})

    def get_by_uuid(self, uuid: str) -> Client | None:
        return self._fetch_one("uuid = :uuid", {"uuid": uuid})

    def list_by_owner(self, owner_id: str) -> list[Client]:
        rows = (
            self.conn.execute(
                text("SELECT * FROM clients WHERE owner_id = :owner_id AND deleted_at IS NULL ORDER BY display_name"),
                {"owner_id": owner_id},
            )
            .mappings()
            .fetchall()
        )
        return [self._row_to_client(row) for row in rows]

    def update(self, client: Client) -> Client:
        if client.id is None:
            raise ValueError("Cannot update client without an id")
        self.conn.execute(
            text(
                "UPDATE clients SET display_name = :display_name, email = :email, phone = :phone, "
                "street1 = :street1, street2 = :street2, city = :city, state = :state, "
                "country = :country, zip = :zip, updated_at = :now WHERE id = :id"
            ),
            _party_params(client) | {"id": client.id, "now": _now()},
        )
        self.conn.commit()
        updated = self.get_by_id(client.id)
        if updated is None:
            raise RuntimeError(f"Failed to retrieve client after update (id={client.id})")
        return updated

    def delete(self, client_id: int) -> None:
        self.conn.execute(
            text("UPDATE clients SET deleted_at = :now WHERE id = :id"),
            {"id": client_id, "now": _now()},
        )
        self.conn.commit()


class SQLAlchemyInvoiceRepository(InvoiceRepository):
    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    @staticmethod
    def _invoice_params(invoice: InvoiceDocument) -> dict:
        return {
            "owner_id": invoice.owner_id,
            "recipient_id": invoice.recipient_id,
            "invoice_number": invoice.invoice_number,
            "issue_date": invoice.issue_date.isoformat() if invoice.issue_date else None,
            "due_date": invoice.due_date.isoformat() if invoice.due_date else None,
            "customer_ref": invoice.customer_ref,
            "tax": str(invoice.tax),
            "notes": invoice.notes,
            "status": invoice.status.value,
        }

    def _insert_items(self, invoice_id: int, invoice: InvoiceDocument) -> None:
        # Only named items are persisted; blank rows exist only while editing.
        for i, item in enumerate(invoice.valid_line_items):
            self.conn.execute(
                text(
                    "INSERT INTO invoice_line_items (invoice_id, name, description, quantity, unit_cost, sort_order) "
                    "VALUES (:invoice_id, :name, :description, :quantity, :unit_cost, :sort_order)"
                ),
                {
                    "invoice_id": invoice_id,
                    "name": item.name.strip(),
                    "description": item.description,
                    "quantity": str(item.quantity),
                    "unit_cost": str(item.unit_cost),
                    "sort_order": i,
                },
            )

    def create(self, invoice: InvoiceDocument) -> InvoiceDocument:
        now = _now()
        result = self.conn.execute(
            text(
                "INSERT INTO invoices (uuid, owner_id, recipient_id, invoice_number, issue_date, due_date, "
                "customer_ref, tax, notes, status, created_at, updated_at) "
                "VALUES (:uuid, :owner_id, :recipient_id, :invoice_number, :issue_date, :due_date, "
                ":customer_ref, :tax, :notes, :status, :now, :now)"
            ),
            self._invoice_params(invoice) | {"uuid": str(ULID()), "now": now},
        )
        invoice_id = result.lastrowid
        self._insert_items(invoice_id, invoice)
        self.conn.commit()
        created = self.get_by_id(invoice_id)
        if created is None:
            raise RuntimeError(f"Failed to retrieve invoice after create (id={invoice_id})")
        return created

    @staticmethod
    def _build_invoice(row: RowMapping, item_rows: list[RowMapping]) -> InvoiceDocument:
        return InvoiceDocument(
            id=row["id"],
            uuid=row["uuid"],
            owner_id=row["owner_id"],
            recipient_id=row["recipient_id"],
            invoice_number=row["invoice_number"],
            issue_date=row["issue_date"],
            due_date=row["due_date"],
            customer_ref=row["customer_ref"],
            line_items=[
                LineItem(
                    id=item_row["id"],
                    name=item_row["name"],
                    description=item_row["description"],
                    quantity=Decimal(item_row["quantity"]),
                    unit_cost=Decimal(item_row["unit_cost"]),
                )
                for item_row in item_rows
            ],
            tax=Decimal(row["tax"]),
            notes=row["notes"],
            status=InvoiceStatus(row["status"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def _row_to_invoice(self, row: RowMapping) -> InvoiceDocument:
        items = (
            self.conn.execute(
                text("SELECT * FROM invoice_line_items WHERE invoice_id = :invoice_id ORDER BY sort_order"),
                {"invoice_id": row["id"]},
            )
            .mappings()
            .fetchall()
        )
        return self._build_invoice(row, list(items))

    def get_by_id(self, invoice_id: int) -> InvoiceDocument | None:
        row = (
            self.conn.execute(
                text("SELECT * FROM invoices WHERE id = :id AND deleted_at IS NULL"),
                {"id": invoice_id},
            )
            .mappings()
            .fetchone()
        )
        if row is None:
            return None
        return self._row_to_invoice(row)

    def get_by_uuid(self, uuid: str) -> InvoiceDocument | None:
        row = (
            self.conn.execute(
                text("SELECT * FROM invoices WHERE uuid = :uuid AND deleted_at IS NULL"),
                {"uuid": uuid},
            )
            .mappings()
            .fetchone()
        )
        if row is None:
            return None
        return self._row_to_invoice(row)

    def list_by_owner(self, owner_id: str) -> list[InvoiceDocument]:
        rows = (
            self.conn.execute(
                text(
                    "SELECT * FROM invoices WHERE owner_id = :owner_id "
                    "AND deleted_at IS NULL ORDER BY created_at DESC, id DESC"
                ),
                {"owner_id": owner_id},
            )
            .mappings()
            .fetchall()
        )
        if not rows:
            return []
        invoice_ids = [row["id"] for row in rows]
        placeholders = ", ".join(f":id{i}" for i in range(len(invoice_ids)))
        params = {f"id{i}": iid for i, iid in enumerate(invoice_ids)}
        all_items = (
            self.conn.execute(
                text(f"SELECT * FROM invoice_line_items WHERE invoice_id IN ({placeholders}) ORDER BY sort_order"),
                params,
            )
            .mappings()
            .fetchall()
        )
        items_by_invoice: dict[int, list[RowMapping]] = {}
        for item_row in all_items:
            items_by_invoice.setdefault(item_row["invoice_id"], []).append(item_row)
        return [self._build_invoice(row, items_by_invoice.get(row["id"], [])) for row in rows]

    def update(self, invoice: InvoiceDocument) -> InvoiceDocument:
        if invoice.id is None:
            raise ValueError("Cannot update invoice without an id")
        self.conn.execute(
            text(
                "UPDATE invoices SET recipient_id = :recipient_id, invoice_number = :invoice_number, "
                "issue_date = :issue_date, due_date = :due_date, customer_ref = :customer_ref, "
                "tax = :tax, notes = :notes, status = :status, updated_at = :now WHERE id = :id"
            ),
            self._invoice_params(invoice) | {"id": invoice.id, "now": _now()},
        )
        self.conn.execute(
            text("DELETE FROM invoice_line_items WHERE invoice_id = :invoice_id"),
            {"invoice_id": invoice.id},
        )
        self._insert_items(invoice.id, invoice)
        self.conn.commit()
        updated = self.get_by_id(invoice.id)
        if updated is None:
            raise RuntimeError(f"Failed to retrieve invoice after update (id={invoice.id})")
        return updated

    def delete(self, invoice_id: int) -> None:
        self.conn.execute(
            text("UPDATE invoices SET deleted_at = :now WHERE id = :id"),
            {"id": invoice_id, "now": _now()},
        )
        self.conn.commit()

    def latest_for_client(self, owner_id: str, client_id: int) -> InvoiceDocument | None:
        row = (
            self.conn.execute(
                text(
                    "SELECT * FROM invoices WHERE owner_id = :owner_id AND recipient_id = :client_id "
                    "AND deleted_at IS NULL ORDER BY created_at DESC, id DESC LIMIT 1"
                ),
                {"owner_id": owner_id, "client_id": client_id},
            )
            .mappings()
            .fetchone()
        )
        if row is None:
            return None
        return self._row_to_invoice(row)

    def top_item_names(self, owner_id: str, limit: int) -> list[ItemSuggestion]:
        rows = (
            self.conn.execute(
                text(
                    "SELECT li.name AS name, COUNT(*) AS usage_count, MAX(i.created_at) AS last_used "
                    "FROM invoice_line_items li JOIN invoices i ON i.id = li.invoice_id "
                    "WHERE i.owner_id = :owner_id AND i.deleted_at IS NULL "
                    "GROUP BY li.name ORDER BY usage_count DESC, li.name ASC LIMIT :limit"
                ),
                {"owner_id": owner_id, "limit": limit},
            )
            .mappings()
            .fetchall()
        )
        return [
            ItemSuggestion(name=row["name"], usage_count=row["usage_count"], last_used=row["last_used"])
            for row in rows
        ]

    def recent_unit_cost(self, owner_id: str, item_name: str) -> Decimal | None:
        row = (
            self.conn.execute(
                text(
                    "SELECT li.unit_cost AS unit_cost "
                    "FROM invoice_line_items li JOIN invoices i ON i.id = li.invoice_id "
                    "WHERE i.owner_id = :owner_id AND li.name = :name AND i.deleted_at IS NULL "
                    "ORDER BY i.created_at DESC, i.id DESC, li.sort_order DESC LIMIT 1"
                ),
                {"owner_id": owner_id, "name": item_name},
            )
            .mappings()
            .fetchone()
        )
        if row is None:
            return None
        return Decimal(row["unit_cost"])
