from __future__ import annotations

import logging

from pydantic import BaseModel

from invoicely.constants import PDF_MEDIA_TYPE
from invoicely.layout.export import ExportRenderer, export_filename
from invoicely.models.invoice import InvoiceDocument
from invoicely.models.party import Client, SenderProfile
from invoicely.repositories.base import ClientRepository, InvoiceRepository, ProfileRepository

logger = logging.getLogger(__name__)


class ResourceNotFoundError(LookupError):
    """A record the export or lookup depends on does not exist for this owner."""

    def __init__(self, resource: str, identifier: object) -> None:
        super().__init__(f"{resource} not found: {identifier}")
        self.resource = resource
        self.identifier = identifier


class ExportedInvoice(BaseModel):
    filename: str
    content: bytes
    media_type: str = PDF_MEDIA_TYPE

    @property
    def content_disposition(self) -> str:
        return f'attachment; filename="{self.filename}"'


class InvoiceService:
    def __init__(
        self,
        invoice_repo: InvoiceRepository,
        client_repo: ClientRepository,
        profile_repo: ProfileRepository,
        export_renderer: ExportRenderer | None = None,
    ) -> None:
        self.invoice_repo = invoice_repo
        self.client_repo = client_repo
        self.profile_repo = profile_repo
        self.export_renderer = export_renderer or ExportRenderer()

    def _validate_for_save(self, invoice: InvoiceDocument) -> None:
        if not invoice.owner_id:
            raise ValueError("Invoice must have an owner")
        if not invoice.invoice_number.strip():
            raise ValueError("Invoice number is required")
        if invoice.issue_date is None or invoice.due_date is None:
            raise ValueError("Issue date and due date are required")
        if invoice.recipient_id is None:
            raise ValueError("A recipient is required")
        if self.get_client(invoice.owner_id, invoice.recipient_id) is None:
            raise ValueError(f"Unknown recipient: {invoice.recipient_id}")

    def create_invoice(self, invoice: InvoiceDocument) -> InvoiceDocument:
        self._validate_for_save(invoice)
        dropped = len(invoice.line_items) - len(invoice.valid_line_items)
        created = self.invoice_repo.create(invoice)
        logger.info(
            "Invoice created: uuid=%s number=%s items=%d dropped_blank=%d total=%s",
            created.uuid,
            created.invoice_number,
            len(created.line_items),
            dropped,
            created.total,
        )
        return created

    def update_invoice(self, invoice: InvoiceDocument) -> InvoiceDocument:
        if invoice.id is None:
            raise ValueError("Cannot update invoice without an id")
        self._validate_for_save(invoice)
        updated = self.invoice_repo.update(invoice)
        logger.info("Invoice updated: uuid=%s total=%s", updated.uuid, updated.total)
        return updated

    def save_invoice(self, invoice: InvoiceDocument) -> InvoiceDocument:
        if invoice.id is None:
            return self.create_invoice(invoice)
        return self.update_invoice(invoice)

    def get_invoice(self, owner_id: str, uuid: str) -> InvoiceDocument | None:
        result = self.invoice_repo.get_by_uuid(uuid)
        if result is not None and result.owner_id != owner_id:
            logger.warning("Invoice %s requested by non-owner %s", uuid, owner_id)
            result = None
        logger.debug("get_invoice uuid=%s found=%s", uuid, result is not None)
        return result

    def list_invoices(self, owner_id: str) -> list[InvoiceDocument]:
        result = self.invoice_repo.list_by_owner(owner_id)
        logger.debug("Listed %d invoices for owner=%s", len(result), owner_id)
        return result

    def delete_invoice(self, invoice: InvoiceDocument) -> None:
        if invoice.id is None:
            raise ValueError("Cannot delete invoice without an id")
        self.invoice_repo.delete(invoice.id)
        logger.info("Invoice %s soft-deleted", invoice.uuid)

    def get_client(self, owner_id: str, client_id: int) -> Client | None:
        client = self.client_repo.get_by_id(client_id)
        if client is None or client.owner_id != owner_id:
            return None
        return client

    def get_sender_profile(self, owner_id: str) -> SenderProfile | None:
        return self.profile_repo.get_by_owner(owner_id)

    def next_invoice_number(self, owner_id: str, client_id: int) -> str:
        """Sequential per (owner, client): last numeric number plus one, else '1'."""
        last = self.invoice_repo.latest_for_client(owner_id, client_id)
        if last is None:
            return "1"
        try:
            last_number = int(last.invoice_number)
        except ValueError:
            last_number = 0
        return str(last_number + 1)

    def export_invoice(self, owner_id: str, invoice_uuid: str) -> ExportedInvoice:
        """Render the persisted snapshot of an invoice as a PDF.

        Always re-reads the invoice and both parties, so the export reflects
        what was saved rather than any in-memory draft. Missing records fail
        with ResourceNotFoundError; an export never carries placeholders.
        """
        invoice = self.get_invoice(owner_id, invoice_uuid)
        if invoice is None:
            raise ResourceNotFoundError("Invoice", invoice_uuid)
        sender = self.get_sender_profile(owner_id)
        if sender is None:
            raise ResourceNotFoundError("Sender profile", owner_id)
        recipient = self.get_client(owner_id, invoice.recipient_id) if invoice.recipient_id is not None else None
        if recipient is None:
            raise ResourceNotFoundError("Client", invoice.recipient_id)

        plan = self.export_renderer.plan(invoice)
        content = self.export_renderer.render(invoice, plan, sender, recipient)
        filename = export_filename(recipient.display_name, invoice.invoice_number)
        logger.info(
            "Invoice exported: uuid=%s pages=%d size=%d file=%s",
            invoice.uuid,
            plan.total_pages,
            len(content),
            filename,
        )
        return ExportedInvoice(filename=filename, content=content)

    def save_and_export(self, invoice: InvoiceDocument) -> ExportedInvoice:
        saved = self.save_invoice(invoice.snapshot())
        return self.export_invoice(saved.owner_id, saved.uuid)
