from unittest.mock import MagicMock

import pytest

from invoicely.services.invoice_service import ExportedInvoice, InvoiceService, ResourceNotFoundError


class TestInvoiceServiceSave:
    def setup_method(self):
        self.invoice_repo = MagicMock()
        self.client_repo = MagicMock()
        self.profile_repo = MagicMock()
        self.service = InvoiceService(self.invoice_repo, self.client_repo, self.profile_repo)

    def _owned_client(self, sample_client):
        client = sample_client(id=5)
        self.client_repo.get_by_id.return_value = client
        return client

    def test_create_invoice(self, sample_invoice, sample_client):
        self._owned_client(sample_client)
        doc = sample_invoice(recipient_id=5)
        self.invoice_repo.create.return_value = doc.model_copy(update={"id": 1, "uuid": "inv-uuid"})
        result = self.service.create_invoice(doc)
        self.invoice_repo.create.assert_called_once_with(doc)
        assert result.uuid == "inv-uuid"

    def test_create_requires_number(self, sample_invoice, sample_client):
        self._owned_client(sample_client)
        with pytest.raises(ValueError, match="Invoice number"):
            self.service.create_invoice(sample_invoice(recipient_id=5, invoice_number="  "))
        self.invoice_repo.create.assert_not_called()

    def test_create_requires_dates(self, sample_invoice, sample_client):
        self._owned_client(sample_client)
        with pytest.raises(ValueError, match="due date"):
            self.service.create_invoice(sample_invoice(recipient_id=5, due_date=None))

    def test_create_requires_recipient(self, sample_invoice):
        with pytest.raises(ValueError, match="recipient"):
            self.service.create_invoice(sample_invoice())

    def test_create_rejects_unknown_recipient(self, sample_invoice):
        self.client_repo.get_by_id.return_value = None
        with pytest.raises(ValueError, match="Unknown recipient"):
            self.service.create_invoice(sample_invoice(recipient_id=99))

    def test_create_rejects_other_owners_client(self, sample_invoice, sample_client):
        self.client_repo.get_by_id.return_value = sample_client(id=5, owner_id="user_456")
        with pytest.raises(ValueError, match="Unknown recipient"):
            self.service.create_invoice(sample_invoice(recipient_id=5))

    def test_update_requires_id(self, sample_invoice):
        with pytest.raises(ValueError, match="without an id"):
            self.service.update_invoice(sample_invoice())

    def test_save_dispatches_on_id(self, sample_invoice, sample_client):
        self._owned_client(sample_client)
        new = sample_invoice(recipient_id=5)
        existing = sample_invoice(recipient_id=5, id=3)
        self.invoice_repo.create.return_value = new
        self.invoice_repo.update.return_value = existing
        self.service.save_invoice(new)
        self.service.save_invoice(existing)
        self.invoice_repo.create.assert_called_once_with(new)
        self.invoice_repo.update.assert_called_once_with(existing)


class TestInvoiceServiceLookup:
    def setup_method(self):
        self.invoice_repo = MagicMock()
        self.client_repo = MagicMock()
        self.profile_repo = MagicMock()
        self.service = InvoiceService(self.invoice_repo, self.client_repo, self.profile_repo)

    def test_get_invoice_owned(self, sample_invoice):
        self.invoice_repo.get_by_uuid.return_value = sample_invoice(uuid="abc")
        assert self.service.get_invoice("user_123", "abc").uuid == "abc"

    def test_get_invoice_other_owner(self, sample_invoice):
        self.invoice_repo.get_by_uuid.return_value = sample_invoice(uuid="abc", owner_id="user_456")
        assert self.service.get_invoice("user_123", "abc") is None

    def test_get_invoice_missing(self):
        self.invoice_repo.get_by_uuid.return_value = None
        assert self.service.get_invoice("user_123", "abc") is None

    def test_list_invoices(self, sample_invoice):
        self.invoice_repo.list_by_owner.return_value = [sample_invoice()]
        assert len(self.service.list_invoices("user_123")) == 1
        self.invoice_repo.list_by_owner.assert_called_once_with("user_123")

    def test_delete_invoice(self, sample_invoice):
        self.service.delete_invoice(sample_invoice(id=7))
        self.invoice_repo.delete.assert_called_once_with(7)

    def test_delete_requires_id(self, sample_invoice):
        with pytest.raises(ValueError):
            self.service.delete_invoice(sample_invoice())


class TestNextInvoiceNumber:
    def setup_method(self):
        self.invoice_repo = MagicMock()
        self.service = InvoiceService(self.invoice_repo, MagicMock(), MagicMock())

    def test_first_invoice_for_client(self):
        self.invoice_repo.latest_for_client.return_value = None
        assert self.service.next_invoice_number("user_123", 5) == "1"

    def test_increments_last_number(self, sample_invoice):
        self.invoice_repo.latest_for_client.return_value = sample_invoice(invoice_number="41")
        assert self.service.next_invoice_number("user_123", 5) == "42"

    def test_non_numeric_restarts(self, sample_invoice):
        self.invoice_repo.latest_for_client.return_value = sample_invoice(invoice_number="INV-007")
        assert self.service.next_invoice_number("user_123", 5) == "1"


class TestExportInvoice:
    def setup_method(self):
        self.invoice_repo = MagicMock()
        self.client_repo = MagicMock()
        self.profile_repo = MagicMock()
        self.renderer = MagicMock()
        self.service = InvoiceService(self.invoice_repo, self.client_repo, self.profile_repo, self.renderer)

    def test_export(self, sample_invoice, sample_profile, sample_client):
        invoice = sample_invoice(uuid="abc", invoice_number="42", recipient_id=5)
        self.invoice_repo.get_by_uuid.return_value = invoice
        self.profile_repo.get_by_owner.return_value = sample_profile()
        self.client_repo.get_by_id.return_value = sample_client(id=5)
        self.renderer.render.return_value = b"%PDF-fake"
        self.renderer.plan.return_value.total_pages = 1

        result = self.service.export_invoice("user_123", "abc")

        assert isinstance(result, ExportedInvoice)
        assert result.filename == "invoice-acme-sons-inc-42.pdf"
        assert result.content == b"%PDF-fake"
        assert result.media_type == "application/pdf"
        assert result.content_disposition == 'attachment; filename="invoice-acme-sons-inc-42.pdf"'
        self.renderer.plan.assert_called_once_with(invoice)

    def test_export_missing_invoice(self):
        self.invoice_repo.get_by_uuid.return_value = None
        with pytest.raises(ResourceNotFoundError) as exc_info:
            self.service.export_invoice("user_123", "abc")
        assert exc_info.value.resource == "Invoice"

    def test_export_missing_profile(self, sample_invoice):
        self.invoice_repo.get_by_uuid.return_value = sample_invoice(uuid="abc", recipient_id=5)
        self.profile_repo.get_by_owner.return_value = None
        with pytest.raises(ResourceNotFoundError) as exc_info:
            self.service.export_invoice("user_123", "abc")
        assert exc_info.value.resource == "Sender profile"
        self.renderer.render.assert_not_called()

    def test_export_missing_recipient(self, sample_invoice, sample_profile):
        self.invoice_repo.get_by_uuid.return_value = sample_invoice(uuid="abc", recipient_id=5)
        self.profile_repo.get_by_owner.return_value = sample_profile()
        self.client_repo.get_by_id.return_value = None
        with pytest.raises(ResourceNotFoundError) as exc_info:
            self.service.export_invoice("user_123", "abc")
        assert exc_info.value.resource == "Client"

    def test_export_without_recipient_id(self, sample_invoice, sample_profile):
        self.invoice_repo.get_by_uuid.return_value = sample_invoice(uuid="abc")
        self.profile_repo.get_by_owner.return_value = sample_profile()
        with pytest.raises(ResourceNotFoundError):
            self.service.export_invoice("user_123", "abc")
        self.client_repo.get_by_id.assert_not_called()


class TestSaveAndExport:
    def test_exports_persisted_snapshot(self, db_connection, sample_invoice, sample_profile, sample_client):
        from invoicely.repositories.sqlalchemy import (
            SQLAlchemyClientRepository,
            SQLAlchemyInvoiceRepository,
            SQLAlchemyProfileRepository,
        )

        profile_repo = SQLAlchemyProfileRepository(db_connection)
        client_repo = SQLAlchemyClientRepository(db_connection)
        profile_repo.save(sample_profile())
        client = client_repo.create(sample_client())
        service = InvoiceService(SQLAlchemyInvoiceRepository(db_connection), client_repo, profile_repo)

        draft = sample_invoice(item_count=12, recipient_id=client.id, invoice_number="42")
        draft.add_line_item()
        exported = service.save_and_export(draft)

        assert exported.filename == "invoice-acme-sons-inc-42.pdf"
        assert exported.content[:5] == b"%PDF-"
        saved = service.list_invoices("user_123")
        assert len(saved) == 1
        assert len(saved[0].line_items) == 12
        assert saved[0].total == draft.total
        assert draft.id is None

    def test_rejected_draft_not_exported(self, sample_invoice):
        service = InvoiceService(MagicMock(), MagicMock(), MagicMock(), MagicMock())
        with pytest.raises(ValueError):
            service.save_and_export(sample_invoice(invoice_number=""))


def test_resource_not_found_message():
    exc = ResourceNotFoundError("Invoice", "abc")
    assert str(exc) == "Invoice not found: abc"
    assert isinstance(exc, LookupError)
    assert not isinstance(exc, ValueError)
