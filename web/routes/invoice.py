from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from starlette.responses import HTMLResponse, Response

from invoicely.services.edit_session import EditSession
from invoicely.services.invoice_service import InvoiceService, ResourceNotFoundError
from web.deps import get_invoice_service, get_owner_id
from web.schemas import InvoicePayload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/invoices")


def _invoice_json(invoice) -> dict:
    return invoice.model_dump(mode="json")


def _edit_session(payload: InvoicePayload, owner_id: str, service: InvoiceService) -> EditSession:
    document = payload.to_document(owner_id)
    sender = service.get_sender_profile(owner_id)
    recipient = service.get_client(owner_id, payload.recipient_id) if payload.recipient_id is not None else None
    return EditSession(document, sender=sender, recipient=recipient)


@router.post("/preview")
async def invoice_preview(
    payload: InvoicePayload,
    owner_id: str = Depends(get_owner_id),
    service: InvoiceService = Depends(get_invoice_service),
):
    session = _edit_session(payload, owner_id, service)
    logger.debug(
        "POST /invoices/preview — owner=%s items=%d sender=%s recipient=%s",
        owner_id,
        len(session.document.valid_line_items),
        session.sender is not None,
        session.recipient is not None,
    )
    return HTMLResponse(session.render_preview_html())


@router.post("/preview/summary")
async def invoice_preview_summary(
    payload: InvoicePayload,
    owner_id: str = Depends(get_owner_id),
    service: InvoiceService = Depends(get_invoice_service),
):
    return _edit_session(payload, owner_id, service).summary().model_dump(mode="json")


@router.get("/next-number")
async def invoice_next_number(
    client_id: int,
    owner_id: str = Depends(get_owner_id),
    service: InvoiceService = Depends(get_invoice_service),
):
    return {"invoice_number": service.next_invoice_number(owner_id, client_id)}


@router.get("")
async def invoice_list(
    owner_id: str = Depends(get_owner_id),
    service: InvoiceService = Depends(get_invoice_service),
):
    return [_invoice_json(invoice) for invoice in service.list_invoices(owner_id)]


@router.post("")
async def invoice_create(
    payload: InvoicePayload,
    owner_id: str = Depends(get_owner_id),
    service: InvoiceService = Depends(get_invoice_service),
):
    logger.info("POST /invoices — owner=%s number=%s", owner_id, payload.invoice_number)
    invoice = service.create_invoice(payload.to_document(owner_id))
    return JSONResponse(_invoice_json(invoice), status_code=201)


@router.get("/{invoice_uuid}")
async def invoice_detail(
    invoice_uuid: str,
    owner_id: str = Depends(get_owner_id),
    service: InvoiceService = Depends(get_invoice_service),
):
    invoice = service.get_invoice(owner_id, invoice_uuid)
    if invoice is None:
        raise ResourceNotFoundError("Invoice", invoice_uuid)
    return _invoice_json(invoice)


@router.put("/{invoice_uuid}")
async def invoice_update(
    invoice_uuid: str,
    payload: InvoicePayload,
    owner_id: str = Depends(get_owner_id),
    service: InvoiceService = Depends(get_invoice_service),
):
    logger.info("PUT /invoices/%s — owner=%s", invoice_uuid, owner_id)
    existing = service.get_invoice(owner_id, invoice_uuid)
    if existing is None:
        raise ResourceNotFoundError("Invoice", invoice_uuid)
    invoice = service.update_invoice(payload.to_document(owner_id, existing))
    return _invoice_json(invoice)


@router.delete("/{invoice_uuid}")
async def invoice_delete(
    invoice_uuid: str,
    owner_id: str = Depends(get_owner_id),
    service: InvoiceService = Depends(get_invoice_service),
):
    logger.info("DELETE /invoices/%s — owner=%s", invoice_uuid, owner_id)
    invoice = service.get_invoice(owner_id, invoice_uuid)
    if invoice is None:
        raise ResourceNotFoundError("Invoice", invoice_uuid)
    service.delete_invoice(invoice)
    return Response(status_code=204)


@router.get("/{invoice_uuid}/pdf")
async def invoice_pdf(
    invoice_uuid: str,
    owner_id: str = Depends(get_owner_id),
    service: InvoiceService = Depends(get_invoice_service),
):
    logger.info("GET /invoices/%s/pdf — owner=%s", invoice_uuid, owner_id)
    exported = service.export_invoice(owner_id, invoice_uuid)
    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": exported.content_disposition},
    )
