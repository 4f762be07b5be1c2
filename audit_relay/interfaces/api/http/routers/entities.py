"""
===============================================================================
TARJETA CRC — interfaces/api/http/routers/entities.py
===============================================================================

Name:
    Sample Entities Router (users / invoices)

Responsibilities:
    - Mutar el store primario desde HTTP: cada escritura pasa por los hooks
      del store y el interceptor genera el AuditEvent correspondiente.
    - 404 para ids desconocidos.

Collaborators:
    - container.get_entity_store
    - domain.entities.User / Invoice
    - schemas.entities
===============================================================================
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from .....container import get_entity_store
from .....domain.entities import Invoice, User
from ..schemas.entities import InvoiceReq, InvoiceRes, UserReq, UserRes

router = APIRouter()


def _not_found(resource: str, identifier: str) -> HTTPException:
    return HTTPException(
        status_code=404, detail=f"{resource} '{identifier}' no encontrado"
    )


# -----------------------------------------------------------------------------
# Users
# -----------------------------------------------------------------------------
@router.post("/users", response_model=UserRes, status_code=201, tags=["users"])
def create_user(req: UserReq, store: Any = Depends(get_entity_store)):
    user = store.save(User(**req.model_dump()))
    return UserRes(**asdict(user))


@router.get("/users/{user_id}", response_model=UserRes, tags=["users"])
def get_user(user_id: str, store: Any = Depends(get_entity_store)):
    user = store.get(User, user_id)
    if user is None:
        raise _not_found("User", user_id)
    return UserRes(**asdict(user))


@router.put("/users/{user_id}", response_model=UserRes, tags=["users"])
def update_user(user_id: str, req: UserReq, store: Any = Depends(get_entity_store)):
    if store.find_document(User.collection, user_id) is None:
        raise _not_found("User", user_id)
    user = store.save(User(id=user_id, **req.model_dump()))
    return UserRes(**asdict(user))


@router.delete("/users/{user_id}", status_code=204, tags=["users"])
def delete_user(user_id: str, store: Any = Depends(get_entity_store)):
    if not store.delete(User.collection, user_id):
        raise _not_found("User", user_id)
    return Response(status_code=204)


# -----------------------------------------------------------------------------
# Invoices
# -----------------------------------------------------------------------------
@router.post("/invoices", response_model=InvoiceRes, status_code=201, tags=["invoices"])
def create_invoice(req: InvoiceReq, store: Any = Depends(get_entity_store)):
    invoice = store.save(Invoice(**req.model_dump()))
    return InvoiceRes(**asdict(invoice))


def _change_status(
    store: Any, invoice_id: str, status: str, reason: str | None = None
) -> InvoiceRes:
    invoice = store.get(Invoice, invoice_id)
    if invoice is None:
        raise _not_found("Invoice", invoice_id)
    invoice.status = status
    if reason is not None:
        invoice.rejection_reason = reason
    store.save(invoice)
    return InvoiceRes(**asdict(invoice))


@router.post(
    "/invoices/{invoice_id}/approve", response_model=InvoiceRes, tags=["invoices"]
)
def approve_invoice(invoice_id: str, store: Any = Depends(get_entity_store)):
    return _change_status(store, invoice_id, "APPROVED")


@router.post(
    "/invoices/{invoice_id}/reject", response_model=InvoiceRes, tags=["invoices"]
)
def reject_invoice(
    invoice_id: str,
    reason: str | None = Query(None, max_length=500),
    store: Any = Depends(get_entity_store),
):
    return _change_status(store, invoice_id, "REJECTED", reason)
