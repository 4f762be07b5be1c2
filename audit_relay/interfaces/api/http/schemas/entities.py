"""
===============================================================================
TARJETA CRC — schemas/entities.py
===============================================================================

Módulo:
    Schemas HTTP de las entidades de ejemplo (User / Invoice)

Responsabilidades:
    - Validar payloads de alta/modificación.
    - Exponer la representación almacenada.
===============================================================================
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class UserReq(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    email: str = ""
    full_name: str = ""
    role: str = "user"


class UserRes(BaseModel):
    id: str
    username: str
    email: str
    full_name: str
    role: str


class InvoiceReq(BaseModel):
    invoice_number: str = Field(..., min_length=1, max_length=64)
    customer_name: str = ""
    amount: float = Field(0.0, ge=0)
    items: list[str] = Field(default_factory=list)


class InvoiceRes(BaseModel):
    id: str
    invoice_number: str
    customer_name: str
    amount: float
    status: str
    items: list[str]
    rejection_reason: str | None = None
