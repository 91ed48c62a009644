"""
Entrypoint Routes
==================
  GET  /entrypoints                — list keys, prices and input schemas
  POST /entrypoints/{key}/invoke   — x402-metered invocation

Invocation order: validate input -> verify payment -> run handler ->
settle payment -> record transaction. A handler failure stops before
settlement, so the caller is not charged for it.

Payment is read from PAYMENT-SIGNATURE (x402 v2) or X-PAYMENT (v1).
"""

from __future__ import annotations

import base64
import json
import logging
import uuid
from typing import Any, Optional

from fastapi import APIRouter, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError

from analytics import PaymentTracker
from config import Settings
from entrypoints import Entrypoint, EntrypointRegistry
from fetcher import FetchError
from payments import X402Facilitator, payment_required_body, payment_required_headers
from pricing import format_price

logger = logging.getLogger("recipe-drinks-intel.routes")

router = APIRouter(prefix="/entrypoints", tags=["entrypoints"])


class InvokeRequest(BaseModel):
    input: dict[str, Any] = Field(default_factory=dict)


def _describe(entrypoint: Entrypoint) -> dict:
    return {
        "key": entrypoint.key,
        "description": entrypoint.description,
        "price": str(entrypoint.price),
        "priceDisplay": format_price(entrypoint.price),
        "currency": "USDC",
        "inputSchema": entrypoint.input_schema(),
        "invoke": f"/entrypoints/{entrypoint.key}/invoke",
    }


@router.get("", summary="List all priced entrypoints")
async def list_entrypoints(request: Request):
    registry: EntrypointRegistry = request.app.state.registry
    return {"entrypoints": [_describe(e) for e in registry]}


@router.post("/{key}/invoke", summary="Invoke an entrypoint (x402 metered)")
async def invoke_entrypoint(
    key: str,
    request: Request,
    body: Optional[InvokeRequest] = None,
    x_payment: Optional[str] = Header(None, alias="X-PAYMENT"),
    payment_sig: Optional[str] = Header(None, alias="PAYMENT-SIGNATURE"),
):
    settings: Settings = request.app.state.settings
    registry: EntrypointRegistry = request.app.state.registry
    facilitator: X402Facilitator = request.app.state.facilitator
    tracker: PaymentTracker = request.app.state.tracker

    entrypoint = registry.get(key)
    if entrypoint is None:
        raise HTTPException(status_code=404, detail=f"Unknown entrypoint: {key}")

    try:
        payload = entrypoint.input_model.model_validate((body or InvokeRequest()).input)
    except ValidationError as exc:
        raise HTTPException(
            status_code=422,
            detail=exc.errors(include_url=False, include_context=False),
        )

    payment_header = payment_sig or x_payment or ""
    verification = await facilitator.verify(payment_header, entrypoint.price)
    if not verification.valid:
        raise HTTPException(
            status_code=402,
            detail=payment_required_body(settings, entrypoint.price, entrypoint.description, verification.error),
            headers=payment_required_headers(
                settings, entrypoint.price, str(request.url), entrypoint.description
            ),
        )

    try:
        output = await entrypoint.handler(payload)
    except FetchError as exc:
        logger.warning("Entrypoint %s failed upstream: %s", key, exc)
        raise HTTPException(
            status_code=502,
            detail={"error": "Upstream request failed", "entrypoint": key},
        )

    settlement = await facilitator.settle(payment_header, entrypoint.price)
    if not settlement.valid:
        raise HTTPException(
            status_code=402,
            detail=payment_required_body(settings, entrypoint.price, entrypoint.description, settlement.error),
            headers=payment_required_headers(
                settings, entrypoint.price, str(request.url), entrypoint.description
            ),
        )

    await tracker.record(
        entrypoint=key,
        amount=entrypoint.price,
        tx_hash=settlement.tx_hash,
        payer=settlement.payer or verification.payer,
        network=settings.x402_network,
    )

    payment_response = base64.b64encode(json.dumps({
        "success": True,
        "transaction": settlement.tx_hash,
        "network": settings.x402_network,
        "payer": settlement.payer or verification.payer,
    }, separators=(",", ":")).encode()).decode()

    return JSONResponse(
        content={"run_id": uuid.uuid4().hex, "status": "succeeded", "output": output},
        headers={"X-PAYMENT-RESPONSE": payment_response},
    )
