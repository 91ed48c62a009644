"""
x402 payment metering for priced entrypoints.

Flow per call:
  1. ``verify()`` the PAYMENT-SIGNATURE (v2) or X-PAYMENT (v1) header
     against the entrypoint price before the handler runs.
  2. Run the handler.
  3. ``settle()`` only if the handler succeeded, so failed calls are
     never charged.

Set X402_TEST_MODE=true to accept any non-empty header during development.
"""

from __future__ import annotations

import base64
import json
import logging
from decimal import Decimal
from typing import Any, Optional
from urllib.parse import urlparse

import httpx

from cdp_auth import CDP_HOST, build_cdp_jwt
from config import Settings
from pricing import format_price, to_atomic_units

logger = logging.getLogger("recipe-drinks-intel.payments")

USDC_ADDRESSES = {
    "eip155:8453": "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",   # Base mainnet
    "eip155:84532": "0x036CbD53842c5426634e7929541eC2318f3dCF7e",  # Base Sepolia
}

# EIP-712 domain of the USDC contract, required by the facilitator
USDC_EIP712_DOMAINS = {
    "eip155:8453": {"name": "USD Coin", "version": "2"},
    "eip155:84532": {"name": "USDC", "version": "2"},
}

FACILITATOR_TIMEOUT = 30.0


class PaymentResult:
    """Outcome of an x402 verify or settle step."""

    def __init__(
        self,
        valid: bool,
        amount: Decimal = Decimal("0"),
        tx_hash: str = "",
        payer: str = "",
        error: str = "",
    ):
        self.valid = valid
        self.amount = amount
        self.tx_hash = tx_hash
        self.payer = payer
        self.error = error


def decode_payment_header(payment_header: str) -> Optional[dict[str, Any]]:
    """Decode a base64-JSON (v2) or raw JSON (v1) payment payload."""
    try:
        payload = json.loads(base64.b64decode(payment_header, validate=True))
    except ValueError:
        try:
            payload = json.loads(payment_header)
        except ValueError:
            return None
    return payload if isinstance(payload, dict) else None


def payment_requirements(settings: Settings, amount: Decimal, resource_url: str = "", description: str = "") -> dict:
    network = settings.x402_network
    requirements = {
        "scheme": "exact",
        "network": network,
        "asset": USDC_ADDRESSES.get(network, USDC_ADDRESSES["eip155:8453"]),
        "amount": to_atomic_units(amount),
        "payTo": settings.pay_to_address,
        "maxTimeoutSeconds": 300,
        "extra": USDC_EIP712_DOMAINS.get(network, USDC_EIP712_DOMAINS["eip155:8453"]),
    }
    if resource_url:
        requirements["resource"] = resource_url
    if description:
        requirements["description"] = description
    return requirements


def payment_required_headers(
    settings: Settings,
    amount: Decimal,
    resource_url: str = "",
    description: str = "",
) -> dict[str, str]:
    """Headers for a 402 response, including the base64 v2 PAYMENT-REQUIRED header."""
    payload: dict[str, Any] = {
        "x402Version": 2,
        "accepts": [payment_requirements(settings, amount)],
    }
    if resource_url:
        payload["resource"] = {"url": resource_url}
        if description:
            payload["resource"]["description"] = description
    encoded = base64.b64encode(json.dumps(payload, separators=(",", ":")).encode()).decode()
    return {
        "PAYMENT-REQUIRED": encoded,
        "X-PAYMENT-REQUIRED": str(amount),
        "X-PAYMENT-CURRENCY": "USDC",
        "X-PAYMENT-CHAIN": "base",
        "X-PAYMENT-RECIPIENT": settings.pay_to_address,
    }


def payment_required_body(settings: Settings, amount: Decimal, description: str, error: str = "") -> dict:
    """Human-readable 402 detail body."""
    return {
        "error": "Payment required",
        "reason": error or None,
        "x402": {
            "version": "2",
            "amount": str(amount),
            "currency": "USDC",
            "network": settings.x402_network,
            "description": description,
            "facilitator": settings.x402_facilitator_url,
            "recipient": settings.pay_to_address,
        },
        "message": f"Payment required: {format_price(amount)} USDC on Base L2",
    }


class X402Facilitator:
    """Client for an x402 facilitator's ``/verify`` and ``/settle`` endpoints."""

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self._external_client = client
        self._own_client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._external_client is not None:
            return self._external_client
        if self._own_client is None or self._own_client.is_closed:
            self._own_client = httpx.AsyncClient(timeout=FACILITATOR_TIMEOUT, follow_redirects=True)
        return self._own_client

    async def close(self):
        if self._own_client is not None and not self._own_client.is_closed:
            await self._own_client.aclose()

    async def verify(self, payment_header: str, amount: Decimal) -> PaymentResult:
        return await self._call("verify", payment_header, amount)

    async def settle(self, payment_header: str, amount: Decimal) -> PaymentResult:
        return await self._call("settle", payment_header, amount)

    def _auth_headers(self, action: str) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        url = self.settings.x402_facilitator_url
        if urlparse(url).hostname != CDP_HOST:
            return headers
        if not (self.settings.cdp_api_key_id and self.settings.cdp_api_key_secret):
            logger.warning("CDP facilitator configured without CDP_API_KEY_ID/SECRET")
            return headers
        path = f"{urlparse(url).path.rstrip('/')}/{action}"
        token = build_cdp_jwt(self.settings.cdp_api_key_id, self.settings.cdp_api_key_secret, path)
        headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _call(self, action: str, payment_header: str, amount: Decimal) -> PaymentResult:
        if not payment_header:
            return PaymentResult(valid=False, error="Missing payment header")

        if self.settings.x402_test_mode:
            logger.warning("x402 test mode: %s accepted without facilitator", action)
            return PaymentResult(valid=True, amount=amount, tx_hash="test-mode-no-tx")

        payload = decode_payment_header(payment_header)
        if payload is None:
            return PaymentResult(valid=False, error="Cannot decode payment header")

        body = {
            "x402Version": payload.get("x402Version", 1),
            "paymentPayload": payload,
            "paymentRequirements": payment_requirements(self.settings, amount),
        }
        url = f"{self.settings.x402_facilitator_url.rstrip('/')}/{action}"

        try:
            resp = await self._get_client().post(url, json=body, headers=self._auth_headers(action))
        except httpx.TimeoutException:
            return PaymentResult(valid=False, error="x402 facilitator timeout")
        except httpx.HTTPError as e:
            logger.warning("x402 facilitator %s unreachable: %s", action, e)
            return PaymentResult(valid=False, error=f"x402 facilitator unreachable: {e}")

        if resp.status_code != 200:
            logger.warning("x402 facilitator %s failed: %s %s", action, resp.status_code, resp.text[:500])
            return PaymentResult(valid=False, error=f"Facilitator {action} failed ({resp.status_code})")

        try:
            raw = resp.json()
        except ValueError:
            return PaymentResult(valid=False, error=f"Facilitator {action} returned invalid JSON")
        if not isinstance(raw, dict):
            return PaymentResult(valid=False, error=f"Unexpected facilitator response type: {type(raw).__name__}")

        if action == "verify":
            if not raw.get("isValid", False):
                return PaymentResult(valid=False, error=raw.get("invalidReason") or "Payment invalid")
            return PaymentResult(valid=True, amount=amount, payer=raw.get("payer", ""))

        if not raw.get("success", False):
            return PaymentResult(valid=False, error=raw.get("errorReason") or raw.get("error") or "Settlement failed")
        tx_field = raw.get("transaction", raw.get("txHash", ""))
        tx_hash = tx_field.get("txHash", "") if isinstance(tx_field, dict) else str(tx_field)
        logger.info("x402 payment settled: tx=%s amount=%s", tx_hash, format_price(amount))
        return PaymentResult(valid=True, amount=amount, tx_hash=tx_hash, payer=raw.get("payer", ""))
