"""
Payment Tracker — log of settled x402 payments with windowed summaries.

Every settled entrypoint call is recorded in a bounded in-memory log.
When a Firestore client is attached at startup the log is also persisted
to ``payment_transactions/{id}`` and window queries read from there, so
numbers survive restarts and are shared between instances.
"""

from __future__ import annotations

import logging
import uuid
from collections import deque
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Literal, Optional

import pandas as pd
from google.cloud.firestore import AsyncClient
from pydantic import BaseModel, Field

logger = logging.getLogger("recipe-drinks-intel.analytics")

COLLECTION = "payment_transactions"
MAX_MEMORY_RECORDS = 10_000

CSV_COLUMNS = [
    "id", "timestamp", "direction", "entrypoint", "amount",
    "currency", "network", "tx_hash", "payer",
]


class PaymentRecord(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    direction: Literal["incoming", "outgoing"] = "incoming"
    entrypoint: str
    amount: Decimal
    currency: str = "USDC"
    network: str = ""
    tx_hash: str = ""
    payer: str = ""

    def to_row(self) -> dict:
        """JSON/CSV-safe representation (amount as string, ISO timestamp)."""
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "direction": self.direction,
            "entrypoint": self.entrypoint,
            "amount": str(self.amount),
            "currency": self.currency,
            "network": self.network,
            "tx_hash": self.tx_hash,
            "payer": self.payer,
        }


class PaymentTracker:
    """In-memory payment log, optionally backed by Firestore."""

    def __init__(self, max_records: int = MAX_MEMORY_RECORDS):
        self._memory: deque[PaymentRecord] = deque(maxlen=max_records)
        self._db: AsyncClient | None = None

    def set_db(self, db: AsyncClient):
        self._db = db

    async def record(
        self,
        *,
        entrypoint: str,
        amount: Decimal,
        tx_hash: str = "",
        payer: str = "",
        network: str = "",
        direction: Literal["incoming", "outgoing"] = "incoming",
    ) -> PaymentRecord:
        """Record one payment. Persistence failures are logged, not raised."""
        rec = PaymentRecord(
            entrypoint=entrypoint,
            amount=amount,
            tx_hash=tx_hash,
            payer=payer,
            network=network,
            direction=direction,
        )
        self._memory.append(rec)

        if self._db is not None:
            doc = rec.model_dump()
            doc["amount"] = str(rec.amount)
            try:
                await self._db.collection(COLLECTION).document(rec.id).set(doc)
            except Exception as exc:
                logger.warning("Failed to persist payment %s: %s", rec.id, exc)

        logger.info("Payment recorded: entrypoint=%s amount=%s tx=%s", entrypoint, amount, tx_hash)
        return rec

    async def _load(self, window_ms: Optional[int]) -> list[PaymentRecord]:
        """Records inside the window, newest first."""
        cutoff = None
        if window_ms is not None:
            cutoff = datetime.now(timezone.utc) - timedelta(milliseconds=window_ms)

        if self._db is not None:
            query = self._db.collection(COLLECTION)
            if cutoff is not None:
                query = query.where("timestamp", ">=", cutoff)
            query = query.order_by("timestamp", direction="DESCENDING")
            records = []
            async for doc in query.stream():
                records.append(PaymentRecord.model_validate(doc.to_dict()))
            return records

        records = [r for r in self._memory if cutoff is None or r.timestamp >= cutoff]
        records.sort(key=lambda r: r.timestamp, reverse=True)
        return records

    async def get_summary(self, window_ms: Optional[int] = None) -> dict:
        records = await self._load(window_ms)
        incoming = [r for r in records if r.direction == "incoming"]
        outgoing = [r for r in records if r.direction == "outgoing"]
        incoming_total = sum((r.amount for r in incoming), Decimal("0"))
        outgoing_total = sum((r.amount for r in outgoing), Decimal("0"))
        now = datetime.now(timezone.utc)

        return {
            "windowMs": window_ms,
            "windowStart": (now - timedelta(milliseconds=window_ms)).isoformat() if window_ms is not None else None,
            "windowEnd": now.isoformat(),
            "incomingTotal": incoming_total,
            "outgoingTotal": outgoing_total,
            "netTotal": incoming_total - outgoing_total,
            "incomingCount": len(incoming),
            "outgoingCount": len(outgoing),
            "transactionCount": len(records),
        }

    async def get_all_transactions(self, window_ms: Optional[int] = None) -> list[dict]:
        return [r.to_row() for r in await self._load(window_ms)]

    async def export_to_csv(self, window_ms: Optional[int] = None) -> str:
        rows = await self.get_all_transactions(window_ms)
        return pd.DataFrame(rows, columns=CSV_COLUMNS).to_csv(index=False)
