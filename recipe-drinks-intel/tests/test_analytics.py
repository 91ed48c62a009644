"""Tests for the payment tracker (memory log, summaries, CSV export)."""

import io
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pandas as pd
import pytest

from analytics import CSV_COLUMNS, PaymentTracker


class TestPaymentTracker:

    @pytest.mark.asyncio
    async def test_summary_counts_directions(self, tracker):
        await tracker.record(entrypoint="meal-search", amount=Decimal("0.001"))
        await tracker.record(entrypoint="full-recipe", amount=Decimal("0.003"))
        await tracker.record(entrypoint="refund", amount=Decimal("0.001"), direction="outgoing")

        summary = await tracker.get_summary()
        assert summary["incomingTotal"] == Decimal("0.004")
        assert summary["outgoingTotal"] == Decimal("0.001")
        assert summary["netTotal"] == Decimal("0.003")
        assert summary["incomingCount"] == 2
        assert summary["outgoingCount"] == 1
        assert summary["windowStart"] is None

    @pytest.mark.asyncio
    async def test_window_excludes_old_records(self, tracker):
        old = await tracker.record(entrypoint="meal-search", amount=Decimal("0.001"))
        old.timestamp = datetime.now(timezone.utc) - timedelta(hours=2)
        await tracker.record(entrypoint="meal-search", amount=Decimal("0.002"))

        summary = await tracker.get_summary(window_ms=60_000)
        assert summary["transactionCount"] == 1
        assert summary["incomingTotal"] == Decimal("0.002")
        assert summary["windowStart"] is not None

    @pytest.mark.asyncio
    async def test_transactions_newest_first(self, tracker):
        first = await tracker.record(entrypoint="a", amount=Decimal("0.001"))
        first.timestamp = datetime.now(timezone.utc) - timedelta(seconds=10)
        await tracker.record(entrypoint="b", amount=Decimal("0.001"))

        txs = await tracker.get_all_transactions()
        assert [t["entrypoint"] for t in txs] == ["b", "a"]
        assert txs[0]["amount"] == "0.001"

    @pytest.mark.asyncio
    async def test_memory_is_bounded(self):
        tracker = PaymentTracker(max_records=3)
        for i in range(5):
            await tracker.record(entrypoint=f"e{i}", amount=Decimal("0.001"))
        assert (await tracker.get_summary())["transactionCount"] == 3

    @pytest.mark.asyncio
    async def test_csv_export(self, tracker):
        await tracker.record(entrypoint="meal-search", amount=Decimal("0.001"), tx_hash="0xabc", payer="0xp")
        frame = pd.read_csv(io.StringIO(await tracker.export_to_csv()), dtype=str)
        assert list(frame.columns) == CSV_COLUMNS
        assert frame.loc[0, "tx_hash"] == "0xabc"
        assert frame.loc[0, "amount"] == "0.001"

    @pytest.mark.asyncio
    async def test_empty_csv_has_header(self, tracker):
        assert (await tracker.export_to_csv()).strip() == ",".join(CSV_COLUMNS)

    @pytest.mark.asyncio
    async def test_firestore_failure_is_logged_not_raised(self, tracker):
        doc = MagicMock()
        doc.set = AsyncMock(side_effect=RuntimeError("firestore down"))
        db = MagicMock()
        db.collection.return_value.document.return_value = doc
        tracker.set_db(db)

        rec = await tracker.record(entrypoint="meal-search", amount=Decimal("0.001"))
        db.collection.assert_called_with("payment_transactions")
        db.collection.return_value.document.assert_called_with(rec.id)
        assert doc.set.await_args.args[0]["amount"] == "0.001"
