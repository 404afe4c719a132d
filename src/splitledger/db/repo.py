from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

import asyncpg

from splitledger.db.models import (
    Expense,
    ExpenseType,
    GroupSnapshot,
    Member,
    Payer,
    ReceiptItem,
    Split,
    SplitMethod,
    TaxFigures,
)
from splitledger.logging import get_logger, sql_logger
from splitledger.services.money import to_cents


class Database:
    def __init__(self, dsn: str) -> None:
        self._dsn = dsn
        self._pool: asyncpg.Pool | None = None
        self._log = get_logger(__name__)

    async def connect(self) -> None:
        if self._pool is None:
            # asyncpg expects a postgresql/postgres scheme without "+asyncpg"
            dsn = self._dsn.replace("+asyncpg", "")
            self._pool = await asyncpg.create_pool(dsn)
            self._log.info("db.pool.created")

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            self._log.info("db.pool.closed")

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        await self._ensure_pool()
        assert self._pool
        sql_logger.info("sql.fetch", query=query, args=args)
        return await self._pool.fetch(query, *args)

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        await self._ensure_pool()
        assert self._pool
        sql_logger.info("sql.fetchrow", query=query, args=args)
        return await self._pool.fetchrow(query, *args)

    @asynccontextmanager
    async def snapshot(self) -> AsyncIterator[asyncpg.Connection]:
        """Read-only repeatable-read transaction: every query sees the same data."""
        await self._ensure_pool()
        assert self._pool
        async with self._pool.acquire() as conn:
            async with conn.transaction(isolation="repeatable_read", readonly=True):
                sql_logger.info("sql.snapshot.begin")
                yield conn

    async def _ensure_pool(self) -> None:
        if self._pool is None:
            await self.connect()


MEMBERS_QUERY = """
    SELECT gm.user_id, gm.name, gm.is_placeholder, gm.claimed_by
    FROM group_members gm
    WHERE gm.group_id = $1
    ORDER BY gm.joined_at, gm.user_id
"""

EXPENSES_QUERY = """
    SELECT e.id, e.group_id, e.total_amount, e.split_method, e.type, e.description,
           e.tax, e.cgst, e.sgst, e.service_charge, e.prices_include_tax, e.created_at
    FROM expenses e
    WHERE e.group_id = $1
    ORDER BY e.created_at, e.id
"""

PAYERS_QUERY = """
    SELECT ep.expense_id, ep.user_id, ep.amount_paid
    FROM expense_payers ep
    JOIN expenses e ON e.id = ep.expense_id
    WHERE e.group_id = $1
    ORDER BY ep.expense_id, ep.position
"""

SPLITS_QUERY = """
    SELECT es.expense_id, es.user_id, es.amount
    FROM expense_splits es
    JOIN expenses e ON e.id = es.expense_id
    WHERE e.group_id = $1
    ORDER BY es.expense_id, es.position
"""

ITEMS_QUERY = """
    SELECT ri.id, ri.expense_id, ri.name, ri.price,
           array_agg(ria.user_id ORDER BY ria.position) FILTER (WHERE ria.user_id IS NOT NULL) AS assigned_to
    FROM receipt_items ri
    JOIN expenses e ON e.id = ri.expense_id
    LEFT JOIN receipt_item_assignments ria ON ria.item_id = ri.id
    WHERE e.group_id = $1
    GROUP BY ri.id
    ORDER BY ri.expense_id, ri.position
"""


class LedgerRepository:
    """Read side of the expense store, mapped onto ledger records."""

    def __init__(self, db: Database) -> None:
        self.db = db

    async def load_group(self, group_id: str) -> GroupSnapshot:
        async with self.db.snapshot() as conn:
            member_rows = await conn.fetch(MEMBERS_QUERY, group_id)
            expense_rows = await conn.fetch(EXPENSES_QUERY, group_id)
            payer_rows = await conn.fetch(PAYERS_QUERY, group_id)
            split_rows = await conn.fetch(SPLITS_QUERY, group_id)
            item_rows = await conn.fetch(ITEMS_QUERY, group_id)

        expenses = {str(row["id"]): _expense_from_row(row) for row in expense_rows}
        for row in payer_rows:
            expenses[str(row["expense_id"])].payers.append(
                Payer(member_id=str(row["user_id"]), amount_cents=to_cents(row["amount_paid"]))
            )
        for row in split_rows:
            expenses[str(row["expense_id"])].splits.append(
                Split(member_id=str(row["user_id"]), amount_cents=to_cents(row["amount"]))
            )
        for row in item_rows:
            expenses[str(row["expense_id"])].items.append(
                ReceiptItem(
                    name=row["name"],
                    price_cents=to_cents(row["price"]),
                    assigned_to=[str(user_id) for user_id in row["assigned_to"] or []],
                )
            )

        return GroupSnapshot(
            group_id=group_id,
            members=[_member_from_row(row) for row in member_rows],
            expenses=list(expenses.values()),
        )


def _member_from_row(row: Any) -> Member:
    claimed_by: Optional[str] = row["claimed_by"]
    return Member(
        id=str(row["user_id"]),
        name=row["name"],
        is_placeholder=bool(row["is_placeholder"]),
        claimed_by=str(claimed_by) if claimed_by is not None else None,
    )


def _expense_from_row(row: Any) -> Expense:
    charges = TaxFigures(
        tax_cents=to_cents(row["tax"] or 0),
        cgst_cents=to_cents(row["cgst"] or 0),
        sgst_cents=to_cents(row["sgst"] or 0),
        service_charge_cents=to_cents(row["service_charge"] or 0),
    )
    return Expense(
        id=str(row["id"]),
        group_id=str(row["group_id"]),
        total_cents=to_cents(row["total_amount"]),
        split_method=SplitMethod(row["split_method"]),
        payers=[],
        splits=[],
        type=ExpenseType(row["type"] or ExpenseType.EXPENSE.value),
        description=row["description"] or "",
        charges=charges,
        prices_include_tax=bool(row["prices_include_tax"]),
        created_at=row["created_at"],
    )
