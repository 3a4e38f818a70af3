"""Persistence operations for wallets and their transaction log.

Each public coroutine is meant to run as one serialized task on its own
session. Every operation opens and finishes its database transaction inside
the task, so no connection is held once the next task starts. Multi-step
writes share that transaction, and a failure part way through rolls the whole
operation back.
"""

from __future__ import annotations

import csv
import io
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, AsyncIterator, Iterable
from uuid import uuid4

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import UnaryExpression

from ..exceptions import InvalidInputError, StorageError, WalletNotFoundError
from ..metrics import wallet_created_total, wallet_storage_failure_total, wallet_transaction_total
from ..models import EntryType, Transaction, Wallet, utcnow

FOUR_PLACES = Decimal("0.0001")
MAX_AMOUNT = Decimal("1e15")

SORTABLE_COLUMNS = {column.key: column for column in Transaction.__table__.columns}
EXPORT_COLUMNS = ("transaction_id", "wallet_id", "amount", "balance", "description", "transaction_date")


@dataclass
class WalletSetup:
    id: str
    balance: Decimal
    transaction_id: str
    name: str
    date: datetime


@dataclass
class PostedTransaction:
    balance: Decimal
    transaction_id: str


@dataclass
class TransactionPage:
    transactions: list[Transaction]
    total_count: int


def to_amount(value: Any, field: str = "amount") -> Decimal:
    """Parse ``value`` as a decimal rounded to four fractional digits."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidInputError(f"{field} is required")
    if isinstance(value, bool):
        raise InvalidInputError(f"{field} must be a number")
    try:
        amount = Decimal(str(value).strip())
        if not amount.is_finite():
            raise InvalidInputError(f"{field} must be a number")
        amount = amount.quantize(FOUR_PLACES, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise InvalidInputError(f"{field} must be a number") from None
    # NUMERIC(19, 4) leaves 15 integer digits
    if abs(amount) >= MAX_AMOUNT:
        raise InvalidInputError(f"{field} is out of range")
    return amount


def parse_sort(raw: str | None) -> list[UnaryExpression]:
    """Turn ``"amount desc, transaction_date asc"`` into ORDER BY clauses."""
    clauses: list[UnaryExpression] = []
    for part in (raw or "").split(","):
        tokens = part.split()
        if not tokens:
            continue
        if len(tokens) > 2:
            raise InvalidInputError(f"Invalid sort expression {part.strip()!r}")
        column = SORTABLE_COLUMNS.get(tokens[0])
        if column is None:
            raise InvalidInputError(f"Cannot sort by {tokens[0]!r}")
        direction = tokens[1].lower() if len(tokens) == 2 else "asc"
        if direction not in ("asc", "desc"):
            raise InvalidInputError(f"Invalid sort direction {tokens[1]!r}")
        clauses.append(column.desc() if direction == "desc" else column.asc())
    return clauses or [Transaction.transaction_date.desc()]


@asynccontextmanager
async def _storage(operation: str, session: AsyncSession) -> AsyncIterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        wallet_storage_failure_total.labels(operation=operation).inc()
        logger.opt(exception=exc).error("wallet.store.{} failed", operation)
        if isinstance(exc, DBAPIError) and exc.connection_invalidated:
            await _recycle_connections(session)
        raise StorageError(operation) from exc


async def _recycle_connections(session: AsyncSession) -> None:
    # Drop pooled connections; the engine opens fresh ones for later requests
    engine = session.bind
    if engine is None:
        return
    logger.warning("Database connection lost, discarding pooled connections")
    await engine.dispose()


async def create_wallet(
    session: AsyncSession,
    *,
    name: str | None,
    initial_amount: Any,
    description: str | None = None,
) -> WalletSetup:
    if not name:
        raise InvalidInputError("walletName is required")
    amount = to_amount(initial_amount, field="transactionAmount")
    created_at = utcnow()
    wallet_id = str(uuid4())
    transaction_id = str(uuid4())
    wallet = Wallet(id=wallet_id, name=name, balance=amount, date=created_at)
    opening = Transaction(
        transaction_id=transaction_id,
        wallet_id=wallet_id,
        amount=amount,
        balance=amount,
        description=description,
        transaction_date=created_at,
    )
    async with _storage("create_wallet", session):
        async with session.begin():
            session.add(wallet)
            await session.flush()
            session.add(opening)
    wallet_created_total.inc()
    logger.info("wallet.created id={} balance={}", wallet_id, amount)
    return WalletSetup(
        id=wallet_id,
        balance=amount,
        transaction_id=transaction_id,
        name=name,
        date=created_at,
    )


async def post_transaction(
    session: AsyncSession,
    wallet_id: str | None,
    *,
    amount: Any,
    description: str | None = None,
) -> PostedTransaction:
    if not wallet_id:
        raise InvalidInputError("walletId is required")
    delta = to_amount(amount)
    transaction_id = str(uuid4())
    async with _storage("post_transaction", session):
        async with session.begin():
            result = await session.execute(select(Wallet).where(Wallet.id == wallet_id).with_for_update())
            wallet = result.scalar_one_or_none()
            if wallet is None:
                raise WalletNotFoundError(wallet_id)

            new_balance = to_amount(wallet.balance) + delta
            if abs(new_balance) >= MAX_AMOUNT:
                raise InvalidInputError("amount takes the balance out of range")
            entry = Transaction(
                transaction_id=transaction_id,
                wallet_id=wallet_id,
                amount=delta,
                balance=new_balance,
                description=description,
                transaction_date=utcnow(),
            )
            session.add(entry)
            await session.flush()
            wallet.balance = new_balance
    wallet_transaction_total.labels(kind=EntryType.for_amount(delta).value).inc()
    return PostedTransaction(balance=new_balance, transaction_id=transaction_id)


async def get_wallet(session: AsyncSession, wallet_id: str) -> Wallet:
    async with _storage("get_wallet", session):
        async with session.begin():
            wallet = await session.get(Wallet, wallet_id)
    if wallet is None:
        raise WalletNotFoundError(wallet_id)
    return wallet


async def list_transactions(
    session: AsyncSession,
    wallet_id: str | None,
    *,
    sort: str | None = None,
    limit: int | None = None,
    skip: int | None = None,
) -> TransactionPage:
    if not wallet_id:
        raise InvalidInputError("walletId is required")
    if (limit is not None and limit < 0) or (skip is not None and skip < 0):
        raise InvalidInputError("limit and skip must not be negative")

    stmt = select(Transaction).where(Transaction.wallet_id == wallet_id).order_by(*parse_sort(sort))
    if limit is not None:
        stmt = stmt.limit(limit)
    if skip:
        stmt = stmt.offset(skip)
    count_stmt = select(func.count()).select_from(Transaction).where(Transaction.wallet_id == wallet_id)

    async with _storage("list_transactions", session):
        async with session.begin():
            transactions = list(await session.scalars(stmt))
            total_count = (await session.execute(count_stmt)).scalar_one()
    return TransactionPage(transactions=transactions, total_count=total_count)


def transactions_to_csv(transactions: Iterable[Transaction]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(EXPORT_COLUMNS)
    for entry in transactions:
        writer.writerow(
            [
                entry.transaction_id,
                entry.wallet_id,
                f"{entry.amount:.4f}",
                f"{entry.balance:.4f}",
                entry.description or "",
                entry.transaction_date.isoformat(),
            ]
        )
    return buffer.getvalue()
