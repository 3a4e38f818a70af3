from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from services.wallet_api.app.exceptions import InvalidInputError, StorageError, WalletNotFoundError
from services.wallet_api.app.models import Transaction
from services.wallet_api.app.services import wallet_store
from services.wallet_api.app.services.wallet_store import (
    create_wallet,
    get_wallet,
    list_transactions,
    parse_sort,
    post_transaction,
    to_amount,
)


def test_to_amount_rounds_to_four_places():
    assert to_amount("100.5") == Decimal("100.5000")
    assert to_amount(-20.25) == Decimal("-20.2500")
    assert to_amount("1.23456") == Decimal("1.2346")
    assert str(to_amount("3")) == "3.0000"


@pytest.mark.parametrize("value", [None, "", "  ", "abc", "NaN", "Infinity", True, "1e30", "-1e15"])
def test_to_amount_rejects_invalid_input(value):
    with pytest.raises(InvalidInputError):
        to_amount(value)


def test_parse_sort_defaults_to_newest_first():
    (clause,) = parse_sort(None)
    assert str(clause.compile()) == str(Transaction.transaction_date.desc().compile())


def test_parse_sort_reads_field_direction_pairs():
    clauses = parse_sort("amount desc, description, transaction_date ASC")
    compiled = [str(c.compile()) for c in clauses]
    assert compiled == [
        str(Transaction.amount.desc().compile()),
        str(Transaction.description.asc().compile()),
        str(Transaction.transaction_date.asc().compile()),
    ]


@pytest.mark.parametrize("raw", ["password desc", "amount sideways", "amount desc nulls", "1=1"])
def test_parse_sort_rejects_unknown_fields_and_directions(raw):
    with pytest.raises(InvalidInputError):
        parse_sort(raw)


@pytest.mark.asyncio
async def test_post_transaction_keeps_running_balance(session_factory):
    async with session_factory() as session:
        setup = await create_wallet(session, name="Test", initial_amount="100.5", description="Wallet Setup")
    async with session_factory() as session:
        posted = await post_transaction(session, setup.id, amount="-20.25", description="groceries")
    assert posted.balance == Decimal("80.2500")

    async with session_factory() as session:
        wallet = await get_wallet(session, setup.id)
    assert wallet.balance == Decimal("80.2500")

    async with session_factory() as session:
        page = await list_transactions(session, setup.id, sort="transaction_date asc")
    assert page.total_count == 2
    assert [entry.balance for entry in page.transactions] == [Decimal("100.5000"), Decimal("80.2500")]
    assert page.transactions[-1].transaction_id == posted.transaction_id


@pytest.mark.asyncio
async def test_post_transaction_to_unknown_wallet(session_factory):
    async with session_factory() as session:
        with pytest.raises(WalletNotFoundError):
            await post_transaction(session, "missing", amount="1")
    async with session_factory() as session:
        page = await list_transactions(session, "missing")
    assert page.total_count == 0


@pytest.mark.asyncio
async def test_required_identifiers(session_factory):
    async with session_factory() as session:
        with pytest.raises(InvalidInputError):
            await create_wallet(session, name=None, initial_amount="1")
        with pytest.raises(InvalidInputError):
            await post_transaction(session, "", amount="1")
        with pytest.raises(InvalidInputError):
            await list_transactions(session, None)


@pytest.mark.asyncio
async def test_failed_setup_leaves_no_orphan_wallet(session_factory, monkeypatch):
    ids = iter(["wallet-1", "txn-1", "wallet-2", "txn-1"])
    monkeypatch.setattr(wallet_store, "uuid4", lambda: next(ids))

    async with session_factory() as session:
        await create_wallet(session, name="First", initial_amount="1")
    async with session_factory() as session:
        with pytest.raises(StorageError):
            await create_wallet(session, name="Second", initial_amount="2")

    async with session_factory() as session:
        with pytest.raises(WalletNotFoundError):
            await get_wallet(session, "wallet-2")
    async with session_factory() as session:
        assert (await get_wallet(session, "wallet-1")).name == "First"


class _Begin:
    async def __aenter__(self) -> None:
        return None

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False


class _Engine:
    def __init__(self) -> None:
        self.disposed = False

    async def dispose(self) -> None:
        self.disposed = True


class _LostConnectionSession:
    def __init__(self) -> None:
        self.bind = _Engine()

    def begin(self) -> _Begin:
        return _Begin()

    async def get(self, *_args, **_kwargs):
        raise OperationalError("SELECT", {}, Exception("server has gone away"), connection_invalidated=True)


@pytest.mark.asyncio
async def test_lost_connection_recycles_pool_and_reports_storage_failure():
    session = _LostConnectionSession()
    with pytest.raises(StorageError):
        await get_wallet(session, "any")
    assert session.bind.disposed
