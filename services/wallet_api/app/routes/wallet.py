from __future__ import annotations

from typing import Annotated, Any, Awaitable, Callable, TypeVar

from fastapi import APIRouter, HTTPException, Query, Response, status

from services.wallet_api.app.dependencies import SerializerDep, SessionFactory, SessionFactoryDep
from services.wallet_api.app.exceptions import InvalidInputError, WalletNotFoundError
from services.wallet_api.app.schemas import (
    TransactionListResponse,
    TransactionResponse,
    TransactRequest,
    TransactResponse,
    WalletResponse,
    WalletSetupRequest,
    WalletSetupResponse,
)
from services.wallet_api.app.services import (
    create_wallet,
    get_wallet,
    list_transactions,
    post_transaction,
    transactions_to_csv,
)

router = APIRouter()

T = TypeVar("T")

WalletIdQuery = Annotated[str | None, Query(alias="walletId")]
SortQuery = Annotated[str | None, Query(description="Comma separated `field [asc|desc]` pairs")]


async def _in_session(sessions: SessionFactory, operation: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
    # The task owns its session, so it outlives a caller that disconnects
    async with sessions() as session:
        return await operation(session, *args, **kwargs)


@router.post("/setup", response_model=WalletSetupResponse)
async def setup_wallet(payload: WalletSetupRequest, sessions: SessionFactoryDep, serializer: SerializerDep) -> WalletSetupResponse:
    created = await serializer.submit(
        lambda: _in_session(
            sessions,
            create_wallet,
            name=payload.wallet_name,
            initial_amount=payload.transaction_amount,
            description=payload.transaction_description,
        )
    )
    return WalletSetupResponse(
        id=created.id,
        balance=created.balance,
        transaction_id=created.transaction_id,
        name=created.name,
        date=created.date,
    )


@router.post("/transact", include_in_schema=False)
async def transact_without_wallet() -> None:
    raise InvalidInputError("walletId is required")


@router.post("/transact/{wallet_id}", response_model=TransactResponse)
async def transact(
    wallet_id: str,
    payload: TransactRequest,
    sessions: SessionFactoryDep,
    serializer: SerializerDep,
) -> TransactResponse:
    try:
        posted = await serializer.submit(
            lambda: _in_session(sessions, post_transaction, wallet_id, amount=payload.amount, description=payload.description)
        )
    except WalletNotFoundError as exc:
        # Unknown wallets are a server-side failure on this endpoint, not a 404
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=exc.detail) from exc
    return TransactResponse(balance=posted.balance, transaction_id=posted.transaction_id)


@router.get("/wallet/{wallet_id}", response_model=WalletResponse)
async def read_wallet(wallet_id: str, sessions: SessionFactoryDep, serializer: SerializerDep) -> WalletResponse:
    wallet = await serializer.submit(lambda: _in_session(sessions, get_wallet, wallet_id))
    return WalletResponse.model_validate(wallet)


@router.get("/transactions", response_model=TransactionListResponse)
async def read_transactions(
    sessions: SessionFactoryDep,
    serializer: SerializerDep,
    wallet_id: WalletIdQuery = None,
    sort: SortQuery = None,
    limit: Annotated[int | None, Query(ge=0)] = None,
    skip: Annotated[int | None, Query(ge=0)] = None,
) -> TransactionListResponse:
    page = await serializer.submit(
        lambda: _in_session(sessions, list_transactions, wallet_id, sort=sort, limit=limit, skip=skip)
    )
    return TransactionListResponse(
        transactions=[TransactionResponse.model_validate(entry) for entry in page.transactions],
        total_count=page.total_count,
    )


@router.get("/transactions/export")
async def export_transactions(
    sessions: SessionFactoryDep,
    serializer: SerializerDep,
    wallet_id: WalletIdQuery = None,
    sort: SortQuery = None,
) -> Response:
    page = await serializer.submit(lambda: _in_session(sessions, list_transactions, wallet_id, sort=sort))
    return Response(
        content=transactions_to_csv(page.transactions),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="Transactions.csv"'},
    )
