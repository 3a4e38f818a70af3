from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class WalletSetupRequest(BaseModel):
    """Request body for creating a wallet with its opening transaction.

    Presence and format of the fields are checked by the store so that a
    missing wallet name is reported as a plain invalid-input error.
    """

    model_config = ConfigDict(populate_by_name=True)

    wallet_name: str | None = Field(None, alias="walletName", max_length=255)
    transaction_amount: Decimal | None = Field(None, alias="transactionAmount")
    transaction_description: str | None = Field(None, alias="transactionDescription")


class WalletSetupResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    balance: Decimal
    transaction_id: str = Field(..., alias="transactionId")
    name: str
    date: datetime


class TransactRequest(BaseModel):
    amount: Decimal | None = None
    description: str | None = None


class TransactResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    balance: Decimal
    transaction_id: str = Field(..., alias="transactionId")


class WalletResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    balance: Decimal
    date: datetime


class TransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    transaction_id: str
    wallet_id: str
    amount: Decimal
    balance: Decimal
    description: str | None = None
    transaction_date: datetime


class TransactionListResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    transactions: list[TransactionResponse]
    total_count: int = Field(..., alias="totalCount")
