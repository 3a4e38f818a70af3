from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from services.wallet_api.app.db.base import Base
from services.wallet_api.app.models.wallet import Money, Timestamp, utcnow


class EntryType(str, Enum):
    credit = "credit"
    debit = "debit"

    @classmethod
    def for_amount(cls, amount: Decimal) -> EntryType:
        return cls.debit if amount < 0 else cls.credit


class Transaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        Index("ix_transactions_wallet_date", "wallet_id", "transaction_date"),
    )

    transaction_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    # Logical back-reference only; wallets are never deleted
    wallet_id: Mapped[str] = mapped_column(String(36), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    balance: Mapped[Decimal] = mapped_column(Money, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    transaction_date: Mapped[datetime] = mapped_column(Timestamp, nullable=False, default=utcnow)
