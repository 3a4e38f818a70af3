from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import DateTime, Numeric, String
from sqlalchemy.dialects import mysql
from sqlalchemy.orm import Mapped, mapped_column

from services.wallet_api.app.db.base import Base

# Balances keep four fractional digits
Money = Numeric(19, 4)
# Microsecond precision keeps consecutive entries ordered on MySQL as well
Timestamp = DateTime().with_variant(mysql.DATETIME(fsp=6), "mysql", "mariadb")


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in the timestamp columns."""
    return datetime.now(tz=timezone.utc).replace(tzinfo=None)


class Wallet(Base):
    __tablename__ = "wallets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Denormalized running balance, always equal to the latest transaction's balance
    balance: Mapped[Decimal] = mapped_column(Money, nullable=False)
    date: Mapped[datetime] = mapped_column(Timestamp, nullable=False)
