from .wallet import Wallet, utcnow
from .transaction import Transaction, EntryType

__all__ = [
    "Wallet",
    "Transaction",
    "EntryType",
    "utcnow",
]
