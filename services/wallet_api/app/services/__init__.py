"""Service-layer helpers for the wallet API."""

from .wallet_store import (
    PostedTransaction,
    TransactionPage,
    WalletSetup,
    create_wallet,
    get_wallet,
    list_transactions,
    parse_sort,
    post_transaction,
    to_amount,
    transactions_to_csv,
)

__all__ = [
    "PostedTransaction",
    "TransactionPage",
    "WalletSetup",
    "create_wallet",
    "get_wallet",
    "list_transactions",
    "parse_sort",
    "post_transaction",
    "to_amount",
    "transactions_to_csv",
]
