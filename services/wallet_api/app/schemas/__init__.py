from .wallet import (
    WalletSetupRequest,
    WalletSetupResponse,
    TransactRequest,
    TransactResponse,
    WalletResponse,
    TransactionResponse,
    TransactionListResponse,
)

__all__ = [
    "WalletSetupRequest",
    "WalletSetupResponse",
    "TransactRequest",
    "TransactResponse",
    "WalletResponse",
    "TransactionResponse",
    "TransactionListResponse",
]
