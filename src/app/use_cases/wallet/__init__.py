"""Wallet ledger use cases"""
from .get_balance import GetBalance, GetOwnerBalance
from .initiate_topup import InitiateTopup
from .handle_gateway_callback import HandleGatewayCallback
from .adjust_balance import AdjustBalance
from .set_wallet_status import SetWalletStatus
from .debit_for_order import DebitForOrder
from .credit_for_refund import CreditForRefund
from .rollback_transaction import RollbackTransaction
from .list_transactions import ListTransactions
from .list_wallets import ListWallets
from .get_wallet_summary import GetWalletSummary
from .get_wallet_stats import GetWalletStats
from .sweep_pending_topups import SweepPendingTopups
from .reconcile_wallets import ReconcileWallets
from .policy import WalletPolicy
from .dtos import (
    TopupCommandDTO,
    GatewayCallbackCommandDTO,
    AdjustBalanceCommandDTO,
    SetWalletStatusCommandDTO,
    OrderDebitCommandDTO,
    RefundCreditCommandDTO,
    RollbackCommandDTO,
    ListTransactionsQueryDTO,
    ListWalletsQueryDTO,
    OwnerQueryDTO,
    WalletDTO,
    BalanceResponseDTO,
    TransactionDTO,
    TopupResponseDTO,
    CallbackResponseDTO,
    LedgerMutationResponseDTO,
    ListTransactionsResponseDTO,
    ListWalletsResponseDTO,
    WalletSummaryDTO,
    WalletStatsDTO,
    SweepResultDTO,
    WalletDiscrepancyDTO,
    ReconciliationResultDTO,
)

__all__ = [
    "GetBalance",
    "GetOwnerBalance",
    "InitiateTopup",
    "HandleGatewayCallback",
    "AdjustBalance",
    "SetWalletStatus",
    "DebitForOrder",
    "CreditForRefund",
    "RollbackTransaction",
    "ListTransactions",
    "ListWallets",
    "GetWalletSummary",
    "GetWalletStats",
    "SweepPendingTopups",
    "ReconcileWallets",
    "WalletPolicy",
    "TopupCommandDTO",
    "GatewayCallbackCommandDTO",
    "AdjustBalanceCommandDTO",
    "SetWalletStatusCommandDTO",
    "OrderDebitCommandDTO",
    "RefundCreditCommandDTO",
    "RollbackCommandDTO",
    "ListTransactionsQueryDTO",
    "ListWalletsQueryDTO",
    "OwnerQueryDTO",
    "WalletDTO",
    "BalanceResponseDTO",
    "TransactionDTO",
    "TopupResponseDTO",
    "CallbackResponseDTO",
    "LedgerMutationResponseDTO",
    "ListTransactionsResponseDTO",
    "ListWalletsResponseDTO",
    "WalletSummaryDTO",
    "WalletStatsDTO",
    "SweepResultDTO",
    "WalletDiscrepancyDTO",
    "ReconciliationResultDTO",
]
