"""Background workers for the wallet service"""
from .pending_topup_sweeper import PendingTopupSweeperWorker
from .wallet_reconciler import WalletReconcilerWorker

__all__ = ["PendingTopupSweeperWorker", "WalletReconcilerWorker"]
