from .unit_of_work import UnitOfWork
from .payment_gateway import PaymentGateway, PaymentSession
from .ledger_store import LedgerStore

__all__ = [
    "UnitOfWork",
    "PaymentGateway",
    "PaymentSession",
    "LedgerStore",
]
