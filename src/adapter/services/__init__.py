from .unit_of_work import SqlAlchemyUnitOfWork
from .payment_gateway import (
    MockPaymentGateway,
    HttpPaymentGateway,
    create_payment_gateway,
)

__all__ = [
    "SqlAlchemyUnitOfWork",
    "MockPaymentGateway",
    "HttpPaymentGateway",
    "create_payment_gateway",
]
