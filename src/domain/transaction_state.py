"""Transaction State Machine

PENDING -> COMPLETED | FAILED
COMPLETED -> ROLLED_BACK (via compensating entry)

FAILED and ROLLED_BACK are terminal. Any other transition raises
InvalidStateTransition.
"""

from enum import Enum
from src.domain.errors import InvalidStateTransition


class TransactionStatus(str, Enum):
    """Wallet transaction lifecycle states"""
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    ROLLED_BACK = "ROLLED_BACK"


ALLOWED_TRANSITIONS = {
    TransactionStatus.PENDING: frozenset({TransactionStatus.COMPLETED, TransactionStatus.FAILED}),
    TransactionStatus.COMPLETED: frozenset({TransactionStatus.ROLLED_BACK}),
    TransactionStatus.FAILED: frozenset(),
    TransactionStatus.ROLLED_BACK: frozenset(),
}

# Statuses whose delta has been written to the wallet balance
APPLIED_STATUSES = frozenset({TransactionStatus.COMPLETED, TransactionStatus.ROLLED_BACK})


def can_transition(current: TransactionStatus, target: TransactionStatus) -> bool:
    return TransactionStatus(target) in ALLOWED_TRANSITIONS[TransactionStatus(current)]


def ensure_transition(
    current: TransactionStatus, target: TransactionStatus, transaction_id: str = ""
) -> None:
    if not can_transition(current, target):
        current_value = TransactionStatus(current).value
        target_value = TransactionStatus(target).value
        raise InvalidStateTransition(
            f"Transaction {transaction_id} cannot move from {current_value} to {target_value}",
            reason=f"status={current_value}",
        )


def is_resolved(status: TransactionStatus) -> bool:
    """True once a transaction has left PENDING"""
    return TransactionStatus(status) != TransactionStatus.PENDING
