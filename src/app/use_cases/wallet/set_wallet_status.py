"""SetWalletStatus Use Case

Admin activation, blocking or deactivation of a user's wallets.
"""

import logging
from typing import List
from libs.result import Result, Return, Error
from src.app.repositories.wallet_repository import WalletRepository
from src.app.services.unit_of_work import UnitOfWork
from src.domain.errors import WalletError, WalletNotFound
from .dtos import SetWalletStatusCommandDTO, WalletDTO
from .policy import WalletPolicy

logger = logging.getLogger(__name__)


class SetWalletStatus:
    """
    Use Case: Change wallet status

    Applies to every wallet of the owner unless a currency is given.
    Balances are untouched; BLOCKED and INACTIVE wallets reject new
    transactions and debits.
    """

    def __init__(self, uow: UnitOfWork, wallet_repo: WalletRepository, policy: WalletPolicy):
        self.uow = uow
        self.wallet_repo = wallet_repo
        self.policy = policy

    async def execute(self, command: SetWalletStatusCommandDTO) -> Result[List[WalletDTO]]:
        try:
            if command.currency:
                currency = self.policy.resolve_currency(command.currency)
                wallet = await self.wallet_repo.get_by_owner(command.owner_id, currency)
                wallets = [wallet] if wallet else []
            else:
                wallets = await self.wallet_repo.list_by_owner(command.owner_id)

            if not wallets:
                raise WalletNotFound(f"Wallet not found for user {command.owner_id}")

            updated = []
            for wallet in wallets:
                updated.append(await self.wallet_repo.update_status(wallet.id, command.status))

            await self.uow.commit()

            logger.info(
                f"Wallet status for user {command.owner_id} set to {command.status.value} "
                f"({len(updated)} wallet(s))"
            )
            return Return.ok([WalletDTO.from_entity(w) for w in updated])

        except WalletError as e:
            await self.uow.rollback()
            return Return.err(e.to_error())
        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Failed to set wallet status for user {command.owner_id}: {e}")
            return Return.err(
                Error(
                    code="SET_WALLET_STATUS_FAILED",
                    message="Failed to update wallet status",
                    reason=str(e),
                )
            )
