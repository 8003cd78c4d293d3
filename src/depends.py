from fastapi import Depends
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession
from config import ApplicationConfig
from src.adapter.repositories.wallet_repository import SqlAlchemyWalletRepository
from src.adapter.repositories.wallet_transaction_repository import (
    SqlAlchemyWalletTransactionRepository,
)
from src.adapter.services.payment_gateway import create_payment_gateway
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.services.payment_gateway import PaymentGateway
from src.app.services.wallet_service import WalletService
from src.app.use_cases.wallet.policy import WalletPolicy

engine = create_async_engine(ApplicationConfig.DB_URI, echo=False, future=True)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)

wallet_policy = WalletPolicy.from_config(ApplicationConfig)
payment_gateway = create_payment_gateway(ApplicationConfig)


async def get_session() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session


async def get_unit_of_work():
    async with AsyncSessionLocal() as session:
        yield SqlAlchemyUnitOfWork(session)


def get_wallet_policy() -> WalletPolicy:
    return wallet_policy


def get_payment_gateway() -> PaymentGateway:
    return payment_gateway


async def get_wallet_service(
    session: AsyncSession = Depends(get_session),
    policy: WalletPolicy = Depends(get_wallet_policy),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> WalletService:
    return WalletService(
        policy,
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyWalletRepository(session),
        SqlAlchemyWalletTransactionRepository(session),
        gateway,
    )
