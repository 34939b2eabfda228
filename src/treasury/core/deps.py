"""Dependencies for FastAPI routes."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from treasury.db.session import get_db
from treasury.services.account_query_service import AccountQueryService
from treasury.services.conversion import ConversionTable
from treasury.services.ledger_store import LedgerStore
from treasury.services.transfer_service import TransferEngine


@lru_cache
def get_conversion_table() -> ConversionTable:
    """The process-wide rate table, built once from settings."""
    return ConversionTable.from_settings()


async def get_ledger_store(db: Annotated[AsyncSession, Depends(get_db)]) -> LedgerStore:
    """Ledger store bound to the request's session."""
    return LedgerStore(db)


async def get_transfer_engine(
    store: Annotated[LedgerStore, Depends(get_ledger_store)],
    conversion_table: Annotated[ConversionTable, Depends(get_conversion_table)],
) -> TransferEngine:
    """Transfer engine over the request's ledger store."""
    return TransferEngine(store, conversion_table)


async def get_account_query_service(
    store: Annotated[LedgerStore, Depends(get_ledger_store)],
    conversion_table: Annotated[ConversionTable, Depends(get_conversion_table)],
) -> AccountQueryService:
    """Account aggregation service over the request's ledger store."""
    return AccountQueryService(store, conversion_table)


# Type aliases for cleaner dependency injection
Store = Annotated[LedgerStore, Depends(get_ledger_store)]
Rates = Annotated[ConversionTable, Depends(get_conversion_table)]
Engine = Annotated[TransferEngine, Depends(get_transfer_engine)]
AccountQueries = Annotated[AccountQueryService, Depends(get_account_query_service)]
