"""Idempotent seeding of the starter accounts."""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from treasury.core.constants import SEED_ACCOUNTS
from treasury.db.session import transactional, with_savepoint
from treasury.models.account import Account, Currency
from treasury.repositories.account import AccountRepository

logger = logging.getLogger(__name__)


async def seed_accounts(db: AsyncSession) -> list[str]:
    """Insert each starter account whose name is not taken yet.

    Existing accounts are never modified, so running this on every startup
    is safe. Each insert runs in its own savepoint; a name that appears
    concurrently is skipped rather than failing the whole seed.

    Args:
        db: Async database session (committed on success)

    Returns:
        Names of the accounts that were created
    """
    repo = AccountRepository(Account, db)
    created: list[str] = []

    async with transactional(db):
        for name, currency, balance in SEED_ACCOUNTS:
            if await repo.exists_by_name(name):
                continue
            try:
                async with with_savepoint(db, f"seed_{name}"):
                    await repo.create(
                        obj_in={"name": name, "currency": Currency(currency), "balance": balance}
                    )
            except IntegrityError:
                logger.info(f"Seed account {name} already exists, skipping")
                continue
            created.append(name)

    if created:
        logger.info(f"Seeded {len(created)} accounts: {', '.join(created)}")
    else:
        logger.debug("Seed accounts already present")
    return created
