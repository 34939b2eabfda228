"""Repository layer for database operations.

This package provides the repository pattern implementation, centralizing
all database access logic and providing a clean separation of concerns
between data access and business logic.

Repositories:
    - BaseRepository: Generic CRUD operations for any model
    - AccountRepository: Name-keyed account queries and balance writes
    - TransactionRepository: Transaction log queries and statistics

Usage:
    >>> from treasury.repositories import AccountRepository
    >>> from treasury.models.account import Account
    >>>
    >>> account_repo = AccountRepository(Account, db)
    >>> account = await account_repo.get_by_name("Bank_USD_1")
"""

from treasury.repositories.account import AccountRepository
from treasury.repositories.base import BaseRepository
from treasury.repositories.transaction import TransactionRepository

__all__ = [
    "BaseRepository",
    "AccountRepository",
    "TransactionRepository",
]
