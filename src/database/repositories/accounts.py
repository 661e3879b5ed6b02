"""
Account repository.

Looks accounts up by id, email or a batch of ids, and creates accounts on
first OAuth login. Accounts are never updated here.
"""

import logging
from typing import Optional, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .base import unit_of_work
from ..connection import Database, get_database
from ..models import AccountDB
from ...models.account import Account
from ...utils.validation import parse_uuid

logger = logging.getLogger(__name__)


class AccountRepository:
    """Repository for account operations."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or get_database()

    async def get_by_ids(
        self, account_ids: List[str], session: Optional[AsyncSession] = None
    ) -> List[Account]:
        """Get every account whose id is in the list. Unknown ids are skipped."""
        if not account_ids:
            return []

        ids = [parse_uuid(account_id, "account_id") for account_id in account_ids]
        async with unit_of_work(self.db, session, "get accounts") as active:
            result = await active.execute(select(AccountDB).where(AccountDB.id.in_(ids)))
            return [Account.model_validate(row) for row in result.scalars().all()]

    async def get_by_id(self, account_id: str, session: Optional[AsyncSession] = None) -> Optional[Account]:
        """Get account by id, or None."""
        account_id = parse_uuid(account_id, "account_id")
        async with unit_of_work(self.db, session, f"get account {account_id}") as active:
            result = await active.execute(select(AccountDB).where(AccountDB.id == account_id))
            row = result.scalar_one_or_none()
            return Account.model_validate(row) if row else None

    async def get_by_email(self, email: str, session: Optional[AsyncSession] = None) -> Optional[Account]:
        """Get account by email, or None."""
        async with unit_of_work(self.db, session, "get account by email") as active:
            result = await active.execute(select(AccountDB).where(AccountDB.email == email))
            row = result.scalar_one_or_none()
            return Account.model_validate(row) if row else None

    async def create(
        self,
        email: str,
        first_name: str,
        last_name: str,
        provider: str,
        provider_account_id: str,
        thumbnail: Optional[str] = None,
        session: Optional[AsyncSession] = None,
    ) -> Account:
        """
        Create an account linked to a provider identity.

        Raises:
            StorageConstraintError: email or provider identity already registered
        """
        async with unit_of_work(self.db, session, f"create account {email}") as active:
            account = AccountDB(
                email=email,
                first_name=first_name,
                last_name=last_name,
                provider=provider,
                provider_account_id=provider_account_id,
                thumbnail=thumbnail,
                is_active=True,
            )
            active.add(account)
            await active.flush()

            logger.info(f"Created account {account.id} via {provider}")
            return Account.model_validate(account)


# Singleton
_account_repository: Optional[AccountRepository] = None


def get_account_repository() -> AccountRepository:
    """Get the account repository singleton."""
    global _account_repository
    if _account_repository is None:
        _account_repository = AccountRepository()
    return _account_repository
