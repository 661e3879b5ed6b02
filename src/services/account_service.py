"""
Account service.

Resolves accounts by id or email, and links a provider identity to an
account on first login.
"""

import logging
from typing import Optional, Tuple

from ..database.connection import Database, get_database
from ..database.repositories.base import unit_of_work
from ..database.repositories.accounts import AccountRepository, get_account_repository
from ..exceptions import NotFoundError
from ..models.account import Account

logger = logging.getLogger(__name__)


def split_full_name(name: str) -> Tuple[str, str]:
    """Split a display name into (first word, remaining words)."""
    words = (name or "").split()
    if not words:
        return "", ""
    return words[0], " ".join(words[1:])


class AccountService:
    """Service for account operations."""

    def __init__(self, account_repo: Optional[AccountRepository] = None, db: Optional[Database] = None):
        self.db: Database = db or get_database()
        self.account_repo: AccountRepository = account_repo or get_account_repository()

    async def get_current_account(self, account_id: str) -> Account:
        """
        Get the account behind the current request.

        Raises:
            NotFoundError: no account has this id
        """
        account = await self.account_repo.get_by_id(account_id)
        if account is None:
            raise NotFoundError("Account not found")
        return account

    async def get_by_id(self, account_id: str) -> Optional[Account]:
        return await self.account_repo.get_by_id(account_id)

    async def get_by_email(self, email: str) -> Optional[Account]:
        return await self.account_repo.get_by_email(email)

    async def create_or_get_account(
        self,
        email: str,
        first_name: str,
        last_name: str,
        provider: str,
        provider_account_id: str,
        thumbnail: Optional[str] = None,
    ) -> Account:
        """Return the account registered under this email, creating it if needed."""
        async with unit_of_work(self.db, None, f"create or get account {email}") as session:
            existing = await self.account_repo.get_by_email(email, session=session)
            if existing is not None:
                logger.debug(f"Account for {email} already exists")
                return existing

            return await self.account_repo.create(
                email=email,
                first_name=first_name,
                last_name=last_name,
                provider=provider,
                provider_account_id=provider_account_id,
                thumbnail=thumbnail,
                session=session,
            )


# Singleton
_account_service: Optional[AccountService] = None


def get_account_service() -> AccountService:
    """Get the account service singleton."""
    global _account_service
    if _account_service is None:
        _account_service = AccountService()
    return _account_service
