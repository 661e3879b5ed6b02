"""
Shared transaction scope for repositories.

Joins the caller's session when one is given, otherwise opens a committing
session, and translates driver failures into storage errors.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..connection import Database
from ...exceptions import TaskTrackerError, StorageError, StorageConstraintError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def unit_of_work(
    db: Database, session: Optional[AsyncSession], action: str
) -> AsyncGenerator[AsyncSession, None]:
    """Run a block in a transaction and translate driver errors."""
    try:
        async with db.transaction(session) as active:
            yield active

    except TaskTrackerError:
        raise

    except IntegrityError as e:
        logger.error(f"Constraint violation during {action}: {e}")
        raise StorageConstraintError(f"Cannot {action}: constraint violation")

    except SQLAlchemyError as e:
        logger.error(f"CRITICAL: {action} failed: {e}", exc_info=True)
        raise StorageError(f"Failed to {action}")
