"""
Request-scoped loaders.

Memoize lookups for the lifetime of a single request so that permission
checks evaluated one after the other never fetch the same row twice.
A loader instance must never be shared between requests.
"""

from typing import Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from collectives_backend.app.models.collective import Collective
from collectives_backend.app.models.expense_item import ExpenseItem
from collectives_backend.app.models.user import User


class CollectiveByIdLoader:
    """Collective lookup by primary key, memoized per request."""
    
    def __init__(self, db: AsyncSession):
        self.db = db
        self._cache: Dict[int, Optional[Collective]] = {}
    
    async def load(self, collective_id: Optional[int]) -> Optional[Collective]:
        if collective_id is None:
            return None
        if collective_id not in self._cache:
            self._cache[collective_id] = await self.db.get(Collective, collective_id)
        return self._cache[collective_id]
    
    def prime(self, collective: Collective) -> None:
        self._cache[collective.id] = collective


class ExpenseItemsLoader:
    """Items of an expense, memoized per request."""
    
    def __init__(self, db: AsyncSession):
        self.db = db
        self._cache: Dict[int, List[ExpenseItem]] = {}
    
    async def load(self, expense_id: int) -> List[ExpenseItem]:
        if expense_id not in self._cache:
            result = await self.db.execute(
                select(ExpenseItem).where(ExpenseItem.expense_id == expense_id).order_by(ExpenseItem.id)
            )
            self._cache[expense_id] = list(result.scalars().all())
        return self._cache[expense_id]


class Loaders:
    """Bundle of loaders attached to a RequestContext."""
    
    def __init__(self, db: AsyncSession):
        self.collective_by_id = CollectiveByIdLoader(db)
        self.expense_items = ExpenseItemsLoader(db)


async def load_user(db: AsyncSession, user_id: int) -> Optional[User]:
    """Fetch a user with fresh role assignments."""
    result = await db.execute(
        select(User)
        .where(User.id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()
