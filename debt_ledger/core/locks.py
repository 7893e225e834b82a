import asyncio
import weakref

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

# held weakly: a group's lock lives only while someone is using or waiting on it
_group_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()


def group_lock(group_id: str) -> asyncio.Lock:
    lock = _group_locks.get(group_id)
    if lock is None:
        lock = asyncio.Lock()
        _group_locks[group_id] = lock
    return lock


async def lock_group_rows(db: AsyncSession, group_id: str):
    """Serialize writers from other processes for the rest of the transaction."""
    if db.get_bind().dialect.name == "postgresql":
        await db.execute(select(func.pg_advisory_xact_lock(func.hashtext(group_id))))
