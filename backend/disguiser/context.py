from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from db.target_store import TargetStore


@dataclass
class DisguiseContext:
    """The two store handles every engine call works against.

    ``target`` is the web application's database, ``vault`` a session on the
    ledger store. They never share a transaction.
    """

    target: TargetStore
    vault: AsyncSession
