from typing import Any, TypeVar

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from kts.core.errors import AddressOccupied
from kts.models.base import Base

RecordT = TypeVar("RecordT", bound=Base)


class RecordStore:
    """
    Address-keyed record storage over one AsyncSession.

    ``create`` is insert-if-absent: the primary key on ``address`` decides the
    winner between racing creators, the loser gets AddressOccupied. ``mutate``
    is a single conditional UPDATE, so guards and writes commit together.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, model: type[RecordT], address: str, fresh: bool = False) -> RecordT | None:
        return await self.session.get(model, address, populate_existing=fresh)

    async def exists(self, model: type[RecordT], address: str) -> bool:
        return await self.session.get(model, address) is not None

    async def create(self, record: RecordT) -> RecordT:
        # Fast path only; the primary key remains the authority under races.
        if await self.exists(type(record), record.address):
            raise AddressOccupied(record.address)
        self.session.add(record)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            await self.session.rollback()
            raise AddressOccupied(record.address) from exc
        return record

    async def mutate(self, model: type[RecordT], address: str, guards: list[Any], values: dict[str, Any]) -> bool:
        """Apply ``values`` iff the record exists and every guard holds. Returns whether a row changed."""
        stmt = (
            update(model)
            .where(model.address == address, *guards)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()
