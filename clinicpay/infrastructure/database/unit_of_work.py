"""SQLAlchemy-backed transaction boundary."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from clinicpay.domain.interfaces import UnitOfWork


class SqlAlchemyUnitOfWork(UnitOfWork):
    """Opens savepoints on the request's session."""

    def __init__(self, session: AsyncSession):
        self._session = session

    @asynccontextmanager
    async def savepoint(self) -> AsyncGenerator[None, None]:
        async with self._session.begin_nested():
            yield
