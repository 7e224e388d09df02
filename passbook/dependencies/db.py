from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from passbook.db import handlers
from passbook.db.base import session_factory


async def get_db_session() -> AsyncGenerator[AsyncSession]:
    async with session_factory() as session:
        async with session.begin():
            yield session


DBSession = Annotated[AsyncSession, Depends(get_db_session)]


class HandlerFactory:
    def __init__(self, handler_cls: type[handlers.ModelHandler]):
        self.handler_class = handler_cls

    def __call__(self, session: DBSession) -> handlers.ModelHandler:
        return self.handler_class(session)


EntitlementRepository = Annotated[
    handlers.EntitlementHandler, Depends(HandlerFactory(handlers.EntitlementHandler))
]
VoucherRepository = Annotated[
    handlers.VoucherHandler, Depends(HandlerFactory(handlers.VoucherHandler))
]
