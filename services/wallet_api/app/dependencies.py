from __future__ import annotations

from typing import Annotated, Callable

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from .db.session import async_session_factory
from .serializer import RequestSerializer

SessionFactory = Callable[[], AsyncSession]


def get_session_factory() -> SessionFactory:
    # Sessions are opened inside each serialized task, not per request
    return async_session_factory


def get_serializer(request: Request) -> RequestSerializer:
    return request.app.state.serializer


SessionFactoryDep = Annotated[SessionFactory, Depends(get_session_factory)]
SerializerDep = Annotated[RequestSerializer, Depends(get_serializer)]
