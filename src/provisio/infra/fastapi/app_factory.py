"""FastAPI application factory.

Provides :func:`create_app` which wires routers, the request-id and CORS
middleware, RFC 7807 error handlers and lifespan hooks into a FastAPI
application.
"""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from provisio.infra.fastapi.error_handlers import register_exception_handlers
from provisio.infra.fastapi.middleware.request_id import REQUEST_ID_HEADER, RequestIdMiddleware
from provisio.infra.fastapi.settings import AppSettings

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Sequence
    from contextlib import AbstractAsyncContextManager

    from fastapi import APIRouter

    LifespanHook = Callable[[FastAPI], AbstractAsyncContextManager[None]]

logger = logging.getLogger(__name__)


def chain_lifespans(hooks: Sequence[LifespanHook]) -> LifespanHook:
    """Run ``hooks`` as one lifespan: started in order, stopped in reverse.

    A hook that fails on startup stops the hooks already started.
    """
    ordered = tuple(hooks)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        async with AsyncExitStack() as stack:
            for hook in ordered:
                name = getattr(hook, "__qualname__", repr(hook))
                logger.debug("lifespan_hook_starting", extra={"hook": name})
                await stack.enter_async_context(hook(app))
            yield

    return lifespan


def create_app(
    settings: AppSettings | None = None,
    *,
    routers: Sequence[APIRouter] = (),
    lifespan_hooks: Sequence[LifespanHook] = (),
) -> FastAPI:
    """Create a FastAPI application.

    ``RequestIdMiddleware`` is the outermost middleware so every response,
    CORS preflights included, carries ``X-Request-ID``.

    Args:
        settings: Application settings. If ``None``, loaded from environment.
        routers: Routers to include.
        lifespan_hooks: Startup/shutdown hooks, started in the given order.
    """
    settings = settings or AppSettings()

    app = FastAPI(
        title=settings.title,
        version=settings.version,
        docs_url=settings.docs_url,
        lifespan=chain_lifespans(lifespan_hooks),
    )

    # Starlette wraps in reverse order of registration.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.allow_origins,
        allow_methods=settings.cors.allow_methods,
        allow_headers=settings.cors.allow_headers,
        expose_headers=[REQUEST_ID_HEADER],
    )
    app.add_middleware(RequestIdMiddleware)

    register_exception_handlers(app)

    for router in routers:
        app.include_router(router)

    return app
