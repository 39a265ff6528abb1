# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from dynasession.server.session.dependencies import initialise_session_store, set_session_store
from dynasession.server.session.middleware import DynamoDBSessionMiddleware
from dynasession.server.session.router import router as session_router
from dynasession.server.session.schemas import CookieOptions
from dynasession.server.session.store import DynamoDBSessionStore

logger = logging.getLogger(__name__)


def create_app(
    store: Optional[DynamoDBSessionStore] = None,
    cookie: Optional[CookieOptions] = None,
) -> FastAPI:
    session_store = store or initialise_session_store()
    set_session_store(session_store)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        await session_store.init()
        try:
            yield
        finally:
            await session_store.close()

    application = FastAPI(
        title="dynasession API",
        description="DynamoDB-backed web sessions",
        version="0.1.0",
        lifespan=lifespan,
    )
    application.add_middleware(
        DynamoDBSessionMiddleware,
        store=session_store,
        cookie=cookie or CookieOptions.from_env(),
    )
    application.include_router(session_router)
    logger.info("Session middleware using table %s", session_store.table)
    return application


app = create_app()
