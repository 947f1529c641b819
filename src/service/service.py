import logging

from fastapi import FastAPI

from .dependencies import get_session_manager
from .lifecycle import lifespan
from .middleware import setup_middleware
from .routers import misc, session

logger = logging.getLogger('satchel.service')


def create_app() -> FastAPI:
    app = FastAPI(title="Satchel session service", lifespan=lifespan)

    setup_middleware(app, get_session_manager())

    app.include_router(misc.router)
    app.include_router(session.router)

    return app


app = create_app()
