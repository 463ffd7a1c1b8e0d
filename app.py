from __future__ import annotations

import contextlib
import logging

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    from endpoints.patch_endpoints import PATCH_CLIENT

    await PATCH_CLIENT.init()
    try:
        yield
    finally:
        await PATCH_CLIENT.close()


def create_app() -> FastAPI:
    load_dotenv("local.env")

    from endpoints.patch_endpoints import SETTINGS, router as patch_router

    app = FastAPI(lifespan=lifespan)

    @app.get("/healthz")
    async def healthz():
        return JSONResponse({"status": "ok", "store": SETTINGS.store_backend})

    app.include_router(patch_router)

    logger.info("APP: using %s store", SETTINGS.store_backend)
    return app


app = create_app()
