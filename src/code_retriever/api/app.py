"""FastAPI surface: GET /code/{address} plus health and metrics."""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from code_retriever import __version__
from code_retriever.config.settings import Settings
from code_retriever.core.errors import RetrieverError
from code_retriever.core.logging import get_logger
from code_retriever.core.metrics import metrics
from code_retriever.core.middleware import ObservabilityMiddleware
from code_retriever.services.source_code import SourceCodeService, build_service

logger = get_logger(__name__)

SERVICE_NAME = "etherscan-code-retriever"


def create_app(
    service: Optional[SourceCodeService] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """Build the app around ``service``, or around one wired from ``settings``.

    A service built here is owned by the app and closed on shutdown; a
    service passed in is left to the caller.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned = None
        if app.state.service is None:
            owned = build_service((settings or Settings()).validate())
            app.state.service = owned
        try:
            yield
        finally:
            if owned is not None:
                owned.close()
                app.state.service = None
                logger.info("service closed")

    app = FastAPI(title="Etherscan Code Retriever", version=__version__, lifespan=lifespan)
    app.state.service = service
    app.add_middleware(ObservabilityMiddleware)

    @app.get("/health")
    async def health() -> JSONResponse:
        return JSONResponse({"status": "ok", "service": SERVICE_NAME})

    @app.get("/metrics")
    async def get_metrics(request: Request) -> JSONResponse:
        snapshot = metrics.snapshot()
        svc = request.app.state.service
        if svc is not None:
            snapshot["cache_size"] = len(svc.cache)
        return JSONResponse(snapshot)

    @app.get("/code/")
    def missing_address() -> JSONResponse:
        raise HTTPException(status_code=400, detail="Address is required")

    # sync handler: runs on the threadpool, so lookups proceed concurrently
    @app.get("/code/{address}")
    def source_code(address: str, request: Request) -> JSONResponse:
        address = address.strip()
        if not address:
            raise HTTPException(status_code=400, detail="Address is required")
        svc: SourceCodeService = request.app.state.service

        try:
            is_contract = svc.is_contract(address)
        except RetrieverError as e:
            raise HTTPException(
                status_code=500,
                detail=f"Failed to check if address is a contract: {e}",
            ) from e
        if not is_contract:
            raise HTTPException(status_code=400, detail="Address is not a contract")

        try:
            code = svc.get_source_code(address)
        except RetrieverError as e:
            logger.error(f"lookup failed address={address}: {e}")
            raise HTTPException(status_code=500, detail=str(e)) from e
        return JSONResponse(code.to_dict())

    return app
