import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import config
from errors import DocFillError
from logging_config import configure_logging
from routers import ai_router, document_router, session_router, upload_router
from services.oracle_service import build_oracle
from services.session_store import SessionStore

logger = logging.getLogger(__name__)


def create_app(store: Optional[SessionStore] = None, oracle_mode: Optional[str] = None) -> FastAPI:
    app = FastAPI(
        title="Document Template Filler",
        description="Upload a .docx template, answer questions for its placeholders, download the filled document.",
        version="0.1.0",
    )

    # Constructed once here and handed to every handler through app.state
    app.state.store = store if store is not None else SessionStore()
    app.state.oracle = build_oracle(oracle_mode)
    logger.info(
        "Field oracle: %s", app.state.oracle.name if app.state.oracle else "none (exact mode)"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Accept", "Authorization", "Content-Type"],
        expose_headers=["Content-Disposition"],
        max_age=300,
    )

    @app.exception_handler(DocFillError)
    async def handle_docfill_error(request: Request, exc: DocFillError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.code, "message": exc.message},
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        problems = [
            ".".join(str(part) for part in error["loc"] if part != "body") + ": " + error["msg"]
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={"error": "invalid_request", "message": "Invalid request. " + "; ".join(problems)},
        )

    app.include_router(upload_router.router)
    app.include_router(session_router.router)
    app.include_router(ai_router.router)
    app.include_router(document_router.router)

    @app.get("/api/health")
    async def health():
        return {"status": "ok"}

    return app


configure_logging(config.LOG_LEVEL)
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=config.HOST, port=config.PORT)
