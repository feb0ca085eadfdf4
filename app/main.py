import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from app.routes import (
    chat as chat_routes,
    connections as connections_routes,
    documents as documents_routes,
    files as files_routes,
    oauth,
)
from config.settings import settings
from infra.db.engine import init_db_schema

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db_schema()
    logger.info("Database schema verified")
    yield


app = FastAPI(title="Drive Docs Assistant API", lifespan=lifespan)
# Session cookie is written by the upstream auth layer; we only read user_id from it
app.add_middleware(SessionMiddleware, secret_key=settings.SESSION_SECRET)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request format", "details": jsonable_errors(exc)},
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [{"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")} for e in exc.errors()]


@app.get("/api/v1/health")
def health():
    return {"status": "ok"}


app.include_router(oauth.router, prefix="/auth", tags=["oauth"])
app.include_router(documents_routes.router, prefix="/api", tags=["documents"])
app.include_router(chat_routes.router, prefix="/api", tags=["chat"])
app.include_router(connections_routes.router, prefix="/api", tags=["connections"])
app.include_router(files_routes.router, prefix="/api", tags=["files"])
