# main.py

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from parkmeter import __version__
from parkmeter.config import API_HOST, API_PORT, LOG_LEVEL
from parkmeter.database import init_db
from parkmeter.errors import InvalidInput, PolicyRejection, StorageUnavailable, TariffNotConfigured
from parkmeter.router.dependencies import rejection_http
from parkmeter.router.pass_router import router as pass_router
from parkmeter.router.session_router import router as session_router
from parkmeter.router.settings_router import router as settings_router

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create all tables
    init_db()
    yield


app = FastAPI(title="Parkmeter", version=__version__, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # tighten in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(session_router)
app.include_router(pass_router)
app.include_router(settings_router)


def _error(status_code: int, exc) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": {"code": exc.code, "message": exc.message}})


@app.exception_handler(InvalidInput)
async def invalid_input_handler(request: Request, exc: InvalidInput):
    return _error(422, exc)


@app.exception_handler(PolicyRejection)
async def rejection_handler(request: Request, exc: PolicyRejection):
    http = rejection_http(exc)
    return JSONResponse(status_code=http.status_code, content={"detail": http.detail})


@app.exception_handler(TariffNotConfigured)
async def tariff_handler(request: Request, exc: TariffNotConfigured):
    logger.error("Refusing to price a stay: %s", exc.message)
    return _error(500, exc)


@app.exception_handler(StorageUnavailable)
async def storage_handler(request: Request, exc: StorageUnavailable):
    return _error(503, exc)


def run():
    uvicorn.run("parkmeter.main:app", host=API_HOST, port=API_PORT)


if __name__ == "__main__":
    run()
