"""
FastAPI application entry point for the storefront API.

Wires logging, CORS, error rendering, the database lifecycle and the
entity routers.
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import config
import database
import categories
import products
import site_settings
import users
from errors import StorefrontError

EXIT_GRACE_SECONDS = 0.1

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _exit_process():
    logging.shutdown()
    os._exit(1)


def handle_unhandled_exception(loop, context):
    """Log an error nobody awaited and stop the process once logs are flushed."""
    exc = context.get("exception")
    logger.critical("Unhandled async error: %s", context.get("message"), exc_info=exc)
    loop.call_later(EXIT_GRACE_SECONDS, _exit_process)


@asynccontextmanager
async def lifespan(app: FastAPI):
    asyncio.get_running_loop().set_exception_handler(handle_unhandled_exception)
    await run_in_threadpool(database.connect)
    logger.info("Server running in %s mode", config.APP_ENV)

    yield

    logger.info("Shutting down application...")
    database.close()


app = FastAPI(title="CeyCan Agro API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError):
    if exc.status_code >= 500:
        logger.error("Request failed: %s", exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg")
    else:
        message = "Invalid request data"
    return JSONResponse(status_code=400, content={"detail": message})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception on %s %s: %s", request.method, request.url.path, exc, exc_info=True)
    content = {"detail": "Internal Server Error"}
    if config.is_development():
        content["error"] = str(exc)
    return JSONResponse(status_code=500, content=content)


# Routes
@app.get("/")
def read_root():
    return {"message": "API is running..."}


app.include_router(categories.router, prefix="/api/categories", tags=["categories"])
app.include_router(products.router, prefix="/api/products", tags=["products"])
app.include_router(users.router, prefix="/api/users", tags=["users"])
app.include_router(site_settings.router, prefix="/api/settings", tags=["settings"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
