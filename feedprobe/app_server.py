import logging
from contextlib import asynccontextmanager
from typing import List, Optional, Union

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from feedprobe.feed_utils import check_feed as check, discover_feeds as discover
from feedprobe.main import config
from feedprobe.main.errors import InvalidDomainError
from feedprobe.main.tools.classifier import close_http_client

logger = logging.getLogger(__name__)


class CheckFeedRequest(BaseModel):
    url: Optional[str] = None


class DiscoverRequest(BaseModel):
    domains: Union[str, List[str], None] = None


@asynccontextmanager
async def lifespan(_: FastAPI):
    yield
    await close_http_client()


app = FastAPI(
    title="feedprobe API",
    description="Find RSS/Atom feeds for a list of domains by probing well-known locations.",
    version="0.1.0",
    docs_url="/docs",        # Swagger UI
    redoc_url="/redoc",      # ReDoc UI
    openapi_url="/openapi.json",
    lifespan=lifespan,
)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("Rejected request to %s: %s", request.url.path, exc.errors())
    return _error(400, "Invalid request body")


@app.get("/", tags=["Root"], summary="API root")
async def read_root():
    return {"message": "Welcome to the feedprobe FastAPI server!"}


@app.get("/health", tags=["Root"], summary="Liveness probe")
async def health():
    return {"ok": True}


@app.post(
    "/check-feed",
    tags=["Feed"],
    summary="Classify a URL",
    description=(
        "Fetch ``url`` once and report whether it is, or advertises, an RSS/Atom "
        "feed. Unreachable URLs and non-2xx answers are a negative result, not an error."
    ),
)
async def check_feed(payload: CheckFeedRequest):
    if not payload.url:
        return _error(400, "url is required")
    try:
        return await check(payload.url)
    except Exception:
        logger.exception("Unexpected failure while checking %s", payload.url)
        return _error(500, "Failed to check feed")


@app.post(
    "/discover",
    tags=["Feed"],
    summary="Discover feeds for domains",
    description=(
        "Probe well-known feed paths, then feed subdomains, for every domain in "
        "``domains`` (a list, or a comma/newline separated string)."
    ),
)
async def discover_feeds(payload: DiscoverRequest):
    if not payload.domains:
        return _error(400, "domains is required")
    try:
        return await discover(payload.domains)
    except InvalidDomainError as exc:
        return _error(400, str(exc))
    except Exception:
        logger.exception("Unexpected failure while probing %s", payload.domains)
        return _error(500, "Failed to discover feeds")


def main():
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    uvicorn.run(app, host=config.HOST, port=config.PORT)

if __name__ == "__main__":
    main()
