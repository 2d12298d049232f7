"""FastAPI routes for the scrape endpoint."""

import logging
from typing import Any

from fastapi import APIRouter, Body, Request
from fastapi.responses import JSONResponse

from ..errors import BuildError, ScrapeError
from ..models import SearchSpec

logger = logging.getLogger(__name__)

router = APIRouter()


def get_scraper(request: Request):
    """Get scraper instance from app state."""
    return request.app.state.scraper


def _error_response(status_code: int, error: str, details: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "details": details})


@router.get("/api/health")
async def health():
    return {"status": "ok"}


@router.post("/api/scrape")
async def scrape(request: Request, payload: dict[str, Any] | None = Body(default=None)):
    """Run a catalog search and return the report."""
    try:
        spec = SearchSpec.from_request(payload)
    except BuildError as exc:
        return _error_response(400, exc.category, str(exc))

    async with request.app.state.run_slots:
        try:
            report = await get_scraper(request).scrape(spec)
        except ScrapeError as exc:
            logger.error(f"Scraping error for {spec.search_term!r}: {exc}")
            return _error_response(500, exc.category, str(exc))
        except Exception as exc:
            logger.exception(f"Unexpected scraping error for {spec.search_term!r}")
            return _error_response(500, ScrapeError.category, str(exc) or type(exc).__name__)

    if report.error is not None:
        logger.warning(f"Returning partial results for {spec.search_term!r}: {report.error}")
    return report.to_dict()


@router.api_route("/api/scrape", methods=["GET", "PUT", "PATCH", "DELETE"], include_in_schema=False)
async def scrape_method_not_allowed():
    return JSONResponse(status_code=405, content={"error": "Method Not Allowed"}, headers={"Allow": "POST"})
