import logging
from typing import Optional

import requests
from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask

from opelo.config import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["images"])

CHUNK_SIZE = 8192


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.get("/image-proxy")
def image_proxy(url: Optional[str] = Query(None)):
    """Relay a wiki image so browsers don't hit the wiki's hotlink checks."""
    if not url:
        logger.error("Image proxy called without URL parameter")
        return _error(400, "URL parameter is required")

    settings = get_settings()
    logger.info("Proxying image: %s", url)
    try:
        resp = requests.get(
            url,
            stream=True,
            headers={"User-Agent": "Mozilla/5.0 (compatible; bot)",
                     "Referer": settings.image_proxy_referer},
            timeout=settings.image_proxy_timeout,
        )
    except requests.Timeout:
        return _error(504, "Request timeout")
    except (requests.ConnectionError, requests.exceptions.InvalidURL,
            requests.exceptions.MissingSchema, requests.exceptions.InvalidSchema):
        return _error(400, "Invalid URL or host not found")
    except requests.RequestException as exc:
        logger.error("Error proxying image %s: %s", url, exc)
        return _error(500, "Failed to fetch image")

    if resp.status_code != 200:
        resp.close()
        logger.error("Upstream returned %d for %s", resp.status_code, url)
        if resp.status_code == 404:
            return _error(404, "Image not found")
        return _error(500, "Failed to fetch image")

    return StreamingResponse(
        resp.iter_content(chunk_size=CHUNK_SIZE),
        media_type=resp.headers.get("content-type", "image/jpeg"),
        headers={
            "Cache-Control": "public, max-age=3600",
            "Access-Control-Allow-Origin": "*",
        },
        background=BackgroundTask(resp.close),
    )
