"""Image CDN client — signed upload and destroy over the REST API.

Images go to "<root>/<folder>" with a timestamp public id and an
automatic quality/format transformation. Requests are signed with
SHA-1 over the sorted parameters plus the API secret.
"""

import hashlib
import time

import httpx
from loguru import logger

from ..config import settings
from ..http_client import http

ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/png", "image/webp", "image/gif"}
TRANSFORMATION = "q_auto:good,f_auto"
API_BASE = "https://api.cloudinary.com/v1_1"


class MediaServiceError(Exception):
    """Raised when the CDN is not configured or rejects a request."""


def _configured() -> bool:
    return bool(settings.cdn_cloud_name and settings.cdn_api_key and settings.cdn_api_secret)


def sign_params(params: dict, api_secret: str) -> str:
    payload = "&".join(f"{k}={params[k]}" for k in sorted(params) if params[k] not in (None, ""))
    return hashlib.sha1((payload + api_secret).encode()).hexdigest()


def target_folder(folder: str | None = None, kind: str | None = None) -> str:
    sub = (folder or kind or "").strip().strip("/")
    return f"{settings.cdn_root_folder}/{sub}" if sub else settings.cdn_root_folder


async def _post(endpoint: str, data: dict, files: dict | None = None) -> dict:
    if not _configured():
        raise MediaServiceError("CDN no configurado")
    url = f"{API_BASE}/{settings.cdn_cloud_name}/image/{endpoint}"
    try:
        resp = await http.post(url, data=data, files=files, timeout=30)
    except httpx.HTTPError as e:
        logger.error("CDN {} request failed: {}", endpoint, e)
        raise MediaServiceError("No se pudo contactar con el CDN") from e
    if resp.status_code >= 400:
        logger.error("CDN {} rejected ({}): {}", endpoint, resp.status_code, resp.text[:300])
        raise MediaServiceError(f"El CDN respondió {resp.status_code}")
    return resp.json()


async def upload_image(
    content: bytes,
    filename: str,
    content_type: str,
    folder: str | None = None,
    kind: str | None = None,
) -> dict:
    timestamp = str(int(time.time()))
    params = {
        "folder": target_folder(folder, kind),
        "public_id": timestamp,
        "timestamp": timestamp,
        "transformation": TRANSFORMATION,
    }
    data = {
        **params,
        "api_key": settings.cdn_api_key,
        "signature": sign_params(params, settings.cdn_api_secret),
    }
    result = await _post("upload", data, files={"file": (filename, content, content_type)})
    logger.info("Image uploaded to {}", result.get("public_id"))
    return {
        "url": result.get("secure_url"),
        "public_id": result.get("public_id"),
        "width": result.get("width"),
        "height": result.get("height"),
        "format": result.get("format"),
        "resource_type": result.get("resource_type"),
    }


async def destroy_image(public_id: str) -> dict:
    params = {"public_id": public_id, "timestamp": str(int(time.time()))}
    data = {
        **params,
        "api_key": settings.cdn_api_key,
        "signature": sign_params(params, settings.cdn_api_secret),
    }
    result = await _post("destroy", data)
    logger.info("Image {} destroyed ({})", public_id, result.get("result"))
    return {"public_id": public_id, "result": result.get("result")}
