import asyncio
import logging
from dataclasses import dataclass
from urllib.parse import urlparse

import aiohttp

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".svg")
IMAGE_HOSTS = (
    "github.com",
    "githubusercontent.com",
    "imgur.com",
    "i.imgur.com",
    "storage.googleapis.com",
    "firebasestorage.googleapis.com",
    "cloudinary.com",
    "imgbb.com",
    "postimg.cc",
)


@dataclass(frozen=True)
class ImageCheck:
    valid: bool
    message: str
    content_type: str | None = None


def is_valid_image_url(url: str | None) -> bool:
    if not url:
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        return False

    path = parsed.path.lower()
    has_image_extension = path.endswith(IMAGE_EXTENSIONS)
    is_image_host = any(host in parsed.hostname for host in IMAGE_HOSTS)
    return has_image_extension or is_image_host


async def check_image_url(url: str, *, timeout_seconds: float = 15.0) -> ImageCheck:
    if not is_valid_image_url(url):
        return ImageCheck(
            valid=False,
            message=(
                "Invalid image URL. Please use a direct image URL from GitHub, Imgur, "
                "or other image hosting services."
            ),
        )

    timeout = aiohttp.ClientTimeout(total=timeout_seconds)
    try:
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.head(url, allow_redirects=True) as resp:
                status = resp.status
                content_type = resp.headers.get("Content-Type")
    except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
        logger.info("Image URL check failed for %s: %s", url, exc)
        return ImageCheck(valid=False, message=f"Unable to verify image accessibility: {exc}")

    if not 200 <= status < 300:
        return ImageCheck(valid=False, message=f"Image URL is not accessible (HTTP {status})")
    if not content_type or not content_type.startswith("image/"):
        return ImageCheck(valid=False, message=f"URL does not point to an image (content-type: {content_type})")
    return ImageCheck(valid=True, message="Image URL is valid and accessible", content_type=content_type)
