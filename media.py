"""
Hosted image storage on Cloudinary, through the cloudinary SDK uploader.
"""

import logging
import re
from typing import Optional

import cloudinary
import cloudinary.uploader

import config
from errors import InternalError

logger = logging.getLogger(__name__)

# Max 800x800, automatic quality and format (webp etc.)
TRANSFORMATION = [
    {"width": 800, "height": 800, "crop": "limit"},
    {"quality": "auto"},
    {"fetch_format": "auto"},
]


def _configure():
    if not (config.CLOUDINARY_CLOUD_NAME and config.CLOUDINARY_API_KEY and config.CLOUDINARY_API_SECRET):
        raise InternalError("Media storage not configured")
    cloudinary.config(
        cloud_name=config.CLOUDINARY_CLOUD_NAME,
        api_key=config.CLOUDINARY_API_KEY,
        api_secret=config.CLOUDINARY_API_SECRET,
        secure=True,
    )


def upload_image(image: str) -> str:
    """Upload a base64 data URI and return its https URL."""
    _configure()
    try:
        result = cloudinary.uploader.upload(image, folder=config.CLOUDINARY_FOLDER, transformation=TRANSFORMATION)
        return result["secure_url"]
    except Exception as e:
        logger.error("Image upload failed: %s", e)
        raise InternalError("Failed to upload image") from e


def delete_image(public_id: str) -> bool:
    """Best-effort delete; failures are logged, never raised."""
    try:
        _configure()
        result = cloudinary.uploader.destroy(public_id)
    except Exception as e:
        logger.error("Image delete failed for %s: %s", public_id, e)
        return False
    return result.get("result") == "ok"


def public_id_from_url(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    folder = config.CLOUDINARY_FOLDER.strip("/")
    match = re.search(rf"/{re.escape(folder)}/([^./]+)", url)
    return f"{folder}/{match.group(1)}" if match else None
