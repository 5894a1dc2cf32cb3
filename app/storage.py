"""Pet picture uploads to the object store (Cloudinary)."""

import logging

import cloudinary
import cloudinary.uploader

from .core import Settings, get_settings

logger = logging.getLogger(__name__)

IMAGE_DATA_URI_PREFIX = "data:image/"


class DisabledUploader:
    """Used when no object store is configured. Nothing is uploaded."""

    def upload(self, image_data: str) -> str | None:
        logger.debug("object store disabled, dropping picture")
        return None


class CloudinaryUploader:
    """Uploads data URIs to a Cloudinary folder."""

    def __init__(self, cloudinary_url: str, folder: str):
        cloudinary.config(cloudinary_url=cloudinary_url)
        self.folder = folder

    def upload(self, image_data: str) -> str | None:
        result = cloudinary.uploader.upload(
            image_data, folder=self.folder, resource_type="image"
        )
        return result.get("secure_url")


def build_uploader(settings: Settings):
    if settings.CLOUDINARY_URL:
        return CloudinaryUploader(settings.CLOUDINARY_URL, settings.CLOUDINARY_FOLDER)
    return DisabledUploader()


def get_image_uploader():
    """Dependency returning the uploader selected by the settings."""
    return build_uploader(get_settings())


def upload_pet_image(uploader, image_data: str | None) -> str | None:
    """
    Upload a pet picture and return its public URL.

    Only ``data:image/`` URIs are accepted; anything else is ignored.
    Upload failures are logged and give ``None`` so they never block
    the pet mutation that carries the picture.

    Args:
        uploader: Configured or disabled uploader.
        image_data (str | None): Picture as a data URI.

    Returns:
        str | None: Public URL, or ``None`` when nothing was stored.
    """
    if not image_data:
        return None
    if not image_data.startswith(IMAGE_DATA_URI_PREFIX):
        logger.info("ignoring picture that is not an image data URI")
        return None
    try:
        return uploader.upload(image_data)
    except Exception:
        logger.exception("picture upload failed")
        return None
