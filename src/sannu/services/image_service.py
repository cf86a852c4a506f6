"""
Product image handling with Pillow.

Uploads are validated, normalised to RGB JPEG, resized to fit 800x600 and
stored under products/ with a random name.
"""
import io
import logging
import os
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from PIL import Image, UnidentifiedImageError

from sannu.exceptions import ValidationError
from sannu.metrics import images_removed_total
from sannu.services import storage

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 5 * 1024 * 1024
MIN_DIMENSION = 100
MAX_WIDTH = 800
MAX_HEIGHT = 600
JPEG_QUALITY = 85
PRODUCT_DIRECTORY = "products"

ALLOWED_MIME_TYPES = {
    "image/jpeg": ("jpg", "jpeg"),
    "image/png": ("png",),
    "image/gif": ("gif",),
    "image/webp": ("webp",),
}

RESPONSIVE_SIZES = {
    "thumbnail": 150,
    "small": 300,
    "medium": 600,
}


@dataclass
class UploadedImage:
    """An uploaded file read into memory."""
    filename: str
    content_type: str
    content: bytes

    @property
    def extension(self) -> str:
        return os.path.splitext(self.filename or "")[1].lstrip(".").lower()


def _invalid(message: str) -> ValidationError:
    return ValidationError.single("image", message)


class ImageService:
    """Service for validating, storing and deleting product images."""

    def validate_image(self, upload: UploadedImage) -> None:
        """
        Check size, type, dimensions and content of an upload.

        Raises:
            ValidationError: On the first failing check
        """
        if len(upload.content) > MAX_FILE_SIZE:
            raise _invalid("Image file size cannot exceed 5MB.")

        mime = (upload.content_type or "").lower()
        if mime not in ALLOWED_MIME_TYPES:
            raise _invalid("Image must be a JPEG, PNG, GIF, or WebP file.")

        try:
            with Image.open(io.BytesIO(upload.content)) as img:
                width, height = img.size
        except (UnidentifiedImageError, OSError):
            raise _invalid("Uploaded file is not a valid image.")

        if width < MIN_DIMENSION or height < MIN_DIMENSION:
            raise _invalid("Image must be at least 100x100 pixels.")

        if b"<?php" in upload.content:
            logger.warning(f"Rejected image upload with embedded script: {upload.filename}")
            raise _invalid("Image file contains potentially malicious content.")

        if upload.extension not in ALLOWED_MIME_TYPES[mime]:
            raise _invalid("File extension does not match the file type.")

    def upload_product_image(self, upload: UploadedImage) -> str:
        """
        Validate, normalise and store a product image.

        Returns:
            Storage-relative path of the stored JPEG
        """
        self.validate_image(upload)

        with Image.open(io.BytesIO(upload.content)) as img:
            img = img.convert("RGB")
            img.thumbnail((MAX_WIDTH, MAX_HEIGHT), Image.LANCZOS)
            buffer = io.BytesIO()
            img.save(buffer, format="JPEG", quality=JPEG_QUALITY)

        path = f"{PRODUCT_DIRECTORY}/{uuid.uuid4()}.jpg"
        storage.put_bytes(path, buffer.getvalue())
        logger.info(f"Uploaded product image {path}")
        return path

    def delete_image(self, path: Optional[str]) -> bool:
        if not path:
            return False
        try:
            return storage.delete(path)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to delete image {path}: {e}")
            return False

    def get_image_url(self, path: Optional[str]) -> Optional[str]:
        if not path:
            return None
        if path.startswith(("http://", "https://")):
            return path
        return storage.url(path)

    def image_exists(self, path: Optional[str]) -> bool:
        return bool(path) and storage.exists(path)

    def get_image_dimensions(self, path: str) -> Optional[Dict[str, int]]:
        if not self.image_exists(path):
            return None
        try:
            with Image.open(storage.local_path(path)) as img:
                width, height = img.size
        except (UnidentifiedImageError, OSError):
            logger.warning(f"Could not read dimensions of {path}")
            return None
        return {"width": width, "height": height}

    def cleanup_unused_images(
        self,
        directory: str,
        is_used: Callable[[str], bool],
        dry_run: bool = False,
    ) -> List[str]:
        """
        Remove files in `directory` that `is_used` reports as unreferenced.

        Returns:
            Paths that were (or, on a dry run, would be) removed
        """
        unused = [path for path in storage.list_files(directory) if not is_used(path)]
        if dry_run:
            return unused

        removed = []
        for path in unused:
            if self.delete_image(path):
                removed.append(path)
        images_removed_total.inc(len(removed))
        logger.info(f"Removed {len(removed)} unused images from {directory}")
        return removed

    def generate_responsive_sizes(self, path: str) -> Dict[str, str]:
        """
        Create square thumbnail/small/medium variants next to the original.

        Returns:
            Mapping of size name to storage-relative path
        """
        if not self.image_exists(path):
            raise ValueError("Original image does not exist.")

        directory, filename = os.path.split(path)
        name = os.path.splitext(filename)[0]
        variants = {}
        with Image.open(storage.local_path(path)) as original:
            original = original.convert("RGB")
            for size_name, size in RESPONSIVE_SIZES.items():
                img = original.copy()
                img.thumbnail((size, size), Image.LANCZOS)
                buffer = io.BytesIO()
                img.save(buffer, format="JPEG", quality=JPEG_QUALITY)
                variant = f"{directory}/{name}_{size_name}.jpg" if directory else f"{name}_{size_name}.jpg"
                storage.put_bytes(variant, buffer.getvalue())
                variants[size_name] = variant
        return variants
