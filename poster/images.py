"""
Listing photo validation and resizing.
"""
import asyncio
import logging
import os
import time
from typing import Dict, List, Optional

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 10 * 1024 * 1024
MIN_DIMENSION = 200
SUPPORTED_FORMATS = ("jpeg", "jpg", "png", "webp")


class ImagePipeline:
    """Resolves photo references and writes upload-ready JPEGs."""

    def __init__(self, upload_dir: str = "./uploads", max_width: int = 1200, max_height: int = 1200, quality: int = 85):
        self.upload_dir = upload_dir
        self.processed_dir = os.path.join(upload_dir, "processed")
        self.max_width = max_width
        self.max_height = max_height
        self.quality = quality

    def resolve_path(self, ref: str) -> str:
        """Bare file names live in the upload directory."""
        if os.path.isabs(ref) or "/" in ref or "\\" in ref:
            return ref
        return os.path.join(self.upload_dir, ref)

    def process_image(self, ref: str) -> Optional[str]:
        full_path = self.resolve_path(ref)
        if not os.path.exists(full_path):
            logger.error(f"Image file not found: {full_path}")
            return None

        check = self.validate_image(full_path)
        if not check["valid"]:
            logger.warning(f"Skipping image {ref}: {check['error']}")
            return None

        os.makedirs(self.processed_dir, exist_ok=True)
        stem = os.path.splitext(os.path.basename(full_path))[0]
        out_path = os.path.join(self.processed_dir, f"{stem}_processed.jpg")

        try:
            with Image.open(full_path) as img:
                img = img.convert("RGB")
                # thumbnail() keeps aspect ratio and never enlarges
                img.thumbnail((self.max_width, self.max_height), Image.Resampling.LANCZOS)
                img.save(out_path, "JPEG", quality=self.quality, progressive=True)
        except (OSError, UnidentifiedImageError) as e:
            logger.error(f"Failed to process image {ref}: {e}")
            return None

        logger.info(f"Processed image: {os.path.basename(full_path)} -> {out_path} ({os.path.getsize(out_path)} bytes)")
        return out_path

    def process_images_sync(self, refs: List[str]) -> List[str]:
        processed = []
        for ref in refs:
            out = self.process_image(ref)
            if out:
                processed.append(out)
        logger.info(f"Processed {len(processed)} out of {len(refs)} images")
        return processed

    async def process_images(self, refs: List[str]) -> List[str]:
        if not refs:
            return []
        return await asyncio.to_thread(self.process_images_sync, list(refs))

    def validate_image(self, path: str) -> Dict:
        try:
            size = os.path.getsize(path)
            if size > MAX_FILE_SIZE:
                raise ValueError(f"Image too large: {size} bytes (max: {MAX_FILE_SIZE})")
            with Image.open(path) as img:
                width, height = img.size
                fmt = (img.format or "").lower()
            if width < MIN_DIMENSION or height < MIN_DIMENSION:
                raise ValueError(f"Image too small: {width}x{height} (min: {MIN_DIMENSION}x{MIN_DIMENSION})")
            if fmt not in SUPPORTED_FORMATS:
                raise ValueError(f"Unsupported format: {fmt}")
        except (OSError, ValueError, UnidentifiedImageError) as e:
            return {"valid": False, "error": str(e)}

        return {"valid": True, "metadata": {"width": width, "height": height, "format": fmt, "size": size}}

    def cleanup_processed(self, older_than_hours: float = 24) -> int:
        if not os.path.isdir(self.processed_dir):
            return 0
        cutoff = time.time() - older_than_hours * 3600
        deleted = 0
        for name in os.listdir(self.processed_dir):
            p = os.path.join(self.processed_dir, name)
            if os.path.isfile(p) and os.path.getmtime(p) < cutoff:
                os.remove(p)
                deleted += 1
        logger.info(f"Cleaned up {deleted} processed images older than {older_than_hours} hours")
        return deleted
