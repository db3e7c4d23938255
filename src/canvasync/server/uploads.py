from __future__ import annotations

import asyncio
import logging
import random
import time
from pathlib import Path
from typing import Optional

from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError

log = logging.getLogger(__name__)

CHUNK = 1024 * 1024


class UploadTooLarge(Exception):
    pass


def _stored_name(original: Optional[str]) -> str:
    suffix = Path(original or "").suffix.lower()
    return f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}{suffix}"


def probe_image_size(path: Path) -> Optional[tuple[int, int]]:
    """(width, height) if Pillow can read the file as an image, else None (e.g. PDFs)."""
    try:
        with Image.open(path) as img:
            return img.size
    except (UnidentifiedImageError, OSError):
        return None


async def store_upload(file: UploadFile, directory: Path, max_bytes: int) -> dict[str, object]:
    """
    Stream `file` into `directory` under a unique name.

    Returns the JSON body for the client: `{success, url, filename}` plus
    `width`/`height` for images. Raises UploadTooLarge (and removes the
    partial file) once more than `max_bytes` have been read.
    """
    directory.mkdir(parents=True, exist_ok=True)
    name = _stored_name(file.filename)
    path = directory / name
    written = 0
    try:
        with path.open("wb") as out:
            while chunk := await file.read(CHUNK):
                written += len(chunk)
                if written > max_bytes:
                    raise UploadTooLarge(f"file exceeds {max_bytes} bytes")
                out.write(chunk)
    except BaseException:
        path.unlink(missing_ok=True)
        raise

    log.info("file uploaded: /uploads/%s (%d bytes)", name, written)
    body: dict[str, object] = {"success": True, "url": f"/uploads/{name}", "filename": name}
    size = await asyncio.to_thread(probe_image_size, path)
    if size is not None:
        body["width"], body["height"] = size
    return body
