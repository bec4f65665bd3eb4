import logging
import os
import secrets
import shutil
import time
from typing import List

from fastapi import UploadFile

logger = logging.getLogger(__name__)

MAX_FILES = 8


def stored_name(original: str) -> str:
    """Unique on-disk name: millisecond timestamp, random suffix, original extension."""
    ext = os.path.splitext(original or "")[1]
    return f"{int(time.time() * 1000)}-{secrets.token_hex(3)}{ext}"


def save_uploads(files: List[UploadFile], upload_dir: str) -> List[str]:
    os.makedirs(upload_dir, exist_ok=True)
    names = []
    for upload in files:
        name = stored_name(upload.filename)
        with open(os.path.join(upload_dir, name), "wb") as out:
            shutil.copyfileobj(upload.file, out)
        names.append(name)
    logger.info("stored %d upload(s) in %s", len(names), upload_dir)
    return names
