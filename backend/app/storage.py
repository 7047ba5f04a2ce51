"""
Local storage for uploaded profile pictures.
"""

import os
import uuid
from pathlib import Path

from fastapi import UploadFile

from app.exceptions import BusinessRuleError
from app.logging_config import get_logger, log_with_context

logger = get_logger("http")

UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR", "./uploads"))
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))

IMAGE_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def save_profile_picture(file: UploadFile, owner: str, base_dir: Path = None) -> Path:
    """
    Store an uploaded image under ``base_dir/profile-pictures/<owner>/``.

    Only image content types are accepted and the size is capped by
    MAX_UPLOAD_BYTES. Returns the path of the written file.
    """
    extension = IMAGE_EXTENSIONS.get(file.content_type or "")
    if extension is None:
        raise BusinessRuleError("Profile picture must be a JPEG, PNG, GIF or WebP image",
                                {"content_type": file.content_type})

    content = file.file.read(MAX_UPLOAD_BYTES + 1)
    if not content:
        raise BusinessRuleError("Profile picture is empty")
    if len(content) > MAX_UPLOAD_BYTES:
        raise BusinessRuleError("Profile picture is too large", {"max_size": MAX_UPLOAD_BYTES})

    target_dir = (base_dir or UPLOAD_DIR) / "profile-pictures" / owner
    ensure_dir(target_dir)
    target = target_dir / f"{uuid.uuid4().hex}{extension}"
    with target.open("wb") as f:
        f.write(content)

    log_with_context(logger, "INFO", "Stored profile picture {}".format(target.name),
                     context={"owner": owner},
                     extra_data={"size": len(content), "content_type": file.content_type})
    return target


def remove_profile_picture(path: str, base_dir: Path = None) -> bool:
    """Delete a stored picture; paths outside the upload directory are left alone."""
    if not path:
        return False
    root = (base_dir or UPLOAD_DIR).resolve()
    target = Path(path).resolve()
    if root not in target.parents or not target.is_file():
        return False
    target.unlink()
    log_with_context(logger, "INFO", "Removed profile picture {}".format(target.name),
                     context={"owner": target.parent.name})
    return True
