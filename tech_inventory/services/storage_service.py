"""
Storage service — disposal certificates attached to assets.

Uploads are written to ``UPLOAD_FOLDER/<asset_id>/<uuid>.<ext>``.  The
generated name never reuses the client's filename, so two uploads for
the same asset cannot collide and no client-supplied path reaches the
filesystem.
"""

import logging
import os
import uuid

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import safe_join, secure_filename

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {"pdf", "png", "jpg", "jpeg", "doc", "docx"}


def allowed_file(filename: str | None) -> bool:
    """Return True if ``filename`` has an accepted extension."""
    if not filename or "." not in filename:
        return False
    return filename.rsplit(".", 1)[1].lower() in ALLOWED_EXTENSIONS


def save_disposal_document(asset_id: int, upload: FileStorage) -> str:
    """
    Store an uploaded disposal certificate for an asset.

    Args:
        asset_id: The asset the document belongs to.
        upload:   The uploaded file from ``request.files``.

    Returns:
        The generated filename (unique within the asset's folder).

    Raises:
        ValueError: If the file is missing or has a disallowed extension.
    """
    original = secure_filename(upload.filename or "")
    if not allowed_file(original):
        raise ValueError(
            "Disposal documents must be one of: "
            + ", ".join(sorted(ALLOWED_EXTENSIONS))
            + "."
        )

    extension = original.rsplit(".", 1)[1].lower()
    filename = f"{uuid.uuid4().hex}.{extension}"

    folder = os.path.join(current_app.config["UPLOAD_FOLDER"], str(asset_id))
    os.makedirs(folder, exist_ok=True)
    upload.save(os.path.join(folder, filename))

    logger.info("Stored disposal document %s for asset %d", filename, asset_id)
    return filename


def document_path(asset_id: int, filename: str) -> str | None:
    """
    Resolve a stored document to an absolute path.

    Returns:
        The path, or None if the name escapes the asset folder or the
        file does not exist.
    """
    folder = os.path.join(current_app.config["UPLOAD_FOLDER"], str(asset_id))
    path = safe_join(folder, filename)
    if path is None or not os.path.isfile(path):
        return None
    return path


def remove_document(asset_id: int, filename: str) -> None:
    """Delete a stored document, e.g. after the disposal it belonged to failed."""
    path = document_path(asset_id, filename)
    if path is None:
        return
    try:
        os.remove(path)
    except OSError:
        logger.exception("Could not remove document %s for asset %d", filename, asset_id)
        return
    logger.info("Removed disposal document %s for asset %d", filename, asset_id)
