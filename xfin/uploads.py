# xfin/uploads.py
import logging
import os
import uuid
from contextlib import contextmanager

from flask import Blueprint, current_app, request, send_from_directory
from werkzeug.utils import secure_filename

from .errors import ValidationError

logger = logging.getLogger("xfin-backend")

uploads_bp = Blueprint("uploads", __name__)

URL_PREFIX = "/uploads/"


def upload_folder():
    folder = os.path.abspath(current_app.config["UPLOAD_FOLDER"])
    os.makedirs(folder, exist_ok=True)
    return folder


def save_photo(file):
    """Store an uploaded image under a unique name and return its public URL."""
    if file is None or not file.filename:
        return None
    filename = secure_filename(file.filename)
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if ext not in current_app.config["ALLOWED_IMAGE_EXTENSIONS"]:
        raise ValidationError("Apenas imagens são permitidas (jpg, jpeg, png, gif, webp)")

    stored_name = f"photo-{uuid.uuid4().hex}.{ext}"
    file.save(os.path.join(upload_folder(), stored_name))
    logger.info(f"Stored upload {stored_name}")
    return URL_PREFIX + stored_name


def delete_photo(photo_url):
    if not photo_url:
        return
    path = os.path.join(upload_folder(), os.path.basename(photo_url))
    if os.path.exists(path):
        try:
            os.remove(path)
        except OSError:
            logger.exception(f"Could not remove upload {path}")


@contextmanager
def stored_photo(field="photo"):
    """Save the request's photo, removing it again if the surrounding write fails."""
    photo_url = save_photo(request.files.get(field))
    try:
        yield photo_url
    except Exception:
        delete_photo(photo_url)
        raise


@uploads_bp.route("/uploads/<path:filename>")
def serve_upload(filename):
    return send_from_directory(upload_folder(), filename)
