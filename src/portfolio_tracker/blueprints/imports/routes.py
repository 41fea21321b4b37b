"""Upload endpoints for the three importers."""

from __future__ import annotations

from typing import Optional

from flask import jsonify, request
from werkzeug.datastructures import FileStorage

from .. import app_context, error_response
from ...services.importers import ImportResult
from . import bp


def _uploaded_file() -> Optional[FileStorage]:
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        return None
    return upload


def _watchlist_id() -> Optional[int]:
    raw = request.form.get("watchlist_id") or request.args.get("watchlist_id")
    try:
        return int(raw) if raw is not None else None
    except ValueError:
        return None


def _decode(upload: FileStorage) -> Optional[str]:
    try:
        return upload.read().decode("utf-8-sig")
    except UnicodeDecodeError:
        return None


def _result_response(result: ImportResult):
    if result.success:
        return jsonify(result.to_dict())
    return jsonify({"error": result.to_dict()}), 400


@bp.post("/schwab")
def import_schwab():
    upload = _uploaded_file()
    if upload is None:
        return error_response("NO_FILE", "No file uploaded")
    text = _decode(upload)
    if text is None:
        return error_response("INVALID_FILE", "File is not valid UTF-8 text")
    return _result_response(app_context().importer.import_schwab_csv(text))


@bp.post("/seeking-alpha")
def import_seeking_alpha():
    upload = _uploaded_file()
    if upload is None:
        return error_response("NO_FILE", "No file uploaded")
    watchlist_id = _watchlist_id()
    if watchlist_id is None:
        return error_response("INVALID_WATCHLIST", "A numeric watchlist_id is required")
    return _result_response(
        app_context().importer.import_seeking_alpha_excel(upload.read(), watchlist_id)
    )


@bp.post("/motley-fool")
def import_motley_fool():
    upload = _uploaded_file()
    if upload is None:
        return error_response("NO_FILE", "No file uploaded")
    watchlist_id = _watchlist_id()
    if watchlist_id is None:
        return error_response("INVALID_WATCHLIST", "A numeric watchlist_id is required")
    text = _decode(upload)
    if text is None:
        return error_response("INVALID_FILE", "File is not valid UTF-8 text")
    return _result_response(app_context().importer.import_motley_fool_csv(text, watchlist_id))
