"""Read-only reconciliation views."""

from __future__ import annotations

from flask import jsonify, request

from .. import app_context, error_response
from . import bp


@bp.get("/needs-attention")
def needs_attention():
    return jsonify({"items": app_context().summary.needs_attention()})


@bp.get("/allocations")
def allocations():
    summary = app_context().summary
    watchlist_id = request.args.get("watchlist_id", type=int)
    if "watchlist_id" in request.args and watchlist_id is None:
        return error_response("INVALID_WATCHLIST", "watchlist_id must be an integer")
    if watchlist_id is not None:
        lines = summary.allocation_variance(watchlist_id)
    else:
        lines = summary.all_allocations()
    return jsonify(
        {
            "band": summary.allocation_band,
            "targets": summary.target_allocations(),
            "allocations": [line.to_dict() for line in lines],
        }
    )
