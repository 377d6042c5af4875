from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import PdvError
from ..services import reporting_service
from .common import error_response


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/summary")
@require_auth
@require_permission("VIEW_REPORTS")
def summary_report():
    try:
        flt = reporting_service.parse_summary_filter(request.args)
        report = reporting_service.summarize(flt)
        return jsonify(report), 200
    except PdvError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to build sales summary")
        return jsonify({"error": "Internal server error"}), 500
