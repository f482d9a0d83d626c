from flask import Blueprint, Response, jsonify, request

from kitchen.decorators import require_auth
from kitchen.errors import DomainError, error_response
from kitchen.services import reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/sales-summary")
@require_auth
def sales_summary():
    try:
        summary = reporting_service.sales_summary(
            start=request.args.get("start"),
            end=request.args.get("end"),
        )
        return jsonify(summary), 200
    except DomainError as exc:
        return error_response(exc)


@reports_bp.get("/orders")
@require_auth
def order_report():
    fmt = request.args.get("format", "json").lower()
    if fmt not in ("json", "csv"):
        return jsonify({"error": "format must be json or csv", "code": "INVALID_INPUT", "details": {}}), 400

    try:
        report = reporting_service.order_report(
            start=request.args.get("start"),
            end=request.args.get("end"),
            status=request.args.get("status") or None,
        )
    except DomainError as exc:
        return error_response(exc)

    if fmt == "csv":
        return Response(
            reporting_service.render_order_report_csv(report),
            mimetype="text/csv",
            headers={"Content-Disposition": "attachment; filename=orders-report.csv"},
        )
    return jsonify(report), 200
