from __future__ import annotations

from datetime import timedelta

from flask import Flask, jsonify, request

from ..common.datetime_utils import now_local, parse_iso_date
from ..common.http import caller_identity, error_response, server_error
from ..core.constants import DEFAULT_REPORT_DAYS
from ..core.enums import ReportKind
from ..core.exceptions import DomainError, ValidationError
from ..container import Container


def _period():
    """(user_id, start, end) from the query string; defaults to the caller and the last month."""
    _, caller = caller_identity()
    user_id = (request.args.get("user_id") or caller).strip()
    try:
        end = parse_iso_date(request.args["end"]) if request.args.get("end") else now_local().date()
        start = (
            parse_iso_date(request.args["start"])
            if request.args.get("start")
            else end - timedelta(days=DEFAULT_REPORT_DAYS - 1)
        )
    except ValueError:
        raise ValidationError("start/end must be YYYY-MM-DD") from None
    if end < start:
        raise ValidationError("end must be >= start")
    return user_id, start, end


def register(app: Flask, container: Container) -> None:
    @app.route("/api/timecard/reports/<kind>", methods=["GET"], endpoint="timecard_report")
    def report(kind: str):
        try:
            tenant_id, _ = caller_identity()
            try:
                report_kind = ReportKind(kind)
            except ValueError:
                raise ValidationError(f"Unknown report kind: {kind}") from None

            user_id, start, end = _period()
            result = container.report_aggregator.build_report(
                user_id=user_id,
                tenant_id=tenant_id,
                start=start,
                end=end,
                kind=report_kind,
                timeout_seconds=container.report_timeout_seconds,
            )
            return jsonify({"success": True, "report": result.to_dict()}), 200
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Report generation failed")

    @app.route("/api/timecard/hour-bank", methods=["GET"], endpoint="timecard_hour_bank")
    def hour_bank():
        try:
            tenant_id, _ = caller_identity()
            user_id, start, end = _period()
            summary = container.hour_bank_service.compute_balance(
                user_id=user_id, tenant_id=tenant_id, start=start, end=end
            )
            return jsonify({
                "success": True,
                "user_id": user_id,
                "start": start.isoformat(),
                "end": end.isoformat(),
                "total_hours": float(summary.total_hours),
                "expected_hours": float(summary.expected_hours),
                "hour_bank_delta": float(summary.hour_bank_delta),
                "overtime_hours": float(summary.overtime_hours),
                "working_days": summary.working_days,
            }), 200
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Hour bank computation failed")
