from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import caller_identity, entry_payload, error_response, iso, json_body, server_error
from ..core.exceptions import DomainError, ValidationError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/timecard/entries/<entry_id>/approve", methods=["POST"], endpoint="timecard_approve")
    def approve(entry_id: str):
        try:
            tenant_id, actor_id = caller_identity()
            entry = container.approval_gate.approve(
                entry_id=entry_id,
                tenant_id=tenant_id,
                actor_id=actor_id,
                comments=json_body().get("comments"),
            )
            return jsonify({"success": True, "entry": entry_payload(entry)}), 200
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Approval failed")

    @app.route("/api/timecard/entries/<entry_id>/reject", methods=["POST"], endpoint="timecard_reject")
    def reject(entry_id: str):
        try:
            tenant_id, actor_id = caller_identity()
            data = json_body()
            entry = container.approval_gate.reject(
                entry_id=entry_id,
                tenant_id=tenant_id,
                actor_id=actor_id,
                reason=data.get("reason") or "",
                comments=data.get("comments"),
            )
            return jsonify({"success": True, "entry": entry_payload(entry)}), 200
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Rejection failed")

    @app.route("/api/timecard/entries/bulk-approve", methods=["POST"], endpoint="timecard_bulk_approve")
    def bulk_approve():
        try:
            tenant_id, actor_id = caller_identity()
            data = json_body()
            entry_ids = data.get("entry_ids")
            if not isinstance(entry_ids, list) or not entry_ids:
                raise ValidationError("entry_ids must be a non-empty list")

            result = container.approval_gate.bulk_approve(
                entry_ids=[str(i) for i in entry_ids],
                tenant_id=tenant_id,
                actor_id=actor_id,
                comments=data.get("comments"),
            )
            return jsonify({
                "success": result.error_count == 0,
                "success_count": result.success_count,
                "error_count": result.error_count,
                "results": [
                    {"entry_id": o.entry_id, "ok": o.ok, "code": o.error_code, "message": o.error}
                    for o in result.outcomes
                ],
            }), 200
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Bulk approval failed")

    @app.route("/api/timecard/entries/<entry_id>/history", methods=["GET"], endpoint="timecard_approval_history")
    def history(entry_id: str):
        try:
            tenant_id, _ = caller_identity()
            records = container.approval_gate.history(entry_id=entry_id, tenant_id=tenant_id)
            return jsonify({
                "success": True,
                "history": [
                    {
                        "id": r.history_id,
                        "status": r.approval_status.value,
                        "approved_by": r.approved_by,
                        "approval_date": iso(r.approval_date),
                        "method": r.approval_method.value,
                        "rejection_reason": r.rejection_reason,
                        "comments": r.comments,
                    }
                    for r in records
                ],
            }), 200
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Could not load approval history")
