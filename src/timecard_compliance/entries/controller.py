from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import (
    caller_identity,
    entry_payload,
    error_response,
    iso,
    json_body,
    parse_optional_datetime,
    server_error,
)
from ..core.exceptions import DomainError, Unauthorized
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/timecard/check-in", methods=["POST"], endpoint="timecard_check_in")
    def check_in():
        try:
            tenant_id, user_id = caller_identity()
            data = json_body()
            result = container.time_entry_service.check_in(
                tenant_id=tenant_id,
                user_id=user_id,
                notes=data.get("notes"),
                location=data.get("location"),
                is_manual_entry=bool(data.get("is_manual_entry", False)),
            )
            return jsonify({
                "success": True,
                "entry": entry_payload(result.entry),
                "observations": result.validation.observations,
            }), 201
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Check-in failed")

    @app.route("/api/timecard/check-out", methods=["POST"], endpoint="timecard_check_out")
    def check_out():
        try:
            tenant_id, user_id = caller_identity()
            data = json_body()
            result = container.time_entry_service.check_out(
                tenant_id=tenant_id,
                user_id=user_id,
                break_start=parse_optional_datetime(data.get("break_start"), "break_start"),
                break_end=parse_optional_datetime(data.get("break_end"), "break_end"),
                notes=data.get("notes"),
                location=data.get("location"),
            )
            return jsonify({
                "success": True,
                "entry": entry_payload(result.entry),
                "is_consistent": result.validation.is_consistent,
                "observations": result.validation.observations,
            }), 200
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Check-out failed")

    @app.route("/api/timecard/compliance/integrity-check", methods=["GET"], endpoint="timecard_integrity_check")
    def integrity_check():
        try:
            tenant_id, _ = caller_identity()
            report = container.time_entry_service.verify_integrity(tenant_id=tenant_id)
            return jsonify({
                "success": True,
                "is_valid": report.is_valid,
                "checked": report.checked,
                "errors": list(report.errors),
            }), 200
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Integrity check failed")

    @app.route("/api/timecard/compliance/rebuild-chain", methods=["POST"], endpoint="timecard_rebuild_chain")
    def rebuild_chain():
        try:
            tenant_id, actor_id = caller_identity()
            if not container.approval_gate.is_approver(actor_id=actor_id, tenant_id=tenant_id):
                raise Unauthorized(f"User {actor_id} is not an approver")
            result = container.time_entry_service.rebuild_integrity(tenant_id=tenant_id, actor_id=actor_id)
            return jsonify({"success": True, "fixed": result.fixed, "checked": result.checked}), 200
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Integrity chain rebuild failed")

    @app.route("/api/timecard/entries/<entry_id>/audit", methods=["GET"], endpoint="timecard_audit_trail")
    def audit_trail(entry_id: str):
        try:
            tenant_id, _ = caller_identity()
            rows = container.time_entry_service.audit_trail(entry_id=entry_id, tenant_id=tenant_id)
            return jsonify({
                "success": True,
                "audit": [
                    {
                        "id": r.audit_id,
                        "nsr": r.nsr,
                        "action": r.action.value,
                        "performed_by": r.performed_by,
                        "performed_at": iso(r.performed_at),
                        "old_values": r.old_values,
                        "new_values": r.new_values,
                        "reason": r.reason,
                        "is_system_generated": r.is_system_generated,
                        "hash_valid": r.is_intact,
                    }
                    for r in rows
                ],
            }), 200
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Could not load audit trail")
