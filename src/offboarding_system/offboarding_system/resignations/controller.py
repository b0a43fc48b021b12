from __future__ import annotations

import logging
from functools import wraps

from flask import Flask, g, jsonify, request, session

from ..common.datetime_utils import format_date, format_datetime, parse_iso_date, parse_optional_date
from ..common.validators import optional_int
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import (
    AuthorizationError,
    BatchIneligibleError,
    DomainError,
    NotFoundError,
    TransientStorageError,
    ValidationError,
)
from . import workflow
from .model import Actor, Page, Resignation, ResignationView

logger = logging.getLogger(__name__)

# Level an approver acts on when the request does not name one.
_ROLE_LEVELS = {role: level for level, role in workflow.LEVEL_ROLES.items()}


def resignation_to_dict(r: Resignation) -> dict:
    return {
        "resignation_id": r.resignation_id,
        "employee_id": r.employee_id,
        "initiated_by": r.initiated_by,
        "organization_id": r.organization_id,
        "resignation_date": format_date(r.resignation_date),
        "proposed_last_working_date": format_date(r.proposed_last_working_date),
        "actual_last_working_date": format_date(r.actual_last_working_date),
        "reason": r.reason,
        "feedback": r.feedback,
        "status": r.status.value,
        "current_level": r.current_level.value,
        "approval_flow": {
            level.value: {
                "status": stage.status.value,
                "actor_id": stage.actor_id,
                "acted_at": format_datetime(stage.acted_at),
                "comment": stage.comment,
            }
            for level, stage in workflow.stages(r.approval_flow)
        },
        "rejected_by": r.rejected_by,
        "rejection_reason": r.rejection_reason,
        "approved_by": r.approved_by,
        "approval_date": format_datetime(r.approval_date),
        "completed_at": format_datetime(r.completed_at),
        "created_at": format_datetime(r.created_at),
    }


def view_to_dict(v: ResignationView) -> dict:
    data = resignation_to_dict(v.resignation)
    data["employee_name"] = v.employee_name
    data["department_name"] = v.department_name
    for stage in data["approval_flow"].values():
        stage["actor_name"] = v.actor_names.get(stage["actor_id"]) if stage["actor_id"] else None
    return data


def page_to_dict(p: Page) -> dict:
    return {
        "success": True,
        "data": [view_to_dict(v) for v in p.items],
        "pagination": {
            "total": p.total,
            "page": p.page,
            "limit": p.limit,
            "totalPages": p.total_pages,
        },
    }


def register(app: Flask, container: Container) -> None:
    service = container.resignation_service
    queries = container.resignation_queries

    def _error(status: int, message: str, **extra):
        return jsonify({"success": False, "message": message, **extra}), status

    def json_errors(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            try:
                return view(*args, **kwargs)
            except ValidationError as e:
                return _error(400, str(e))
            except AuthorizationError as e:
                return _error(403, str(e))
            except NotFoundError as e:
                return _error(404, str(e))
            except BatchIneligibleError as e:
                return _error(409, str(e), ineligible_count=e.ineligible_count)
            except DomainError as e:
                return _error(409, str(e))
            except TransientStorageError:
                return _error(503, "The request conflicted with another one, please retry")
            except Exception:
                logger.exception("Unhandled error on %s %s", request.method, request.path)
                return _error(500, "Internal server error")

        return wrapper

    def identity_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session or "role" not in session or "organization_id" not in session:
                return _error(401, "Authentication required")
            try:
                g.actor = Actor(
                    actor_id=int(session["user_id"]),
                    role=Role(session["role"]),
                    organization_id=int(session["organization_id"]),
                )
            except (TypeError, ValueError):
                return _error(401, "Invalid session identity")
            return view(*args, **kwargs)

        return wrapper

    def _body() -> dict:
        return request.get_json(silent=True) or {}

    def _paging() -> dict:
        return {
            "page": request.args.get("page", 1),
            "limit": request.args.get("limit", 10),
        }

    def _level(body: dict):
        level = body.get("level")
        if level:
            return level
        if g.actor.role not in _ROLE_LEVELS:
            raise AuthorizationError("You do not approve resignations")
        return _ROLE_LEVELS[g.actor.role]

    @app.route("/resignations/apply", methods=["POST"], endpoint="apply_resignation")
    @identity_required
    @json_errors
    def apply_resignation():
        body = _body()
        if not body.get("resignation_date"):
            raise ValidationError("Resignation date is required")
        res = service.apply(
            actor=g.actor,
            resignation_date=parse_iso_date(body.get("resignation_date")),
            reason=body.get("reason") or "",
            feedback=body.get("feedback"),
        )
        return jsonify({"success": True, "message": "Resignation submitted", "data": resignation_to_dict(res)}), 201

    @app.route("/resignations/<int:resignation_id>/approve", methods=["PUT"], endpoint="approve_resignation")
    @identity_required
    @json_errors
    def approve_resignation(resignation_id: int):
        body = _body()
        res = service.approve(
            actor=g.actor,
            resignation_id=resignation_id,
            level=_level(body),
            comment=body.get("comment"),
            actual_last_working_date=parse_optional_date(body.get("actual_last_working_date")),
        )
        return jsonify({"success": True, "message": "Resignation approved", "data": resignation_to_dict(res)})

    @app.route("/resignations/<int:resignation_id>/reject", methods=["PUT"], endpoint="reject_resignation")
    @identity_required
    @json_errors
    def reject_resignation(resignation_id: int):
        body = _body()
        res = service.reject(
            actor=g.actor,
            resignation_id=resignation_id,
            level=_level(body),
            reason=body.get("reason") or "",
        )
        return jsonify({"success": True, "message": "Resignation rejected", "data": resignation_to_dict(res)})

    @app.route("/resignations/<int:resignation_id>/withdraw", methods=["PUT"], endpoint="withdraw_resignation")
    @identity_required
    @json_errors
    def withdraw_resignation(resignation_id: int):
        res = service.withdraw(actor=g.actor, resignation_id=resignation_id)
        return jsonify({"success": True, "message": "Resignation withdrawn", "data": resignation_to_dict(res)})

    @app.route("/resignations/bulk-update", methods=["PUT"], endpoint="bulk_update_resignations")
    @identity_required
    @json_errors
    def bulk_update_resignations():
        body = _body()
        result = service.bulk_update(
            actor=g.actor,
            resignation_ids=body.get("resignation_ids") or [],
            level=_level(body),
            decision=body.get("action") or "",
            comment=body.get("comment"),
            reason=body.get("reason"),
            actual_last_working_date=parse_optional_date(body.get("actual_last_working_date")),
        )
        return jsonify(
            {
                "success": True,
                "message": f"{result.count} resignation(s) updated",
                "count": result.count,
                "data": [resignation_to_dict(r) for r in result.resignations],
            }
        )

    @app.route("/resignations/pending", methods=["GET"], endpoint="pending_resignations")
    @identity_required
    @json_errors
    def pending_resignations():
        return jsonify(page_to_dict(queries.pending_for(g.actor, **_paging())))

    @app.route("/resignations/manager", methods=["GET"], endpoint="manager_resignations")
    @identity_required
    @json_errors
    def manager_resignations():
        status = request.args.get("status", "pending")
        return jsonify(page_to_dict(queries.for_manager(g.actor, status=status, **_paging())))

    @app.route("/resignations/hr", methods=["GET"], endpoint="hr_resignations")
    @identity_required
    @json_errors
    def hr_resignations():
        page = queries.for_hr(
            g.actor,
            status=request.args.get("status", "pending"),
            search=request.args.get("search"),
            **_paging(),
        )
        return jsonify(page_to_dict(page))

    @app.route("/resignations/admin", methods=["GET"], endpoint="admin_resignations")
    @identity_required
    @json_errors
    def admin_resignations():
        page = queries.for_admin(
            g.actor,
            status=request.args.get("status", "pending"),
            department_id=optional_int(request.args.get("department_id"), "department_id"),
            **_paging(),
        )
        return jsonify(page_to_dict(page))

    @app.route("/resignations/employee/<int:employee_id>", methods=["GET"], endpoint="employee_resignations")
    @identity_required
    @json_errors
    def employee_resignations(employee_id: int):
        page = queries.for_employee(g.actor, employee_id, status=request.args.get("status"), **_paging())
        return jsonify(page_to_dict(page))

    @app.route("/resignations", methods=["GET"], endpoint="list_resignations")
    @identity_required
    @json_errors
    def list_resignations():
        page = queries.list_resignations(g.actor, status=request.args.get("status"), **_paging())
        return jsonify(page_to_dict(page))

    @app.route("/resignations/<int:resignation_id>", methods=["GET"], endpoint="get_resignation")
    @identity_required
    @json_errors
    def get_resignation(resignation_id: int):
        return jsonify({"success": True, "data": view_to_dict(queries.get(g.actor, resignation_id))})
