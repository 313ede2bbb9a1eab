# utils/helpers.py
# -*- coding: utf-8 -*-
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict

from flask import has_request_context, request

from models import db, OperationLog
from workflow.types import ROLES, Actor

# --------------------------------------------------
# 📝 Operation log
# --------------------------------------------------
METHOD_LABELS = {
    "GET": "View",
    "POST": "Create",
    "PUT": "Update",
    "DELETE": "Delete",
    "PATCH": "Change",
}

# endpoint -> readable action (extend as blueprints are added)
ENDPOINT_LABELS = {
    # demodays
    "admin_demoday.create_demoday": "Create demoday",
    "admin_demoday.replace_phases": "Replace demoday phases",
    "admin_demoday.activate_demoday": "Activate demoday",
    "admin_demoday.cancel_demoday": "Cancel demoday",
    "admin_demoday.check_finished": "Finish expired demodays",
    "admin_demoday.add_category": "Add category",
    "admin_demoday.add_criteria": "Add evaluation criteria",

    # screening / selection
    "admin_submissions.change_status": "Change submission status",
    "evaluations.submit_evaluation": "Evaluate submission",
    "admin_promote.auto_select_finalists": "Select finalists",
    "admin_promote.declare_winners": "Declare winners",

    # public
    "public_votes.cast_vote": "Cast vote",
    "public_votes.remove_vote": "Remove vote",
    "submissions.submit_project": "Submit project",
    "submissions.enroll_project": "Submit existing project",
    "submissions.delete_submission": "Delete submission",
    "submissions.update_project": "Edit project",
}

SENSITIVE_KEYS = {"password", "password1", "password2", "csrf_token", "token"}

def _sanitize_dict(d: Dict[str, Any]) -> Dict[str, Any]:
    if not d or not isinstance(d, dict):
        return {}
    return {k: ("***" if str(k).lower() in SENSITIVE_KEYS else v) for k, v in d.items()}

def action_from_request(req) -> str:
    """
    Readable description of a request, sensitive fields masked.
    """
    method_label = METHOD_LABELS.get(req.method, req.method)
    endpoint = (req.endpoint or "").strip()

    base = ENDPOINT_LABELS.get(endpoint)
    if base:
        action = f"{base} ({method_label})"
    else:
        action = f"{method_label} {req.path}"

    if req.method in ("POST", "PUT", "PATCH", "DELETE"):
        form_data = _sanitize_dict(req.form.to_dict())
        json_data = _sanitize_dict(req.get_json(silent=True))
        if form_data:
            action += f" | form: {form_data}"
        if json_data:
            action += f" | json: {json_data}"

    # column is 255 wide
    return action[:255]

def add_log(user_type: str, user_id: int | None, action: str) -> None:
    """
    Write one operation log row (local time).
    user_type: 'admin' / 'professor' / 'student_ufba' / 'student_external' / 'guest'
    """
    log = OperationLog(
        user_type=user_type,
        user_id=user_id,
        action=action[:255],
        ip_address=request.remote_addr if has_request_context() else None,
        timestamp=datetime.now()
    )
    db.session.add(log)
    db.session.commit()

# --------------------------------------------------
# 👮 Request identity
# --------------------------------------------------
def get_request_actor(session) -> Actor | None:
    """
    Actor of the current request, from the session the auth layer fills in.
    """
    user_id = session.get("user_id")
    role = session.get("role")
    if user_id is None or role not in ROLES:
        return None
    return Actor(id=user_id, role=role)

def get_request_user(session) -> tuple[str, int | None]:
    """
    (user_type, user_id) pair for the operation log.
    """
    actor = get_request_actor(session)
    if actor is None:
        return "guest", None
    return actor.role, actor.id

def should_log_request(req, exclude_prefixes=("/static",), exclude_endpoints: set[str] | None = None) -> bool:
    """
    Only POST/PUT/PATCH/DELETE are logged, minus excluded paths and endpoints.
    """
    if req.method not in ("POST", "PUT", "DELETE", "PATCH"):
        return False
    if any(req.path.startswith(p) for p in exclude_prefixes):
        return False
    if exclude_endpoints and req.endpoint in exclude_endpoints:
        return False
    return True
