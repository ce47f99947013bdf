"""
JSON remote-procedure surface.

Each operation is exposed at /rpc/<operationName>. Bodies are validated
once, here, with the WTForms classes from forms.py; the functions in
auth.py and tasks.py only ever see validated values.
"""

import logging
from datetime import datetime, timezone

from flask import Blueprint, jsonify, request

import auth
import tasks
from errors import TaskAppError, ValidationError
from forms import (
    LoginForm,
    OwnerForm,
    RegistrationForm,
    TaskForm,
    TaskLookupForm,
    TaskUpdateForm,
    UserTasksForm,
    validate_payload,
)
from models import utcnow

logger = logging.getLogger(__name__)

bp = Blueprint("rpc", __name__, url_prefix="/rpc")


def _payload() -> dict:
    """Query string for GET, JSON object body for POST."""
    if request.method == "GET":
        return request.args.to_dict()
    if not request.get_data():
        return {}
    payload = request.get_json(silent=True)
    if payload is None:
        raise ValidationError({}, "Request body must be valid JSON")
    return payload


def _validated(form_class):
    """Validate the request against `form_class`; JSON types are checked for bodies only."""
    return validate_payload(
        form_class, _payload(), strict_types=request.method != "GET"
    )


@bp.errorhandler(TaskAppError)
def handle_app_error(error):
    logger.warning(
        "%s failed: %s (%s)", request.endpoint, error.message, error.kind.value
    )
    return jsonify({"error": error.to_dict()}), error.status_code


# -----------------------------
# Procedures
# -----------------------------


@bp.route("/healthcheck", methods=["GET", "POST"])
def healthcheck():
    return jsonify(
        {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}
    )


@bp.route("/registerUser", methods=["POST"])
def register_user():
    form = _validated(RegistrationForm)
    user = auth.register_user(form.email.data, form.password.data)
    return jsonify({"user": user})


@bp.route("/loginUser", methods=["POST"])
def login_user():
    form = _validated(LoginForm)
    user = auth.login_user(form.email.data, form.password.data)
    return jsonify({"user": user})


@bp.route("/createTask", methods=["POST"])
def create_task():
    form = _validated(TaskForm)
    task = tasks.create_task(
        owner_id=form.owner_id.data,
        title=form.title.data,
        description=form.description.data,
        due_date=form.due_date.data,
        completed=form.completed.data,
    )
    return jsonify(task.to_dict())


@bp.route("/getUserTasks", methods=["GET", "POST"])
def get_user_tasks():
    form = _validated(UserTasksForm)
    now = utcnow()
    items = tasks.filter_tasks(
        tasks.get_user_tasks(form.owner_id.data), form.filter.data, now=now
    )
    return jsonify([task.to_dict(now) for task in items])


@bp.route("/getTaskStats", methods=["GET", "POST"])
def get_task_stats():
    form = _validated(OwnerForm)
    return jsonify(tasks.get_task_stats(form.owner_id.data))


@bp.route("/updateTask", methods=["POST"])
def update_task():
    form = _validated(TaskUpdateForm)
    task = tasks.update_task(form.id.data, form.owner_id.data, **form.changes())
    return jsonify(task.to_dict())


@bp.route("/deleteTask", methods=["POST"])
def delete_task():
    form = _validated(TaskLookupForm)
    return jsonify(tasks.delete_task(form.id.data, form.owner_id.data))


@bp.route("/shareTask", methods=["GET", "POST"])
def share_task():
    form = _validated(TaskLookupForm)
    return jsonify(tasks.share_task(form.id.data, form.owner_id.data))
