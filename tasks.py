"""
Task store gateway.

Every read or mutation of a single task goes through `_owned_task`, which
looks the task up by id AND owner. A task that exists but belongs to
someone else is reported exactly like one that does not exist.
"""

import logging
from datetime import datetime

from errors import OwnerNotFound, TaskNotFound
from models import db, Task, TaskStatus, User, utcnow

logger = logging.getLogger(__name__)

SHARE_TEMPLATE = (
    'Check out my task: "{title}"\n\nDescription: {description}\n\n'
    "#TaskManagement #Productivity"
)


def _owned_task(task_id: int, owner_id: int) -> Task:
    task = Task.query.filter_by(id=task_id, owner_id=owner_id).first()
    if task is None:
        raise TaskNotFound()
    return task


def create_task(
    owner_id: int,
    title: str,
    description: str,
    due_date: datetime,
    completed: bool = False,
) -> Task:
    """Persist a new task for an existing user."""
    if db.session.get(User, owner_id) is None:
        raise OwnerNotFound(f"User with id {owner_id} not found")

    task = Task(
        owner_id=owner_id,
        title=title,
        description=description,
        due_date=due_date,
        completed=completed,
    )
    db.session.add(task)
    db.session.commit()
    logger.info("Task created id=%s owner=%s", task.id, owner_id)
    return task


def get_user_tasks(owner_id: int) -> list[Task]:
    """
    All tasks of `owner_id`, earliest due date first.

    Equal due dates fall back to id order so the result is deterministic.
    An unknown owner simply has no tasks.
    """
    return (
        Task.query.filter_by(owner_id=owner_id)
        .order_by(Task.due_date.asc(), Task.id.asc())
        .all()
    )


def filter_tasks(tasks, view: str, now: datetime | None = None) -> list[Task]:
    """Apply one of the dashboard tabs: all / pending / completed / overdue."""
    if view == "completed":
        return [t for t in tasks if t.completed]
    if view == "pending":
        return [t for t in tasks if not t.completed]
    if view == "overdue":
        now = now or utcnow()
        return [t for t in tasks if t.is_overdue(now)]
    return list(tasks)


def get_task_stats(owner_id: int, now: datetime | None = None) -> dict:
    """Counters for the dashboard header."""
    now = now or utcnow()
    tasks = get_user_tasks(owner_id)
    completed = sum(1 for t in tasks if t.completed)
    return {
        "total": len(tasks),
        "completed": completed,
        "pending": len(tasks) - completed,
        "overdue": sum(1 for t in tasks if t.status(now) is TaskStatus.OVERDUE),
    }


def update_task(task_id: int, owner_id: int, **changes) -> Task:
    """
    Apply a partial update to one of the owner's tasks.

    Accepted keys are title, description, due_date and completed; keys
    left out keep their current value. With no changes the task is
    returned as-is.
    """
    unknown = set(changes) - {"title", "description", "due_date", "completed"}
    if unknown:
        raise TypeError(f"Unknown task fields: {', '.join(sorted(unknown))}")

    task = _owned_task(task_id, owner_id)
    if not changes:
        return task

    for name, value in changes.items():
        setattr(task, name, value)
    db.session.commit()
    logger.info("Task updated id=%s fields=%s", task.id, sorted(changes))
    return task


def delete_task(task_id: int, owner_id: int) -> dict:
    task = _owned_task(task_id, owner_id)
    db.session.delete(task)
    db.session.commit()
    logger.info("Task deleted id=%s owner=%s", task_id, owner_id)
    return {"success": True}


def share_task(task_id: int, owner_id: int) -> dict:
    """Shareable text for a task. Title and description go in verbatim."""
    task = _owned_task(task_id, owner_id)
    logger.debug("Task shared id=%s", task_id)
    return {
        "shareText": SHARE_TEMPLATE.format(
            title=task.title, description=task.description
        )
    }
