from datetime import datetime

import pytest

from errors import ErrorKind, OwnerNotFound, TaskNotFound
from models import db, Task, User
from tasks import (
    create_task,
    delete_task,
    filter_tasks,
    get_task_stats,
    get_user_tasks,
    share_task,
    update_task,
)

NOW = datetime(2025, 1, 5, 12, 0)


def test_create_task(alice):
    task = create_task(
        alice["id"], "Buy milk", "Two litres", datetime(2025, 1, 2, 8, 30)
    )

    assert task.id is not None
    assert task.owner_id == alice["id"]
    assert task.title == "Buy milk"
    assert task.description == "Two litres"
    assert task.due_date == datetime(2025, 1, 2, 8, 30)
    assert task.completed is False
    assert isinstance(task.created_at, datetime)


def test_create_task_completed(alice):
    task = create_task(alice["id"], "Done", "", datetime(2025, 1, 2), completed=True)

    assert task.completed is True
    assert db.session.get(Task, task.id).completed is True


def test_create_task_unknown_owner(ctx):
    with pytest.raises(OwnerNotFound) as exc:
        create_task(999, "T", "D", datetime(2025, 1, 1))
    assert exc.value.kind is ErrorKind.OWNER_NOT_FOUND
    assert "999" in exc.value.message
    assert Task.query.count() == 0


def test_list_sorted_by_due_date(alice, make_task):
    for day in (7, 1, 3):
        make_task(title=f"day {day}", due_date=datetime(2025, 1, day))

    due = [t.due_date.day for t in get_user_tasks(alice["id"])]
    assert due == [1, 3, 7]


def test_list_ties_broken_by_id(alice, make_task):
    same = datetime(2025, 1, 1)
    ids = [make_task(title=str(n), due_date=same).id for n in range(3)]

    assert [t.id for t in get_user_tasks(alice["id"])] == sorted(ids)


def test_list_only_returns_own_tasks(alice, bob, make_task):
    make_task(title="alice's")
    make_task(owner_id=bob["id"], title="bob's")

    assert [t.title for t in get_user_tasks(alice["id"])] == ["alice's"]
    assert [t.title for t in get_user_tasks(bob["id"])] == ["bob's"]


def test_list_empty_and_unknown_owner(alice):
    assert get_user_tasks(alice["id"]) == []
    assert get_user_tasks(12345) == []


def test_register_create_list_scenario(alice):
    create_task(alice["id"], "T", "D", datetime(2024, 12, 31))

    tasks = get_user_tasks(alice["id"])
    assert len(tasks) == 1
    assert tasks[0].title == "T"
    assert tasks[0].completed is False


def test_update_single_field(alice, make_task):
    task = make_task()

    updated = update_task(task.id, alice["id"], title="New title")

    assert updated.title == "New title"
    assert updated.description == "Quarterly numbers"
    assert updated.due_date == datetime(2025, 1, 1, 9, 0)
    assert updated.completed is False


def test_update_multiple_fields_persists(alice, make_task):
    task = make_task()
    update_task(
        task.id,
        alice["id"],
        description="",
        due_date=datetime(2025, 2, 1),
        completed=True,
    )

    db.session.expire_all()
    stored = db.session.get(Task, task.id)
    assert stored.description == ""
    assert stored.due_date == datetime(2025, 2, 1)
    assert stored.completed is True


def test_update_completion_round_trip(alice, make_task):
    task = make_task()

    assert update_task(task.id, alice["id"], completed=True).completed is True
    assert update_task(task.id, alice["id"], completed=False).completed is False


def test_update_without_fields_is_noop(alice, make_task):
    task = make_task()
    before = task.to_dict(NOW)

    assert update_task(task.id, alice["id"]).to_dict(NOW) == before


def test_update_missing_task(alice):
    with pytest.raises(TaskNotFound):
        update_task(999, alice["id"], title="x")


def test_update_checks_ownership(alice, bob, make_task):
    task = make_task()

    with pytest.raises(TaskNotFound):
        update_task(task.id, bob["id"], title="hijacked")
    assert db.session.get(Task, task.id).title == "Write report"


def test_update_rejects_unknown_fields(alice, make_task):
    task = make_task()

    with pytest.raises(TypeError):
        update_task(task.id, alice["id"], owner_id=2)


def test_delete_task(alice, make_task):
    task = make_task()

    assert delete_task(task.id, alice["id"]) == {"success": True}
    assert db.session.get(Task, task.id) is None


def test_delete_twice(alice, make_task):
    task = make_task()
    delete_task(task.id, alice["id"])

    with pytest.raises(TaskNotFound) as exc:
        delete_task(task.id, alice["id"])
    assert exc.value.kind is ErrorKind.TASK_NOT_FOUND


def test_cross_owner_delete_looks_like_missing_task(alice, bob, make_task):
    task = make_task()

    with pytest.raises(TaskNotFound) as foreign:
        delete_task(task.id, bob["id"])
    with pytest.raises(TaskNotFound) as missing:
        delete_task(99999, bob["id"])

    assert foreign.value.message == missing.value.message
    assert db.session.get(Task, task.id) is not None


def test_share_task(alice, make_task):
    task = make_task(title="Plan trip", description="Book flights")

    assert share_task(task.id, alice["id"]) == {
        "shareText": 'Check out my task: "Plan trip"\n\n'
        "Description: Book flights\n\n#TaskManagement #Productivity"
    }


def test_share_special_characters_and_empty_description(alice, make_task):
    task = make_task(title='Fix "critical" bug & update docs', description="")

    assert share_task(task.id, alice["id"])["shareText"] == (
        'Check out my task: "Fix "critical" bug & update docs"\n\n'
        "Description: \n\n#TaskManagement #Productivity"
    )


def test_share_keeps_braces_verbatim(alice, make_task):
    task = make_task(title="{title}", description="<b>{0}</b>")

    text = share_task(task.id, alice["id"])["shareText"]
    assert '"{title}"' in text
    assert "Description: <b>{0}</b>" in text


def test_cross_owner_share_looks_like_missing_task(alice, bob, make_task):
    task = make_task()

    with pytest.raises(TaskNotFound) as foreign:
        share_task(task.id, bob["id"])
    with pytest.raises(TaskNotFound) as missing:
        share_task(99999, alice["id"])
    assert foreign.value.message == missing.value.message


def test_deleting_owner_cascades_to_tasks(alice, make_task):
    make_task()
    make_task()

    db.session.delete(db.session.get(User, alice["id"]))
    db.session.commit()

    assert Task.query.count() == 0


def test_filter_tasks_and_stats(alice, make_task):
    make_task(title="late", due_date=datetime(2025, 1, 1))
    make_task(title="soon", due_date=datetime(2025, 1, 6))
    make_task(title="done", due_date=datetime(2025, 1, 2), completed=True)

    tasks = get_user_tasks(alice["id"])
    titles = lambda view: [t.title for t in filter_tasks(tasks, view, now=NOW)]  # noqa: E731

    assert titles("all") == ["late", "done", "soon"]
    assert titles("pending") == ["late", "soon"]
    assert titles("completed") == ["done"]
    assert titles("overdue") == ["late"]
    assert get_task_stats(alice["id"], now=NOW) == {
        "total": 3,
        "completed": 1,
        "pending": 2,
        "overdue": 1,
    }
