from datetime import datetime, timedelta, timezone
from enum import Enum

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event
from sqlalchemy.engine import Engine
from werkzeug.security import generate_password_hash, check_password_hash

# SQLAlchemy instance is created here and initialized in app.create_app()
db = SQLAlchemy()

# Tasks due within this window (and not yet completed) are "due soon".
DUE_SOON_WINDOW = timedelta(hours=24)


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching what the columns store."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on.
    if type(dbapi_connection).__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


class TaskStatus(str, Enum):
    """Display status derived from `completed` and `due_date`. Never stored."""

    COMPLETED = "completed"
    OVERDUE = "overdue"
    DUE_SOON = "due-soon"
    NORMAL = "normal"


class User(db.Model):
    """
    Registered user.

    Email is unique and compared case-sensitively. The password is only
    ever stored as a Werkzeug credential string (method$salt$hash) and
    is left out of `to_dict()`.
    """

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    tasks = db.relationship(
        "Task",
        backref="owner",
        lazy=True,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def set_password(self, password: str, method: str = "scrypt") -> None:
        """Hash and store the password with a fresh random salt."""
        self.password_hash = generate_password_hash(password, method=method)

    def check_password(self, password: str) -> bool:
        """
        Check the provided password against the stored credential.

        The digest comparison is constant-time. A malformed credential
        (missing separators, unknown hash method) counts as a mismatch.
        """
        try:
            return check_password_hash(self.password_hash, password)
        except ValueError:
            return False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "created_at": self.created_at.isoformat(),
        }


class Task(db.Model):
    """
    Task model.

    Fields:
    - id: primary key
    - owner_id: foreign key to the User who owns the task
    - title: short title for the task (required, non-empty)
    - description: free text, may be empty
    - due_date: when the task is due (naive UTC)
    - completed: boolean flag (pending by default)
    - created_at: timestamp of creation (UTC)
    """

    __tablename__ = "tasks"

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = db.Column(db.Text, nullable=False)
    description = db.Column(db.Text, nullable=False)
    due_date = db.Column(db.DateTime, nullable=False)
    completed = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def status(self, now: datetime | None = None) -> TaskStatus:
        if self.completed:
            return TaskStatus.COMPLETED
        if now is None:
            now = utcnow()
        if self.due_date < now:
            return TaskStatus.OVERDUE
        if self.due_date - now < DUE_SOON_WINDOW:
            return TaskStatus.DUE_SOON
        return TaskStatus.NORMAL

    def is_overdue(self, now: datetime | None = None) -> bool:
        return self.status(now) is TaskStatus.OVERDUE

    def to_dict(self, now: datetime | None = None) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "title": self.title,
            "description": self.description,
            "due_date": self.due_date.isoformat(),
            "completed": self.completed,
            "created_at": self.created_at.isoformat(),
            "status": self.status(now).value,
        }
