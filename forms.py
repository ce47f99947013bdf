from datetime import date, datetime, timezone

from flask_wtf import FlaskForm
from werkzeug.datastructures import MultiDict
from wtforms import (
    StringField,
    PasswordField,
    IntegerField,
    DateTimeField,
    BooleanField,
    SelectField,
)
from wtforms.validators import (
    DataRequired,
    Email,
    InputRequired,
    Length,
    NumberRange,
    StopValidation,
    ValidationError as FieldError,
)

from errors import ValidationError

# Accepted due_date encodings: JavaScript's Date.toISOString(), Python's
# isoformat() with or without a UTC offset, and plain dates.
DATETIME_FORMATS = [
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%fZ",
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
]

TASK_FILTERS = ["all", "pending", "completed", "overdue"]

# Row ids are positive and must fit a signed 64-bit INTEGER column.
ID_RANGE = NumberRange(min=1, max=2**63 - 1)


class UTCDateTimeField(DateTimeField):
    """DateTimeField that stores offset-aware input as naive UTC."""

    def process_formdata(self, valuelist):
        super().process_formdata(valuelist)
        if self.data is not None and self.data.tzinfo is not None:
            self.data = self.data.astimezone(timezone.utc).replace(tzinfo=None)


def present(form, field):
    """
    Require the key to be supplied, but allow an empty string.

    InputRequired/DataRequired both reject "", which is a legal
    description and a legal (if always wrong) login password.
    """
    if not field.raw_data:
        raise StopValidation("This field is required.")


def non_empty_if_present(form, field):
    """Partial updates may omit the title, but may not blank it."""
    if field.raw_data and not (field.data or "").strip():
        raise FieldError("Title is required.")


class BaseForm(FlaskForm):
    """
    FlaskForm bound to a JSON body instead of request.form.

    There are no browser sessions to protect, so the per-form CSRF
    token is switched off.
    """

    class Meta:
        csrf = False


class RegistrationForm(BaseForm):
    """Registration input: a valid email and a password of 6+ characters."""

    email = StringField(
        "Email",
        validators=[InputRequired(), Email(message="Invalid email address.")],
    )
    password = PasswordField(
        "Password",
        validators=[
            InputRequired(),
            Length(min=6, message="Password should be at least 6 characters long."),
        ],
    )


class LoginForm(BaseForm):
    """Login form for existing users."""

    email = StringField(
        "Email",
        validators=[InputRequired(), Email(message="Invalid email address.")],
    )
    password = PasswordField("Password", validators=[present])


class TaskForm(BaseForm):
    """
    Input for creating a task.

    New tasks are incomplete unless `completed` is supplied.
    """

    owner_id = IntegerField("Owner", validators=[InputRequired(), ID_RANGE])
    title = StringField(
        "Title",
        validators=[DataRequired(message="Title is required.")],
    )
    description = StringField("Description", validators=[present])
    due_date = UTCDateTimeField(
        "Due Date",
        format=DATETIME_FORMATS,
        validators=[InputRequired()],
    )
    completed = BooleanField("Completed", default=False)


class TaskUpdateForm(BaseForm):
    """
    Partial update of a task. Only fields present in the body are applied.

    owner_id is required: updates go through the same ownership check as
    delete and share.
    """

    UPDATABLE = ("title", "description", "due_date", "completed")

    id = IntegerField("Task", validators=[InputRequired(), ID_RANGE])
    owner_id = IntegerField("Owner", validators=[InputRequired(), ID_RANGE])
    title = StringField("Title", validators=[non_empty_if_present])
    description = StringField("Description")
    due_date = UTCDateTimeField("Due Date", format=DATETIME_FORMATS)
    completed = BooleanField("Completed")

    def changes(self) -> dict:
        """Validated values of the fields the caller actually supplied."""
        return {
            name: self[name].data for name in self.UPDATABLE if self[name].raw_data
        }


class TaskLookupForm(BaseForm):
    """Identifies one task on behalf of its owner (delete / share)."""

    id = IntegerField("Task", validators=[InputRequired(), ID_RANGE])
    owner_id = IntegerField("Owner", validators=[InputRequired(), ID_RANGE])


class OwnerForm(BaseForm):
    owner_id = IntegerField("Owner", validators=[InputRequired(), ID_RANGE])


class UserTasksForm(OwnerForm):
    filter = SelectField(
        "Filter",
        choices=[(name, name) for name in TASK_FILTERS],
        default="all",
    )


def _form_value(value) -> str:
    # Order matters: bool is a subclass of int.
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def to_formdata(payload: dict) -> MultiDict:
    """
    Flatten a decoded JSON object into form data WTForms can parse.

    Keys whose value is null are dropped, i.e. treated as absent.
    """
    return MultiDict(
        [(key, _form_value(value)) for key, value in payload.items() if value is not None]
    )


# JSON types each field kind accepts. Dates travel as strings; Python
# callers may also pass date/datetime objects.
JSON_TYPES = [
    (BooleanField, (bool,), "Must be a boolean."),
    (IntegerField, (int,), "Must be an integer."),
    (DateTimeField, (str, date), "Must be a date string."),
    (StringField, (str,), "Must be a string."),
    (SelectField, (str,), "Must be a string."),
]


def type_errors(form, payload: dict) -> dict:
    """Per-field errors for values whose JSON type does not fit the field."""
    errors = {}
    for name, value in payload.items():
        if value is None or name not in form:
            continue
        field = form[name]
        for field_class, types, message in JSON_TYPES:
            if not isinstance(field, field_class):
                continue
            # bool is an int subclass but never a valid id.
            if isinstance(value, bool) and bool not in types:
                errors[name] = [message]
            elif not isinstance(value, types):
                errors[name] = [message]
            break
    return errors


def validate_payload(form_class, payload, strict_types=True):
    """
    Bind `payload` to `form_class` and validate it.

    With `strict_types` (JSON bodies) every value must already have the
    field's JSON type; query-string payloads are all strings and are
    validated with `strict_types=False`.

    Returns the validated form; raises errors.ValidationError carrying
    the per-field messages otherwise.
    """
    if not isinstance(payload, dict):
        raise ValidationError({}, "Request body must be a JSON object")

    form = form_class(formdata=to_formdata(payload))
    valid = form.validate()
    mistyped = type_errors(form, payload) if strict_types else {}
    if not valid or mistyped:
        raise ValidationError({**form.errors, **mistyped})
    return form
