"""Date parsing and age derivation shared by the patient services."""
import datetime
from .errors import ValidationFailed


def calculate_age(date_of_birth, today=None):
    """Completed years between ``date_of_birth`` and ``today``.

    Compares calendar (month, day) pairs, so a patient turns a year older
    exactly on the birthday regardless of leap years.
    """
    today = today or datetime.date.today()
    if date_of_birth > today:
        raise ValidationFailed("dateOfBirth cannot be in the future.")
    before_birthday = (today.month, today.day) < (date_of_birth.month, date_of_birth.day)
    return today.year - date_of_birth.year - int(before_birthday)


def _parse_iso(value, field):
    if isinstance(value, datetime.datetime):
        return value
    if isinstance(value, datetime.date):
        return datetime.datetime.combine(value, datetime.time.min)
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.datetime.fromisoformat(text)
        except ValueError:
            pass
    raise ValidationFailed(f"{field} must be an ISO-8601 date.", {field: value})


def parse_datetime(value, field):
    """Parse an ISO-8601 value into a naive datetime in local server time."""
    parsed = _parse_iso(value, field)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def parse_date(value, field):
    if isinstance(value, datetime.date) and not isinstance(value, datetime.datetime):
        return value
    return parse_datetime(value, field).date()


def parse_birth_date(value, field="dateOfBirth"):
    """Parse a birth date into the calendar day the sender meant.

    Plain dates and naive timestamps keep their own date. A timestamp with
    an offset is an instant, usually the sender's local midnight serialised
    to UTC, so it resolves to the day whose UTC midnight is nearest. That
    recovers the local date for any sender between UTC-12 and UTC+12.
    """
    if isinstance(value, datetime.date) and not isinstance(value, datetime.datetime):
        return value
    parsed = _parse_iso(value, field)
    if parsed.tzinfo is None:
        return parsed.date()
    utc = parsed.astimezone(datetime.timezone.utc)
    return (utc + datetime.timedelta(hours=12)).date()


def day_bounds(day):
    """Return ``[start, end)`` covering the calendar day of ``day``."""
    start = datetime.datetime.combine(day, datetime.time.min)
    return start, start + datetime.timedelta(days=1)


def one_year_before(moment):
    try:
        return moment.replace(year=moment.year - 1)
    except ValueError:
        # Feb 29
        return moment.replace(year=moment.year - 1, day=28)
