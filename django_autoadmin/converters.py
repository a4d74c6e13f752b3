"""
Django-Autoadmin Value Conversion

Converts raw string values from forms and CSV files into Python values
according to the field's type, and formats values back to CSV text.

Field types follow the settings document: String, Int, BigInt, Float,
Decimal, Boolean, DateTime, Json (plus enum and relation kinds).
"""

import csv
import datetime
import io
import json
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.core.exceptions import ValidationError
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from django_autoadmin.conf import autoadmin_settings


INTEGER_TYPES = ("Int", "BigInt")
NUMBER_TYPES = ("Float", "Decimal")

TRUE_VALUES = ("true", "1", "yes", "y")
FALSE_VALUES = ("false", "0", "no", "n")


class _Missing:
    """Marker for a CSV cell that should be left out of the record."""

    def __repr__(self):
        return "MISSING"

    def __bool__(self):
        return False


MISSING = _Missing()


def parse_datetime_value(value):
    """
    Parse an ISO 8601 date or datetime string.

    Naive values are made aware in the current timezone when USE_TZ is on.

    Returns:
        datetime.datetime or None if the value cannot be parsed
    """
    if isinstance(value, datetime.datetime):
        return value

    value = str(value).strip()
    try:
        parsed = parse_datetime(value)
    except ValueError:
        return None

    if parsed is None:
        try:
            date = parse_date(value)
        except ValueError:
            return None
        if date is None:
            return None
        parsed = datetime.datetime.combine(date, datetime.time.min)

    if settings.USE_TZ and timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


def parse_int(value):
    """Parse a leading integer, tolerating trailing text ("12px" -> 12)."""
    text = str(value).strip()
    digits = ""
    for i, char in enumerate(text):
        if char in "0123456789" or (i == 0 and char in "+-"):
            digits += char
        else:
            break
    if digits in ("", "+", "-"):
        raise ValueError(f"invalid integer: {value!r}")
    return int(digits)


def field_error(message, field, code="invalid"):
    # Messages are %-formatted with params, so literal percent signs are escaped
    return ValidationError(message.replace("%", "%%"), code=code, params={"field": field.name})


def convert_form_value(value, field):
    """
    Convert a submitted form value for a field.

    Args:
        value: Raw value (string, or UploadedFile for upload fields)
        field: AdminField

    Returns:
        Converted Python value

    Raises:
        ValidationError: For malformed JSON or unparsable numbers/dates
    """
    field_type = field.type

    if field_type in INTEGER_TYPES:
        try:
            return parse_int(value)
        except ValueError:
            raise field_error(f"Invalid integer value for {field.display_title}: {value}", field, "invalid")

    if field_type == "Float":
        try:
            return float(value)
        except (TypeError, ValueError):
            raise field_error(f"Invalid number value for {field.display_title}: {value}", field, "invalid")

    if field_type == "Decimal":
        try:
            return Decimal(str(value).strip())
        except InvalidOperation:
            raise field_error(f"Invalid number value for {field.display_title}: {value}", field, "invalid")

    if field_type == "Boolean":
        if isinstance(value, bool):
            return value
        return value in ("true", "on")

    if field_type == "DateTime":
        parsed = parse_datetime_value(value)
        if parsed is None:
            raise field_error(f"Invalid date value for {field.display_title}: {value}", field, "invalid")
        return parsed

    if field_type == "Json":
        if not isinstance(value, str):
            return value
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            raise field_error(f"Invalid JSON in {field.display_title}", field, "invalid_json")

    if field_type == "String" and field.upload and hasattr(value, "name") and not isinstance(value, str):
        return f"{autoadmin_settings.UPLOAD_PREFIX}{value.name}"

    return value


def convert_csv_value(value, field):
    """
    Convert a CSV cell for a field.

    Empty cells become None for required fields (so the required check can
    report them) and are omitted (returned as ``MISSING``) otherwise.

    Raises:
        ValidationError: With "Invalid <kind> value for <Title>: <value>"
    """
    if value is None or value == "":
        return None if field.required else MISSING

    title = field.display_title

    if field.type in INTEGER_TYPES:
        try:
            return parse_int(value)
        except ValueError:
            raise ValidationError(f"Invalid integer value for {title}: {value}", code="invalid")

    if field.type in NUMBER_TYPES:
        try:
            return float(value)
        except ValueError:
            raise ValidationError(f"Invalid number value for {title}: {value}", code="invalid")

    if field.type == "Boolean":
        lowered = value.lower()
        if lowered in TRUE_VALUES:
            return True
        if lowered in FALSE_VALUES:
            return False
        raise ValidationError(f"Invalid boolean value for {title}: {value}", code="invalid")

    if field.type == "DateTime":
        parsed = parse_datetime_value(value)
        if parsed is None:
            raise ValidationError(f"Invalid date value for {title}: {value}", code="invalid")
        return parsed

    if field.type == "Json":
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            raise ValidationError(f"Invalid JSON value for {title}: {value}", code="invalid_json")

    return value


def format_csv_value(value, field):
    """
    Format a value as CSV cell text (before escaping).

    DateTime -> ISO 8601, Json -> JSON text, Boolean -> true/false,
    None -> empty string.
    """
    if value is None:
        return ""

    if field.type == "DateTime":
        if isinstance(value, datetime.datetime):
            return value.isoformat()
        if isinstance(value, datetime.date):
            return datetime.datetime.combine(value, datetime.time.min).isoformat()
        return str(value)

    if field.type == "Json":
        return json.dumps(value)

    if field.type == "Boolean":
        return "true" if value else "false"

    return str(value)


def rows_to_csv(headers, rows):
    """
    Render a header row and data rows as CSV text.

    Cells containing a comma, quote or newline are quoted, with quotes
    doubled. Lines end with a bare newline.
    """
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(headers)
    writer.writerows(rows)
    return output.getvalue()
