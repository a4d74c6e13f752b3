"""
Django-Autoadmin CSV Import / Export

Bulk-creates records from CSV text using a header -> field mapping, and
exports records back to CSV.

Rows are validated one by one; a bad row is reported as "Row N: <reason>"
(N counts data rows from 1) and does not stop the rest. Creates run in
sequential batches. After IMPORT_MAX_ERRORS failures the import stops.
"""

import csv
import io
import logging

from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction

from django_autoadmin.admin_settings import get_create_fields, load_admin_settings
from django_autoadmin.conf import autoadmin_settings
from django_autoadmin.converters import MISSING, convert_csv_value
from django_autoadmin.crud import export_records
from django_autoadmin.introspection import get_fk_attname, get_model_class


logger = logging.getLogger("django_autoadmin")

TOO_MANY_ERRORS = "Too many errors, import stopped"


def parse_csv(csv_text):
    """
    Parse CSV text into a list of rows.

    Blank lines are dropped. Quoted cells may contain commas, doubled
    quotes and newlines.
    """
    reader = csv.reader(io.StringIO(csv_text.lstrip("\ufeff")))
    return [row for row in reader if any(cell.strip() for cell in row)]


def _message(error):
    if isinstance(error, ValidationError):
        return " ".join(error.messages)
    return str(error)


def _column_name(model, field):
    """Model attribute a mapped field is written to (FK objects write their column)."""
    if field.kind == "object":
        return get_fk_attname(model, field.name)
    return field.name


def import_csv_data(model_name, csv_text, mappings, skip_first_row=True, admin_settings=None):
    """
    Create records from CSV text.

    Args:
        model_name: Model id (case-insensitive)
        csv_text: Raw CSV file content
        mappings: Dict of CSV header -> field name (headers mapped to an
            empty value are ignored)
        skip_first_row: Whether the first row is the header row

    Returns:
        Dict with success (rows created), failed (rows rejected) and errors
        (list of "Row N: message", at most IMPORT_MAX_ERRORS plus a final
        "Too many errors, import stopped")

    Raises:
        LookupError: Unknown model
        PermissionError: Create disabled for the model
        ValueError: Empty file

    Example:
        >>> import_csv_data("post", "Title,Views\\nA,1\\nB,abc\\n", {"Title": "title", "Views": "views"})
        {'success': 1, 'failed': 1, 'errors': ['Row 2: Invalid integer value for Views: abc']}
    """
    if admin_settings is None:
        admin_settings = load_admin_settings()

    model_settings = admin_settings.get_model(model_name)
    if model_settings is None:
        raise LookupError(f"Model {model_name} not found")
    if not model_settings.create:
        raise PermissionError(f"Not allowed to create {model_settings.id} records")

    rows = parse_csv(csv_text or "")
    if not rows:
        raise ValueError("CSV file is empty")

    # Mappings are keyed by the first row's headers
    headers = rows[0]
    data_rows = rows[1:] if skip_first_row else rows

    model = get_model_class(model_settings)
    fields = {f.name: f for f in get_create_fields(model_settings.id, admin_settings)}
    required = [f for f in fields.values() if f.required and _column_name(model, f)]

    result = {"success": 0, "failed": 0, "errors": []}
    pending = []
    stopped = False

    def fail(row_number, message):
        nonlocal stopped
        result["failed"] += 1
        if stopped:
            return
        result["errors"].append(f"Row {row_number}: {message}")
        if len(result["errors"]) >= autoadmin_settings.IMPORT_MAX_ERRORS:
            result["errors"].append(TOO_MANY_ERRORS)
            stopped = True

    def flush():
        for row_number, values in pending:
            try:
                with transaction.atomic():
                    model._default_manager.create(**values)
            except (DatabaseError, ValidationError, ValueError, TypeError) as e:
                logger.warning("Import of %s row %d failed: %s", model_settings.id, row_number, e)
                fail(row_number, _message(e))
            else:
                result["success"] += 1
        pending.clear()

    for index, row in enumerate(data_rows):
        row_number = index + 1
        values = {}

        try:
            for column, header in enumerate(headers):
                name = mappings.get(header)
                field = fields.get(name) if name else None
                if field is None:
                    continue
                column_name = _column_name(model, field)
                if column_name is None:
                    continue

                cell = row[column].strip() if column < len(row) else ""
                value = convert_csv_value(cell, field)
                if value is not MISSING:
                    values[column_name] = value

            for field in required:
                if values.get(_column_name(model, field)) is None:
                    raise ValidationError(f"Missing required field: {field.display_title}", code="required")
        except ValidationError as e:
            fail(row_number, _message(e))
            if stopped:
                break
            continue

        pending.append((row_number, values))
        if len(pending) >= autoadmin_settings.IMPORT_BATCH_SIZE:
            flush()

    flush()

    logger.info(
        "Imported %s: %d created, %d failed", model_settings.id, result["success"], result["failed"]
    )
    return result


def _normalize(text):
    return "".join(char for char in text.lower() if char.isalnum())


def suggest_mappings(headers, fields):
    """
    Guess a field for each CSV header by matching names and titles.

    Comparison ignores case, spaces and punctuation; each field is used at
    most once. Unmatched headers map to an empty string.

    Example:
        >>> suggest_mappings(["Title", "View Count"], [title_field, views_field])
        {'Title': 'title', 'View Count': ''}
    """
    available = list(fields)
    mappings = {}

    for header in headers:
        key = _normalize(header)
        match = None
        for field in available:
            if key and key in (_normalize(field.name), _normalize(field.display_title)):
                match = field
                break
        if match is not None:
            available.remove(match)
            mappings[header] = match.name
        else:
            mappings[header] = ""

    return mappings


def export_to_csv(model_name, record_ids=None, admin_settings=None):
    """Export records as CSV text: title header row, one row per record."""
    return export_records(model_name, record_ids or None, "csv", admin_settings=admin_settings)
