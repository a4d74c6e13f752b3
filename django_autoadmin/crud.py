"""
Django-Autoadmin CRUD Engine

Lists, reads, creates, updates, deletes and exports records of the models
described in the settings document. Every operation checks the model's
permission flags before touching the database.

Provides:
- get_model_data for paginated, filtered, searched list tables
- get_model_record for the edit form
- create_model_record / update_model_record from submitted form data
- delete_model_record / delete_model_records
- export_records to CSV or JSON

Usage:
    from django_autoadmin.crud import get_model_data

    page = get_model_data("post", {"page": 2, "search": "django"})
"""

import json
import logging
import math

from django.core.exceptions import ObjectDoesNotExist
from django.core.serializers.json import DjangoJSONEncoder
from django.db import transaction

from django_autoadmin.admin_settings import (
    get_create_fields,
    get_table_fields,
    get_update_fields,
    load_admin_settings,
)
from django_autoadmin.conf import autoadmin_settings
from django_autoadmin.converters import INTEGER_TYPES, convert_form_value, field_error, format_csv_value, rows_to_csv
from django_autoadmin.filters import build_model_where, extract_filter_fields, where_to_q
from django_autoadmin.introspection import (
    get_accessor_name,
    get_django_field,
    get_fk_attname,
    get_model_class,
    is_multi_relation,
)
from django_autoadmin.permissions import check_filter_permission, check_model_permission, check_order_permission


logger = logging.getLogger("django_autoadmin")


def _resolve_model(model_name, admin_settings):
    model_settings = admin_settings.get_model(model_name)
    if model_settings is None:
        raise LookupError(f"Model {model_name} not found")
    return model_settings


def _positive_int(value, default):
    try:
        value = int(value)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def convert_id(model_settings, record_id):
    """
    Convert a record id to the id field's type.

    Integer ids arrive as strings from URLs and forms.

    Raises:
        LookupError: If an integer id is not a number
    """
    id_field = model_settings.id_admin_field
    if id_field is not None and id_field.type in INTEGER_TYPES and not isinstance(record_id, int):
        try:
            return int(str(record_id).strip())
        except ValueError:
            raise LookupError(f"{model_settings.id} record {record_id} not found")
    return record_id


def _get_object(model, model_settings, record_id):
    record_id = convert_id(model_settings, record_id)
    try:
        return model._default_manager.get(**{model_settings.id_field: record_id})
    except ObjectDoesNotExist:
        raise LookupError(f"{model_settings.id} record {record_id} not found")


def _relation_summary(related, related_settings):
    """Id plus display fields of a related row: the shape relation cells render."""
    if related is None:
        return None

    id_field = related_settings.id_field if related_settings else "id"
    display_fields = related_settings.display_fields if related_settings else []

    summary = {id_field: getattr(related, id_field, None)}
    for name in display_fields:
        summary[name] = getattr(related, name, None)
    return summary


def _read_value(obj, field, model, admin_settings):
    """Read one field of an instance in its projected shape."""
    if field.kind != "object":
        return getattr(obj, field.name, None)

    related_settings = admin_settings.get_model(field.type)
    accessor = get_accessor_name(model, field.name)

    if field.list or is_multi_relation(model, field.name):
        return [_relation_summary(related, related_settings) for related in getattr(obj, accessor).all()]

    try:
        related = getattr(obj, accessor)
    except ObjectDoesNotExist:
        # Reverse one-to-one with no row
        related = None
    return _relation_summary(related, related_settings)


def serialize_record(obj, fields, model, model_settings, admin_settings):
    """
    Project an instance onto the given fields.

    The id field is always included. Relation fields become
    {idField, ...displayFields} dicts (or lists of them).
    """
    record = {model_settings.id_field: getattr(obj, model_settings.id_field)}
    for field in fields:
        record[field.name] = _read_value(obj, field, model, admin_settings)
    return record


def _optimize(queryset, model, fields):
    select, prefetch = [], []
    for field in fields:
        if field.kind != "object":
            continue
        if is_multi_relation(model, field.name):
            prefetch.append(get_accessor_name(model, field.name))
        elif get_fk_attname(model, field.name):
            select.append(field.name)
    if select:
        queryset = queryset.select_related(*select)
    if prefetch:
        queryset = queryset.prefetch_related(*prefetch)
    return queryset


def get_model_data(model_name, options=None, admin_settings=None):
    """
    Fetch one page of records for a model's list table.

    Args:
        model_name: Model id (case-insensitive)
        options: Dict with any of:
            page: 1-based page number (default 1)
            per_page: Page size (default DEFAULT_PER_PAGE, capped at MAX_PER_PAGE)
            order_by: Sortable field name
            order: "asc" or "desc"
            search: Free-text search across string columns
            filters: List of filter conditions, or a legacy field -> value dict

    Returns:
        Dict with data, total_count, page, per_page, total_pages

    Raises:
        LookupError: Unknown model
        PermissionError: Read disabled, or a non-filterable/sortable field used
        ValueError: Unknown filter operator

    Example:
        >>> get_model_data("post", {"filters": [{"field": "published", "operator": "equals", "value": True}]})
        {'data': [...], 'total_count': 3, 'page': 1, 'per_page': 10, 'total_pages': 1}
    """
    if admin_settings is None:
        admin_settings = load_admin_settings()
    options = options or {}

    model_settings = _resolve_model(model_name, admin_settings)
    check_model_permission(model_settings, "read")

    page = _positive_int(options.get("page"), 1)
    per_page = min(_positive_int(options.get("per_page"), autoadmin_settings.DEFAULT_PER_PAGE), autoadmin_settings.MAX_PER_PAGE)
    order_by = options.get("order_by") or None
    order = "desc" if options.get("order") == "desc" else "asc"
    filters = options.get("filters")
    search = options.get("search") or None

    check_filter_permission(model_settings, extract_filter_fields(filters))
    check_order_permission(model_settings, order_by)

    model = get_model_class(model_settings)
    fields = get_table_fields(model_settings.id, admin_settings)

    where = build_model_where(filters, search, fields)
    queryset = model._default_manager.all()
    if where:
        logger.debug("Filtering %s by %s", model_settings.id, where)
        queryset = queryset.filter(where_to_q(where, model)).distinct()

    total_count = queryset.count()

    if order_by:
        queryset = queryset.order_by(f"-{order_by}" if order == "desc" else order_by)
    elif not queryset.ordered:
        queryset = queryset.order_by(model_settings.id_field)

    offset = (page - 1) * per_page
    rows = _optimize(queryset, model, fields)[offset : offset + per_page]

    return {
        "data": [serialize_record(obj, fields, model, model_settings, admin_settings) for obj in rows],
        "total_count": total_count,
        "page": page,
        "per_page": per_page,
        "total_pages": math.ceil(total_count / per_page) if total_count else 0,
    }


def get_model_record(model_name, record_id, admin_settings=None):
    """
    Fetch one record with its editable fields, for the edit form.

    Returns:
        Record dict, or None when no record has that id

    Raises:
        LookupError: Unknown model
        PermissionError: Read disabled
    """
    if admin_settings is None:
        admin_settings = load_admin_settings()

    model_settings = _resolve_model(model_name, admin_settings)
    check_model_permission(model_settings, "read")

    model = get_model_class(model_settings)
    try:
        obj = _get_object(model, model_settings, record_id)
    except LookupError:
        return None
    fields = get_update_fields(model_settings.id, admin_settings)
    return serialize_record(obj, fields, model, model_settings, admin_settings)


def _form_get(form_data, files, key):
    if files is not None and key in files:
        return files[key]
    return form_data.get(key)


def _form_getlist(form_data, key):
    if hasattr(form_data, "getlist"):
        return form_data.getlist(key)
    value = form_data.get(key)
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _indexed_values(form_data, name):
    """Collect name[0], name[1], ... in index order."""
    values = []
    index = 0
    while True:
        key = f"{name}[{index}]"
        if key not in form_data:
            return values
        values.append(form_data.get(key))
        index += 1


def _is_blank(value):
    return value is None or value == ""


def _required_error(field):
    return field_error(f"{field.display_title} is required", field, "required")


def _related_id(admin_settings, model_settings, field, value):
    """Convert a submitted related-row id to the related id field's type."""
    if field.relation_from:
        scalar = model_settings.get_field(field.relation_from)
        if scalar is not None and scalar.type in INTEGER_TYPES:
            return convert_form_value(value, scalar)

    related_settings = admin_settings.get_model(field.type)
    if related_settings is not None:
        return convert_id(related_settings, value)
    return value


def _related_objects(model, field, admin_settings, ids):
    django_field = get_django_field(model, field.name)
    related_model = django_field.related_model
    related_settings = admin_settings.get_model(field.type)
    id_field = related_settings.id_field if related_settings else "pk"
    ids = [convert_id(related_settings, i) if related_settings else i for i in ids if not _is_blank(i)]
    return list(related_model._default_manager.filter(**{f"{id_field}__in": ids}))


def _collect(form_data, files, fields, model, model_settings, admin_settings, partial):
    """
    Turn submitted form data into column values and multi-relation sets.

    Create (partial=False):
        - single relation: id -> connect, blank -> skipped (required -> error)
        - multi relation: values under "name[]"
        - scalar list: values under "name[0]", "name[1]", ...
        - scalar: blank -> skipped (required -> error)

    Update (partial=True):
        - single relation: id -> connect, blank -> disconnect (required -> unchanged)
        - multi relation: values under "name[0]", ... replace the whole set
        - scalar: blank -> unchanged (required -> error)

    Returns:
        (values, many) where many maps field name -> list of ids
    """
    values, many = {}, {}

    for field in fields:
        name = field.name

        if field.kind == "object":
            if field.list or is_multi_relation(model, name):
                if partial:
                    many[name] = _indexed_values(form_data, name)
                else:
                    submitted = _form_getlist(form_data, f"{name}[]")
                    if submitted:
                        many[name] = submitted
                continue

            attname = get_fk_attname(model, name)
            if attname is None:
                # Reverse one-to-one is edited from the other side
                continue

            value = _form_get(form_data, files, name)
            if _is_blank(value):
                if partial and not field.required:
                    values[attname] = None
                elif not partial and field.required:
                    raise _required_error(field)
                continue
            values[attname] = _related_id(admin_settings, model_settings, field, value)
            continue

        if field.list:
            items = [convert_form_value(item, field) for item in _indexed_values(form_data, name) if not _is_blank(item)]
            if field.required and not items:
                raise _required_error(field)
            values[name] = items
            continue

        value = _form_get(form_data, files, name)
        if _is_blank(value):
            if field.required:
                raise _required_error(field)
            continue
        values[name] = convert_form_value(value, field)

    return values, many


def _apply_many(obj, model, admin_settings, fields_by_name, many):
    for name, ids in many.items():
        field = fields_by_name[name]
        related = _related_objects(model, field, admin_settings, ids)
        getattr(obj, get_accessor_name(model, name)).set(related)


def create_model_record(model_name, form_data, files=None, admin_settings=None):
    """
    Create a record from submitted form data.

    Args:
        model_name: Model id (case-insensitive)
        form_data: QueryDict or dict of submitted values
        files: Optional uploaded files (request.FILES)

    Returns:
        Primary key of the created record

    Raises:
        LookupError: Unknown model
        PermissionError: Create disabled
        ValidationError: A required value is missing or a value is malformed
    """
    if admin_settings is None:
        admin_settings = load_admin_settings()

    model_settings = _resolve_model(model_name, admin_settings)
    check_model_permission(model_settings, "create")

    model = get_model_class(model_settings)
    fields = get_create_fields(model_settings.id, admin_settings)
    values, many = _collect(form_data, files, fields, model, model_settings, admin_settings, partial=False)

    with transaction.atomic():
        obj = model._default_manager.create(**values)
        _apply_many(obj, model, admin_settings, {f.name: f for f in fields}, many)

    logger.info("Created %s record %s", model_settings.id, obj.pk)
    return obj.pk


def update_model_record(model_name, record_id, form_data, files=None, admin_settings=None):
    """
    Update a record from submitted form data.

    Multi-relations submitted as "name[0]", "name[1]", ... replace the whole
    set; an absent list clears it.

    Returns:
        Primary key of the updated record

    Raises:
        LookupError: Unknown model or record
        PermissionError: Update disabled
        ValidationError: A required value is blank or a value is malformed
    """
    if admin_settings is None:
        admin_settings = load_admin_settings()

    model_settings = _resolve_model(model_name, admin_settings)
    check_model_permission(model_settings, "update")

    model = get_model_class(model_settings)
    fields = get_update_fields(model_settings.id, admin_settings)
    obj = _get_object(model, model_settings, record_id)
    values, many = _collect(form_data, files, fields, model, model_settings, admin_settings, partial=True)

    with transaction.atomic():
        for attname, value in values.items():
            setattr(obj, attname, value)
        obj.save()
        _apply_many(obj, model, admin_settings, {f.name: f for f in fields}, many)

    logger.info("Updated %s record %s", model_settings.id, obj.pk)
    return obj.pk


def delete_model_record(model_name, record_id, admin_settings=None):
    """
    Delete one record.

    Raises:
        LookupError: Unknown model or record
        PermissionError: Delete disabled
    """
    if admin_settings is None:
        admin_settings = load_admin_settings()

    model_settings = _resolve_model(model_name, admin_settings)
    check_model_permission(model_settings, "delete")

    model = get_model_class(model_settings)
    obj = _get_object(model, model_settings, record_id)
    obj.delete()
    logger.info("Deleted %s record %s", model_settings.id, record_id)


def delete_model_records(model_name, record_ids, admin_settings=None):
    """
    Delete several records at once.

    Returns:
        Number of records deleted (missing ids are ignored)
    """
    if admin_settings is None:
        admin_settings = load_admin_settings()

    model_settings = _resolve_model(model_name, admin_settings)
    check_model_permission(model_settings, "delete")

    model = get_model_class(model_settings)
    ids = [convert_id(model_settings, record_id) for record_id in record_ids or []]
    if not ids:
        return 0

    queryset = model._default_manager.filter(**{f"{model_settings.id_field}__in": ids})
    count = queryset.count()
    queryset.delete()
    logger.info("Deleted %d %s records", count, model_settings.id)
    return count


bulk_delete_records = delete_model_records


def export_records(model_name, record_ids=None, export_format="csv", admin_settings=None):
    """
    Export records with their readable non-relation fields.

    Args:
        record_ids: Ids to export (None exports every record)
        export_format: "csv" or "json"

    Returns:
        CSV text (title header row, empty string when there are no records)
        or pretty-printed JSON text

    Raises:
        PermissionError: Read disabled
        ValueError: Unknown export format
    """
    if export_format not in ("csv", "json"):
        raise ValueError(f"Unknown export format: '{export_format}'")

    if admin_settings is None:
        admin_settings = load_admin_settings()

    model_settings = _resolve_model(model_name, admin_settings)
    check_model_permission(model_settings, "read")

    model = get_model_class(model_settings)
    fields = [f for f in get_table_fields(model_settings.id, admin_settings) if f.kind != "object"]
    names = [f.name for f in fields]

    queryset = model._default_manager.all()
    if record_ids is not None:
        ids = [convert_id(model_settings, record_id) for record_id in record_ids]
        queryset = queryset.filter(**{f"{model_settings.id_field}__in": ids})
    records = list(queryset.order_by(model_settings.id_field).values(*names))

    if export_format == "json":
        return json.dumps(records, indent=2, cls=DjangoJSONEncoder)

    if not records:
        return ""

    rows = [[format_csv_value(record[f.name], f) for f in fields] for record in records]
    return rows_to_csv([f.display_title for f in fields], rows)
