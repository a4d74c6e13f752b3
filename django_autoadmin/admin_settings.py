"""
Django-Autoadmin Settings Loader

Reads and writes the JSON settings document that describes the admin's
models and fields, and answers the questions the rest of the admin asks
about it (which fields to show in a table, which can be filtered, whether
a model may be created, ...).

The document is read from disk on every call so edits made by the settings
UI or the regeneration command apply to the next request.

Usage:
    from django_autoadmin.admin_settings import get_model_settings, get_table_fields

    model = get_model_settings("post")
    columns = get_table_fields("post")
"""

import json
import logging
import os
from pathlib import Path

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from pydantic import ValidationError as SchemaValidationError
from pydantic.alias_generators import to_camel

from django_autoadmin.conf import autoadmin_settings
from django_autoadmin.relations import migrate_relation_configs
from django_autoadmin.schema import AdminField, AdminModel, AdminSettings


logger = logging.getLogger("django_autoadmin")


def get_settings_path(path=None):
    """
    Resolve the settings document path.

    Relative paths are resolved against settings.BASE_DIR when defined.
    """
    path = Path(path or autoadmin_settings.SETTINGS_FILE)
    if not path.is_absolute():
        base_dir = getattr(settings, "BASE_DIR", None)
        if base_dir:
            path = Path(base_dir) / path
    return path


def load_admin_settings(path=None):
    """
    Load and validate the settings document.

    Args:
        path: Optional path (defaults to AUTOADMIN['SETTINGS_FILE'])

    Returns:
        AdminSettings

    Raises:
        ImproperlyConfigured: If the file is missing or invalid
    """
    path = get_settings_path(path)

    try:
        with open(path, "r", encoding="utf-8") as f:
            content = json.load(f)
    except FileNotFoundError as e:
        raise ImproperlyConfigured(
            f"Admin settings file '{path}' not found. Run 'manage.py regenerate_admin_settings' to create it."
        ) from e
    except json.JSONDecodeError as e:
        raise ImproperlyConfigured(f"Admin settings file '{path}' is not valid JSON: {e}") from e

    try:
        return AdminSettings.model_validate(content)
    except SchemaValidationError as e:
        raise ImproperlyConfigured(f"Admin settings file '{path}' is invalid: {e}") from e


def save_admin_settings(admin_settings, path=None):
    """
    Write the settings document, replacing the file wholesale.

    Relation preferences are validated first, so invalid display modes or
    actions never reach disk. The write goes through a temporary file and
    an atomic rename.

    Returns:
        The validated AdminSettings that were written
    """
    path = get_settings_path(path)

    if isinstance(admin_settings, dict):
        admin_settings = AdminSettings.model_validate(admin_settings)

    admin_settings = migrate_relation_configs(admin_settings)

    tmp_path = path.with_name(f".{path.name}.tmp")
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(admin_settings.to_json_dict(), f, indent=2)
        f.write("\n")
    os.replace(tmp_path, path)

    logger.info("Saved admin settings for %d models to %s", len(admin_settings.models), path)
    return admin_settings


def _attribute_names(schema, data):
    """Map camelCase document keys to schema attribute names."""
    aliases = {(info.alias or to_camel(name)): name for name, info in schema.model_fields.items()}
    return {aliases.get(key, key): value for key, value in data.items()}


def update_model_settings(model_name, changes, path=None):
    """
    Apply a partial update to one model and save the document.

    Args:
        model_name: Model id (case-insensitive)
        changes: Dict of model attributes (camelCase or snake_case). A
            "fields" entry is a list of partial field dicts matched by name.

    Returns:
        The updated AdminModel

    Raises:
        LookupError: If the model or a field is not configured
    """
    admin_settings = load_admin_settings(path)
    model = admin_settings.get_model(model_name)
    if model is None:
        raise LookupError(f"Model {model_name} not found")

    changes = _attribute_names(AdminModel, changes)
    field_changes = changes.pop("fields", None) or []
    changes.pop("id", None)

    fields_by_name = {field.name: field for field in model.fields}
    for change in field_changes:
        change = _attribute_names(AdminField, change)
        name = change.get("name")
        if name not in fields_by_name:
            raise LookupError(f"Field {name} not found on {model.id}")
        fields_by_name[name] = AdminField.model_validate({**fields_by_name[name].model_dump(), **change})

    updated = AdminModel.model_validate(
        {
            **model.model_dump(exclude={"fields"}),
            **changes,
            "fields": sorted(fields_by_name.values(), key=lambda f: f.order),
        }
    )

    models = [updated if m.id == model.id else m for m in admin_settings.models]
    saved = save_admin_settings(admin_settings.model_copy(update={"models": models}), path)
    return saved.get_model(model.id)


def get_model_settings(model_name, admin_settings=None):
    """Get an AdminModel by name (case-insensitive), or None."""
    if admin_settings is None:
        admin_settings = load_admin_settings()
    return admin_settings.get_model(model_name)


def get_all_models(admin_settings=None):
    if admin_settings is None:
        admin_settings = load_admin_settings()
    return list(admin_settings.models)


def _fields_with(model_name, flag, admin_settings=None):
    model = get_model_settings(model_name, admin_settings)
    if model is None:
        return []
    return sorted((f for f in model.fields if getattr(f, flag)), key=lambda f: f.order)


def get_table_fields(model_name, admin_settings=None):
    """Fields shown in list tables (read=True)."""
    return _fields_with(model_name, "read", admin_settings)


def get_create_fields(model_name, admin_settings=None):
    return _fields_with(model_name, "create", admin_settings)


def get_update_fields(model_name, admin_settings=None):
    return _fields_with(model_name, "update", admin_settings)


def get_filterable_fields(model_name, admin_settings=None):
    return _fields_with(model_name, "filter", admin_settings)


def get_sortable_fields(model_name, admin_settings=None):
    return _fields_with(model_name, "sort", admin_settings)


def _model_flag(model_name, flag, admin_settings=None):
    model = get_model_settings(model_name, admin_settings)
    return bool(model and getattr(model, flag))


def can_read_model(model_name, admin_settings=None):
    return _model_flag(model_name, "read", admin_settings)


def can_create_model(model_name, admin_settings=None):
    return _model_flag(model_name, "create", admin_settings)


def can_update_model(model_name, admin_settings=None):
    return _model_flag(model_name, "update", admin_settings)


def can_delete_model(model_name, admin_settings=None):
    return _model_flag(model_name, "delete", admin_settings)


def get_display_value(model_name, record, admin_settings=None):
    """
    Human readable label for a record, built from the model's display fields.

    Args:
        model_name: Model id
        record: Dict or model instance

    Returns:
        Display fields joined by a space, falling back to the id value

    Example:
        >>> get_display_value("author", {"id": 3, "name": "Ada"})  # displayFields = ["name"]
        'Ada'
    """
    if record is None:
        return ""

    def value_of(name):
        if isinstance(record, dict):
            return record.get(name)
        return getattr(record, name, None)

    model = get_model_settings(model_name, admin_settings)
    if model is None:
        return str(value_of("id") or "")

    values = [value_of(name) for name in model.display_fields]
    values = [str(v) for v in values if v not in (None, "")]
    if values:
        return " ".join(values)

    id_value = value_of(model.id_field)
    return "" if id_value is None else str(id_value)


def get_column_type(field):
    """
    Column renderer type for a field in list tables.

    Returns:
        One of: relation, boolean, number, date, json, enum, text
    """
    if field.kind == "object":
        return "relation"
    if field.kind == "enum":
        return "enum"
    if field.type == "Boolean":
        return "boolean"
    if field.type in ("Int", "BigInt", "Float", "Decimal"):
        return "number"
    if field.type == "DateTime":
        return "date"
    if field.type == "Json":
        return "json"
    return "text"


def get_filter_configs(model_name, admin_settings=None):
    """
    Filter panel configuration for each filterable field of a model.

    Returns:
        List of dicts: field, label, type, kind, list, relationTo, enumValues
    """
    if admin_settings is None:
        admin_settings = load_admin_settings()

    configs = []
    for field in get_filterable_fields(model_name, admin_settings):
        enum_values = None
        if field.kind == "enum":
            enum = admin_settings.get_enum(field.type)
            enum_values = list(enum.fields) if enum else []

        configs.append(
            {
                "field": field.name,
                "label": field.display_title,
                "type": field.type,
                "kind": field.kind,
                "list": field.list,
                "relationTo": field.relation_from,
                "enumValues": enum_values,
            }
        )
    return configs


def get_relation_filter_fields(model_name, admin_settings=None):
    """Filter configs of a related model, used by the relation filter card."""
    return get_filter_configs(model_name, admin_settings)
