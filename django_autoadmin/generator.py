"""
Django-Autoadmin Settings Generator

Builds the settings document from the installed Django models, and merges
a freshly generated document with an existing one so that customisations
made through the settings UI survive schema changes.

Field mapping:
- Concrete fields become scalar (or enum, when they have choices) fields
- ForeignKey / OneToOneField become a relation field plus its id column,
  which is hidden from tables
- ManyToManyField and reverse relations become list relation fields
"""

import logging
import re

from django.apps import apps
from django.db import models
from django.db.models import ForeignObjectRel

from django_autoadmin.conf import autoadmin_settings
from django_autoadmin.relations import (
    MANY_TO_MANY,
    MANY_TO_ONE,
    ONE_TO_MANY,
    ONE_TO_ONE,
    apply_relation_defaults,
)
from django_autoadmin.schema import AdminEnum, AdminField, AdminModel, AdminSettings


logger = logging.getLogger("django_autoadmin")

SYSTEM_FIELDS = ("id", "createdAt", "updatedAt", "created_at", "updated_at")

FIELD_TYPES = {
    "AutoField": "Int",
    "SmallAutoField": "Int",
    "BigAutoField": "BigInt",
    "IntegerField": "Int",
    "SmallIntegerField": "Int",
    "PositiveIntegerField": "Int",
    "PositiveSmallIntegerField": "Int",
    "BigIntegerField": "BigInt",
    "PositiveBigIntegerField": "BigInt",
    "FloatField": "Float",
    "DecimalField": "Decimal",
    "BooleanField": "Boolean",
    "NullBooleanField": "Boolean",
    "DateField": "DateTime",
    "DateTimeField": "DateTime",
    "JSONField": "Json",
}

# Fields the settings UI keeps when a document is regenerated
PRESERVED_FIELD_SETTINGS = ("title", "order", "read", "filter", "sort", "create", "update", "editor", "upload")
PRESERVED_RELATION_SETTINGS = (
    "relation_display_mode",
    "relation_actions",
    "relation_edit_mode",
    "relation_edit_options",
    "relation_load_strategy",
    "relation_cache_ttl",
)
PRESERVED_MODEL_SETTINGS = ("name", "display_fields", "create", "update", "delete")


def title_case(name):
    """
    Turn a field or model name into a display title.

    Examples:
        >>> title_case("createdAt")
        'Created At'
        >>> title_case("published_at")
        'Published At'
        >>> title_case("BlogPost")
        'Blog Post'
    """
    spaced = re.sub(r"([A-Z])", r" \1", name).replace("_", " ")
    words = spaced.split()
    return " ".join(word[:1].upper() + word[1:] for word in words)


def get_field_type(field):
    """Settings type name for a concrete Django field."""
    if isinstance(field, models.ForeignKey):
        return get_field_type(field.target_field)
    return FIELD_TYPES.get(field.get_internal_type(), "String")


def _enum_name(model, field):
    return f"{model.__name__}{title_case(field.name).replace(' ', '')}"


def _is_required(field):
    return not (field.null or field.blank or field.has_default())


def _scalar_field(model, field, order, enums):
    name = field.attname if field.is_relation else field.name
    system = name in SYSTEM_FIELDS

    kind, field_type = "scalar", get_field_type(field)
    if field.choices and not field.is_relation:
        kind = "enum"
        field_type = _enum_name(model, field)
        enums[field_type] = AdminEnum(name=field_type, fields=[str(value) for value, _ in field.flatchoices])

    return AdminField(
        id=f"{model.__name__}.{name}",
        name=name,
        title=title_case(name),
        type=field_type,
        kind=kind,
        list=False,
        required=_is_required(field) and not field.primary_key,
        is_id=field.primary_key,
        unique=field.unique,
        order=order,
        read=not field.is_relation,
        filter=True,
        sort=True,
        create=not (system or field.primary_key or not field.editable),
        update=not (system or field.primary_key or not field.editable),
        editor=False,
        upload=isinstance(field, models.FileField),
    )


def _relation_name(field):
    # Both sides of a relation are named after the forward field
    forward = field.field if isinstance(field, ForeignObjectRel) else field
    return f"{forward.model.__name__}.{forward.name}"


def _relation_field(model, field, order):
    """Relation field for a forward relation or a reverse relation object."""
    related_model = field.related_model
    name = field.name

    if isinstance(field, ForeignObjectRel):
        if field.one_to_one:
            relation_type = ONE_TO_ONE
        elif field.many_to_many:
            relation_type = MANY_TO_MANY
        else:
            relation_type = ONE_TO_MANY
        relation_from = relation_to = None
        required = False
    else:
        if field.many_to_many:
            relation_type = MANY_TO_MANY
            relation_from = relation_to = None
            required = False
        else:
            relation_type = ONE_TO_ONE if field.one_to_one else MANY_TO_ONE
            relation_from = field.attname
            relation_to = field.target_field.name
            required = _is_required(field)

    relation_field = AdminField(
        id=f"{model.__name__}.{name}",
        name=name,
        title=title_case(name),
        type=related_model.__name__,
        kind="object",
        list=relation_type in (ONE_TO_MANY, MANY_TO_MANY),
        required=required,
        order=order,
        relation_field=True,
        relation_from=relation_from,
        relation_to=relation_to,
        relation_name=_relation_name(field),
        relation_type=relation_type,
        read=True,
        filter=True,
        sort=False,
        create=False,
        update=False,
    )
    return apply_relation_defaults(relation_field)


def _sort_key(field):
    # Id first, then required fields, then declaration order
    return (not field.is_id, not field.required, field.order)


def generate_model(model, enums):
    """
    Build the AdminModel for one Django model.

    Args:
        model: Django model class
        enums: Dict collecting enums by name (filled in place)
    """
    fields = []
    order = 0

    for field in list(model._meta.concrete_fields) + list(model._meta.many_to_many):
        if field.is_relation:
            fields.append(_relation_field(model, field, order))
            order += 1
            if field.concrete and (field.many_to_one or field.one_to_one):
                fields.append(_scalar_field(model, field, order, enums))
                order += 1
        else:
            fields.append(_scalar_field(model, field, order, enums))
            order += 1

    for rel in model._meta.related_objects:
        if rel.related_name and rel.related_name.endswith("+"):
            continue
        fields.append(_relation_field(model, rel, order))
        order += 1

    pk = model._meta.pk
    id_field = pk.attname if pk.is_relation else pk.name

    return AdminModel(
        id=model.__name__,
        name=title_case(model.__name__),
        id_field=id_field,
        display_fields=[id_field],
        create=True,
        update=True,
        delete=True,
        fields=sorted(fields, key=_sort_key),
    )


def get_admin_models(app_labels=None):
    """
    Django models covered by the admin.

    Args:
        app_labels: App labels to include (defaults to AUTOADMIN['APP_LABELS'];
            empty means every installed app outside django.contrib)
    """
    if app_labels is None:
        app_labels = autoadmin_settings.APP_LABELS

    result = []
    for app_config in apps.get_app_configs():
        if app_labels:
            if app_config.label not in app_labels:
                continue
        elif app_config.name.startswith("django.") or app_config.name == "django_autoadmin":
            continue
        result.extend(app_config.get_models())
    return result


def generate_admin_settings(app_labels=None):
    """
    Generate a settings document from the installed models.

    Returns:
        AdminSettings (not saved)

    Example:
        >>> settings = generate_admin_settings(["blog"])
        >>> [m.id for m in settings.models]
        ['Author', 'Post', 'Tag']
    """
    enums = {}
    admin_models = [generate_model(model, enums) for model in get_admin_models(app_labels)]
    logger.debug("Generated admin settings for %d models", len(admin_models))
    return AdminSettings(models=admin_models, enums=list(enums.values()))


def merge_field(new_field, existing_field):
    """Regenerated field with the user's display and permission settings kept."""
    updates = {key: getattr(existing_field, key) for key in PRESERVED_FIELD_SETTINGS}
    for key in PRESERVED_RELATION_SETTINGS:
        value = getattr(existing_field, key)
        if value is not None:
            updates[key] = value
    return new_field.model_copy(update=updates)


def merge_admin_settings(new_settings, existing_settings):
    """
    Merge a freshly generated document into an existing one.

    - Models and fields that no longer exist are dropped, new ones added
    - Existing fields keep title, order, per-operation flags and relation
      preferences; everything else comes from the new document
    - Existing models keep name, display fields and operation flags
    - Foreign key id columns stay hidden from tables
    - Enums always come from the new document

    Returns:
        Merged AdminSettings
    """
    if existing_settings is None:
        return new_settings

    existing_models = {model.id: model for model in existing_settings.models}
    merged_models = []

    for new_model in new_settings.models:
        existing_model = existing_models.get(new_model.id)
        if existing_model is None:
            merged_models.append(new_model)
            continue

        existing_fields = {field.name: field for field in existing_model.fields}
        foreign_keys = {field.relation_from for field in new_model.fields if field.relation_from}

        fields = []
        for new_field in new_model.fields:
            existing_field = existing_fields.get(new_field.name)
            field = merge_field(new_field, existing_field) if existing_field else new_field
            if field.name in foreign_keys:
                field = field.model_copy(update={"read": False})
            fields.append(field)

        overrides = {key: getattr(existing_model, key) for key in PRESERVED_MODEL_SETTINGS}
        merged_models.append(
            new_model.model_copy(update={**overrides, "fields": sorted(fields, key=lambda f: f.order)})
        )

    return AdminSettings(models=merged_models, enums=new_settings.enums)
