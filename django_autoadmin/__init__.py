"""
Django-Autoadmin: Settings-Driven Admin API for Django

An admin backend generated from your models: a JSON settings document
describes which models and fields are listed, filtered, sorted, created
and edited, and how relations are displayed. Regenerate it from the models
with ``manage.py regenerate_admin_settings``; edit it from the settings UI.

Example:
    from django_autoadmin import get_model_data

    page = get_model_data("post", {
        "filters": [{"field": "published", "operator": "equals", "value": True}],
        "search": "django",
        "per_page": 20,
    })
"""

__version__ = "0.1.0"
__author__ = "django-autoadmin contributors"

# Settings document
from django_autoadmin.admin_settings import (
    load_admin_settings,
    save_admin_settings,
    update_model_settings,
    get_model_settings,
    get_table_fields,
    get_create_fields,
    get_update_fields,
    get_filterable_fields,
    get_sortable_fields,
    get_display_value,
    get_filter_configs,
)
from django_autoadmin.schema import AdminField, AdminModel, AdminEnum, AdminSettings, FilterValue

# Filter utilities
from django_autoadmin.filters import (
    build_where,
    build_search_where,
    merge_where_conditions,
    where_to_q,
    encode_filters,
    decode_filters,
    OPERATORS,
    RELATION_OPERATORS,
)

# Relations
from django_autoadmin.relations import (
    get_relation_type,
    validate_relation_config,
    apply_relation_defaults,
    apply_relation_preset,
)

# CRUD
from django_autoadmin.crud import (
    get_model_data,
    get_model_record,
    create_model_record,
    update_model_record,
    delete_model_record,
    delete_model_records,
    bulk_delete_records,
    export_records,
)

# Import / export
from django_autoadmin.importer import import_csv_data, export_to_csv, suggest_mappings

# Generator
from django_autoadmin.generator import generate_admin_settings, merge_admin_settings

# Response utilities
from django_autoadmin.response import AdminResponse

# Configuration
from django_autoadmin.conf import autoadmin_settings

__all__ = [
    # Version
    "__version__",
    # Settings document
    "load_admin_settings",
    "save_admin_settings",
    "update_model_settings",
    "get_model_settings",
    "get_table_fields",
    "get_create_fields",
    "get_update_fields",
    "get_filterable_fields",
    "get_sortable_fields",
    "get_display_value",
    "get_filter_configs",
    "AdminField",
    "AdminModel",
    "AdminEnum",
    "AdminSettings",
    "FilterValue",
    # Filters
    "build_where",
    "build_search_where",
    "merge_where_conditions",
    "where_to_q",
    "encode_filters",
    "decode_filters",
    "OPERATORS",
    "RELATION_OPERATORS",
    # Relations
    "get_relation_type",
    "validate_relation_config",
    "apply_relation_defaults",
    "apply_relation_preset",
    # CRUD
    "get_model_data",
    "get_model_record",
    "create_model_record",
    "update_model_record",
    "delete_model_record",
    "delete_model_records",
    "bulk_delete_records",
    "export_records",
    # Import / export
    "import_csv_data",
    "export_to_csv",
    "suggest_mappings",
    # Generator
    "generate_admin_settings",
    "merge_admin_settings",
    # Response
    "AdminResponse",
    # Settings
    "autoadmin_settings",
]
