"""
Django-Autoadmin Permission Checks

Operation-, filter- and ordering-level access control derived from the
settings document:

- Operation-level: the model's read/create/update/delete flags
- Filter-level: only fields with filter=True may be filtered on
- Order-level: only fields with sort=True may be sorted by
- Access: only authenticated (staff) users reach the admin API

Every check raises PermissionError before any database call is made.

Usage:
    from django_autoadmin.permissions import check_model_permission

    check_model_permission(model_settings, "create")
"""

from django_autoadmin.conf import autoadmin_settings


ACTIONS = ("read", "create", "update", "delete")

DENIED_MESSAGES = {
    "read": "Cannot read {model}",
    "create": "Cannot create {model}",
    "update": "Cannot update {model}",
    "delete": "Cannot delete {model}",
}


def check_model_permission(model_settings, action):
    """
    Check that an operation is enabled for a model.

    Args:
        model_settings: AdminModel (or None when the model is unknown)
        action: One of read, create, update, delete

    Raises:
        PermissionError: If the model is unknown or the operation disabled
    """
    if action not in ACTIONS:
        raise ValueError(f"Unknown action: '{action}'")

    if model_settings is None or not getattr(model_settings, action):
        name = model_settings.id if model_settings is not None else "model"
        raise PermissionError(DENIED_MESSAGES[action].format(model=name))


def check_filter_permission(model_settings, filter_fields):
    """
    Check that every filtered field exists and is filterable.

    Args:
        model_settings: AdminModel
        filter_fields: List of field names (e.g., ["title", "author_id"])

    Raises:
        PermissionError: If a field is unknown or not filterable
    """
    for name in filter_fields or []:
        field = model_settings.get_field(name)
        if field is None or not field.filter:
            raise PermissionError(f"Filter denied: '{name}' not allowed for filtering")


def check_order_permission(model_settings, order_by):
    """
    Check that the requested sort field exists and is sortable.

    Raises:
        PermissionError: If order_by is not a sortable field
    """
    if not order_by:
        return

    field = model_settings.get_field(order_by)
    if field is None or not field.sort:
        raise PermissionError(f"Order denied: '{order_by}' not allowed for ordering")


def has_admin_access(user):
    """
    Whether a user may use the admin API.

    Requires an authenticated user, and staff status unless REQUIRE_STAFF
    is disabled.
    """
    if user is None or not getattr(user, "is_authenticated", False):
        return False
    if autoadmin_settings.REQUIRE_STAFF:
        return bool(getattr(user, "is_staff", False) or getattr(user, "is_superuser", False))
    return True
