"""
Django-Autoadmin Model Introspection

Helpers for looking up Django models and their fields by the names used
in the settings document.
"""

from django.apps import apps
from django.core.exceptions import FieldDoesNotExist
from django.db.models import ForeignObjectRel


def get_model_by_name(model_name):
    """
    Get Django model class by name (case-insensitive).

    Searches all installed apps for a matching model.

    Args:
        model_name: Model name to find (e.g., "Post" or "post")

    Returns:
        Model class or None if not found
    """
    for app_config in apps.get_app_configs():
        for model in app_config.get_models():
            if model.__name__.lower() == model_name.lower():
                return model
    return None


def get_model_class(model_settings):
    """
    Get the Django model class for an AdminModel.

    Raises:
        LookupError: If no installed model matches
    """
    model = get_model_by_name(model_settings.id)
    if model is None:
        raise LookupError(f"Model {model_settings.id} not found")
    return model


def get_django_field(model, name):
    """Get a model field or reverse relation by name, or None."""
    try:
        return model._meta.get_field(name)
    except FieldDoesNotExist:
        return None


def get_accessor_name(model, name):
    """
    Attribute name used to read a field from an instance.

    Reverse relations are filtered by their query name but read through
    their accessor (e.g., "post" vs "post_set").

    Examples:
        >>> get_accessor_name(Author, "posts")
        'posts'
        >>> get_accessor_name(Post, "author")
        'author'
    """
    field = get_django_field(model, name)
    if isinstance(field, ForeignObjectRel):
        return field.get_accessor_name()
    return name


def get_fk_attname(model, name):
    """
    Column attribute for a forward single relation (e.g., "author" -> "author_id").

    Returns:
        attname, or None if name is not a forward many-to-one/one-to-one
    """
    field = get_django_field(model, name)
    if field is None or isinstance(field, ForeignObjectRel):
        return None
    if field.many_to_one or field.one_to_one:
        return field.attname
    return None


def is_multi_relation(model, name):
    """Whether a field holds many related rows (reverse FK or many-to-many)."""
    field = get_django_field(model, name)
    return bool(field is not None and field.is_relation and (field.one_to_many or field.many_to_many))

