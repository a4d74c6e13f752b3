"""
Django-Autoadmin Filter Utilities

Translates filter panel conditions into a where clause and compiles the
where clause into Django Q objects.

The where clause is a plain dict in the shape the admin UI speaks:

    {"published": True}
    {"title": {"contains": "hello", "mode": "insensitive"}}
    {"author": {"is": {"name": {"startsWith": "A", "mode": "insensitive"}}}}
    {"AND": [{...}, {...}]}, {"OR": [...]}, {"NOT": {...}}

Supports:
- Scalar operators (equals, not, in, notIn, lt, lte, gt, gte, contains,
  startsWith, endsWith, isNull, isNotNull)
- Relation operators (is, isNot, some, every, none)
- Free-text search across string fields
- URL wire format for filter lists
"""

import json
import logging
from urllib.parse import quote, unquote

from django.core.exceptions import FieldDoesNotExist
from django.db.models import Q
from pydantic import ValidationError as SchemaValidationError

from django_autoadmin.schema import FilterValue


logger = logging.getLogger("django_autoadmin")

# Operators offered by the filter panel
OPERATORS = {
    "equals",
    "not",
    "in",
    "notIn",
    "lt",
    "lte",
    "gt",
    "gte",
    "contains",
    "startsWith",
    "endsWith",
    "isNull",
    "isNotNull",
}

# Relation-only operators; the value is a nested where clause
RELATION_OPERATORS = {"is", "isNot", "some", "every", "none"}

COMPARISON_OPERATORS = {"lt", "lte", "gt", "gte", "not"}
LIST_OPERATORS = {"in", "notIn"}
STRING_OPERATORS = {"contains", "startsWith", "endsWith"}
NULL_OPERATORS = {"isNull", "isNotNull"}

# Keys allowed inside a scalar operator dict of the where clause
WHERE_OPERATOR_KEYS = {"equals", "not", "in", "notIn", "lt", "lte", "gt", "gte", "contains", "startsWith", "endsWith", "mode"}

# Where clause operator -> Django lookup
LOOKUPS = {
    "equals": "exact",
    "in": "in",
    "lt": "lt",
    "lte": "lte",
    "gt": "gt",
    "gte": "gte",
    "contains": "contains",
    "startsWith": "startswith",
    "endsWith": "endswith",
}

INSENSITIVE = "insensitive"


def _get(item, key):
    if isinstance(item, dict):
        return item.get(key)
    return getattr(item, key, None)


def is_empty_value(value):
    """An inactive filter value: None, empty string or empty list."""
    return value is None or value == "" or (isinstance(value, (list, tuple)) and len(value) == 0)


def build_filter_value(operator, value, value_type=None):
    """
    Build the where clause value for a single operator.

    Args:
        operator: Filter operator (e.g., "gte", "contains", "some")
        value: Filter value
        value_type: "relation" for relation filters, else None

    Returns:
        Value to store under the field name in the where clause

    Raises:
        ValueError: If the operator is unknown

    Examples:
        >>> build_filter_value("equals", True)
        True
        >>> build_filter_value("gte", 10)
        {'gte': 10}
        >>> build_filter_value("in", "draft")
        {'in': ['draft']}
        >>> build_filter_value("contains", "hello")
        {'contains': 'hello', 'mode': 'insensitive'}
        >>> build_filter_value("some", {"title": {"contains": "x"}}, "relation")
        {'some': {'title': {'contains': 'x'}}}
    """
    if operator == "equals":
        return value

    if value_type == "relation" or operator in RELATION_OPERATORS:
        if operator not in OPERATORS and operator not in RELATION_OPERATORS:
            raise ValueError(f"Unknown filter operator: '{operator}'")
        return {operator: value}

    if operator in COMPARISON_OPERATORS:
        return {operator: value}

    if operator in LIST_OPERATORS:
        return {operator: list(value) if isinstance(value, (list, tuple)) else [value]}

    if operator in STRING_OPERATORS:
        return {operator: value, "mode": INSENSITIVE}

    raise ValueError(f"Unknown filter operator: '{operator}'")


def build_where(filters):
    """
    Build a where clause from a list of filter conditions.

    Conditions with an empty value are skipped, except isNull/isNotNull
    which ignore the value. When two conditions target the same field the
    later one wins.

    Args:
        filters: List of FilterValue dicts (field, operator, value, type)

    Returns:
        Where clause dict, or None when no condition is active

    Examples:
        >>> build_where([{"field": "published", "operator": "equals", "value": True}])
        {'published': True}
        >>> build_where([{"field": "deleted_at", "operator": "isNull"}])
        {'deleted_at': None}
        >>> build_where([{"field": "title", "operator": "contains", "value": ""}]) is None
        True
    """
    if not filters:
        return None

    where = {}

    for item in filters:
        field = _get(item, "field")
        operator = _get(item, "operator")
        value = _get(item, "value")

        if operator == "isNull":
            where[field] = None
            continue
        if operator == "isNotNull":
            where[field] = {"not": None}
            continue

        if is_empty_value(value):
            continue

        where[field] = build_filter_value(operator, value, _get(item, "type"))

    return where or None


def build_legacy_where(filters):
    """
    Build a where clause from the legacy object filter format.

    String values match case-insensitively by substring, other values by
    equality. Empty values are skipped.

    Examples:
        >>> build_legacy_where({"title": "intro", "published": True})
        {'title': {'contains': 'intro', 'mode': 'insensitive'}, 'published': True}
    """
    if not filters:
        return None

    where = {}
    for key, value in filters.items():
        if is_empty_value(value):
            continue
        if isinstance(value, str):
            where[key] = {"contains": value, "mode": INSENSITIVE}
        else:
            where[key] = value

    return where or None


def build_search_where(search, fields):
    """
    Build a free-text search clause across single-valued string fields.

    Args:
        search: Search text
        fields: AdminField objects (or dicts with name/type/list)

    Returns:
        {"OR": [...]} or None when nothing is searchable

    Example:
        >>> build_search_where("hello", [{"name": "title", "type": "String"}])
        {'OR': [{'title': {'contains': 'hello', 'mode': 'insensitive'}}]}
    """
    if not search:
        return None

    conditions = [
        {_get(field, "name"): {"contains": search, "mode": INSENSITIVE}}
        for field in fields
        if _get(field, "type") == "String" and not _get(field, "list")
    ]

    if not conditions:
        return None
    return {"OR": conditions}


def build_model_where(filters=None, search=None, search_fields=()):
    """
    Build the where clause for a list request: filters AND search.

    ``filters`` may be a list of FilterValue dicts or a legacy dict.
    """
    if isinstance(filters, dict):
        filter_where = build_legacy_where(filters)
    else:
        filter_where = build_where(filters)

    search_where = build_search_where(search, search_fields)
    return merge_where_conditions(filter_where, search_where)


def merge_where_conditions(filter_where, search_where):
    """
    Combine a filter clause and a search clause.

    Both present -> {"AND": [filter_where, search_where]}; one present ->
    that one unchanged; neither -> None.
    """
    if not filter_where and not search_where:
        return None
    if not filter_where:
        return search_where
    if not search_where:
        return filter_where

    return {"AND": [filter_where, search_where]}


def extract_filter_fields(filters):
    """
    Return the field names referenced by a filter list or legacy dict.

    Used for permission validation to ensure every field is filterable.

    Examples:
        >>> extract_filter_fields([{"field": "title", "operator": "contains", "value": "x"}])
        ['title']
        >>> extract_filter_fields({"status": "draft"})
        ['status']
    """
    if not filters:
        return []
    if isinstance(filters, dict):
        return list(filters.keys())
    return [_get(item, "field") for item in filters]


def _related_model(model, name):
    """Related model class for a relation field name, or None."""
    if model is None:
        return None
    try:
        field = model._meta.get_field(name)
    except FieldDoesNotExist:
        return None
    if field.is_relation:
        return field.related_model
    return None


def _is_operator_dict(value):
    return bool(value) and set(value) <= WHERE_OPERATOR_KEYS


def _is_relation_dict(value):
    return bool(value) and bool(set(value) & RELATION_OPERATORS)


def _scalar_q(path, operators):
    """Build a Q for a scalar operator dict such as {"gte": 1, "lte": 5}."""
    insensitive = operators.get("mode") == INSENSITIVE
    q = Q()

    for operator, operand in operators.items():
        if operator == "mode":
            continue

        if operator == "equals":
            if operand is None:
                q &= Q(**{f"{path}__isnull": True})
            else:
                q &= Q(**{path: operand})
        elif operator == "not":
            if operand is None:
                q &= Q(**{f"{path}__isnull": False})
            elif isinstance(operand, dict):
                q &= ~_scalar_q(path, operand)
            else:
                q &= ~Q(**{path: operand})
        elif operator == "notIn":
            q &= ~Q(**{f"{path}__in": operand})
        elif operator in STRING_OPERATORS:
            lookup = LOOKUPS[operator]
            if insensitive:
                lookup = f"i{lookup}"
            q &= Q(**{f"{path}__{lookup}": operand})
        elif operator in LOOKUPS:
            q &= Q(**{f"{path}__{LOOKUPS[operator]}": operand})
        else:
            raise ValueError(f"Unknown filter operator: '{operator}'")

    return q


def _relation_q(path, operators, related_model):
    """Build a Q for a relation operator dict such as {"some": {...}}."""
    q = Q()

    for operator, operand in operators.items():
        if operator not in RELATION_OPERATORS:
            raise ValueError(f"Operator '{operator}' cannot be combined with relation operators")

        if operand is None:
            # is: null / isNot: null
            q &= Q(**{f"{path}__isnull": operator in ("is", "none", "every")})
            continue

        if not operand:
            # Empty nested clause: some/none test for existence only
            if operator == "some":
                q &= Q(**{f"{path}__isnull": False})
            elif operator == "none":
                q &= Q(**{f"{path}__isnull": True})
            continue

        nested = where_to_q(operand, related_model, prefix=f"{path}__")

        if operator in ("is", "some"):
            q &= nested
        elif operator in ("isNot", "none"):
            q &= ~nested
        elif operator == "every":
            if related_model is None:
                raise ValueError(f"Operator 'every' on '{path}' requires the model to resolve the relation")
            # No related row may fall outside the nested clause
            outside = related_model._default_manager.exclude(where_to_q(operand, related_model))
            q &= ~Q(**{f"{path}__in": outside})

    return q


def _field_q(name, value, model, prefix):
    path = f"{prefix}{name}"
    related_model = _related_model(model, name)

    if value is None:
        return Q(**{f"{path}__isnull": True})

    if isinstance(value, dict):
        if _is_relation_dict(value):
            return _relation_q(path, value, related_model)
        if _is_operator_dict(value):
            return _scalar_q(path, value)
        # Nested where on the related model, e.g. {"author": {"id": 1}}
        return where_to_q(value, related_model, prefix=f"{path}__")

    return Q(**{path: value})


def _combine(clauses, model, prefix, connector):
    if isinstance(clauses, dict):
        clauses = [clauses]

    combined = Q()
    for clause in clauses or []:
        sub_q = where_to_q(clause, model, prefix)
        if connector == Q.OR:
            combined |= sub_q
        else:
            combined &= sub_q
    return combined


def where_to_q(where, model=None, prefix=""):
    """
    Compile a where clause into a Django Q object.

    Args:
        where: Where clause dict (may be None)
        model: Optional Django model class, used to resolve relations
        prefix: Lookup prefix for nested relation clauses (internal use)

    Returns:
        Django Q object (empty Q matches all rows)

    Examples:
        >>> where_to_q({"published": True})
        <Q: (AND: ('published', True))>
        >>> where_to_q({"title": {"contains": "hi", "mode": "insensitive"}})
        <Q: (AND: ('title__icontains', 'hi'))>
        >>> where_to_q({"deleted_at": {"not": None}})
        <Q: (AND: ('deleted_at__isnull', False))>
    """
    if not where:
        return Q()

    q = Q()

    for key, value in where.items():
        if key == "AND":
            q &= _combine(value, model, prefix, Q.AND)
        elif key == "OR":
            q &= _combine(value, model, prefix, Q.OR)
        elif key == "NOT":
            q &= ~_combine(value, model, prefix, Q.AND)
        else:
            q &= _field_q(key, value, model, prefix)

    return q


def encode_filters(filters):
    """
    Encode a filter list into its URL query parameter form.

    Example:
        >>> encode_filters([{"field": "published", "operator": "equals", "value": True}])
        '%5B%7B%22field%22%3A%22published%22%2C%22operator%22%3A%22equals%22%2C%22value%22%3Atrue%7D%5D'
    """
    return quote(json.dumps(list(filters or []), separators=(",", ":")), safe="")


def decode_filters(param):
    """
    Decode a filter list from its URL query parameter form.

    Accepts both the URL-encoded form and JSON that the request machinery
    has already decoded.

    Raises:
        ValueError: If the parameter is not a JSON list of filter objects
    """
    if not param:
        return []

    try:
        filters = json.loads(unquote(param))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid filters parameter: {e}") from e

    if not isinstance(filters, list):
        raise ValueError("Invalid filters parameter: expected a list")

    for item in filters:
        try:
            FilterValue.model_validate(item)
        except SchemaValidationError as e:
            raise ValueError(f"Invalid filter: {item!r}") from e

    return filters
