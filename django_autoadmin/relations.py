"""
Django-Autoadmin Relation Configuration

Rules for how relation fields are displayed and edited, keyed by the
relation's cardinality:

- one-to-one / many-to-one relations hold a single record and may be shown
  as a link, dropdown, badge or inline, with filter/view/edit actions.
- one-to-many / many-to-many relations hold a list and may be shown as a
  count, tags or inline, with a "view all" action (and filter for
  many-to-many).

Persisted preferences outside these sets are coerced back to a valid value
by ``validate_relation_config``.
"""

import logging

from django_autoadmin.schema import AdminField, RelationActions, RelationEditOptions


logger = logging.getLogger("django_autoadmin")

ONE_TO_ONE = "one-to-one"
MANY_TO_ONE = "many-to-one"
ONE_TO_MANY = "one-to-many"
MANY_TO_MANY = "many-to-many"

RELATION_TYPES = (ONE_TO_ONE, MANY_TO_ONE, ONE_TO_MANY, MANY_TO_MANY)
SINGLE_RELATION_TYPES = (ONE_TO_ONE, MANY_TO_ONE)

ALL_ACTIONS = ("filter", "view", "edit", "view_all")

VALID_DISPLAY_MODES = {
    ONE_TO_ONE: ["link", "dropdown", "badge", "inline"],
    MANY_TO_ONE: ["link", "dropdown", "badge", "inline"],
    ONE_TO_MANY: ["count", "tags", "inline"],
    MANY_TO_MANY: ["count", "tags", "inline"],
}

VALID_ACTIONS = {
    ONE_TO_ONE: ["filter", "view", "edit"],
    MANY_TO_ONE: ["filter", "view", "edit"],
    ONE_TO_MANY: ["view_all"],
    MANY_TO_MANY: ["filter", "view_all"],
}

VALID_EDIT_MODES = {
    ONE_TO_ONE: ["select", "autocomplete", "modal", "inline"],
    MANY_TO_ONE: ["select", "autocomplete", "modal", "inline"],
    ONE_TO_MANY: ["tags", "duallist", "checkbox", "modal", "inline"],
    MANY_TO_MANY: ["tags", "duallist", "checkbox", "modal", "inline"],
}

LOAD_STRATEGIES = ["eager", "lazy", "ondemand"]

RELATION_DEFAULTS = {
    ONE_TO_ONE: {
        "relation_display_mode": "link",
        "relation_edit_mode": "select",
        "relation_load_strategy": "eager",
        "relation_actions": {"filter": True, "view": True, "edit": True, "view_all": False},
        "relation_edit_options": {"searchable": True, "createable": False, "max_display": 1, "page_size": 20},
    },
    MANY_TO_ONE: {
        "relation_display_mode": "dropdown",
        "relation_edit_mode": "select",
        "relation_load_strategy": "eager",
        "relation_actions": {"filter": True, "view": True, "edit": True, "view_all": False},
        "relation_edit_options": {"searchable": True, "createable": False, "max_display": 1, "page_size": 20},
    },
    ONE_TO_MANY: {
        "relation_display_mode": "count",
        "relation_edit_mode": "tags",
        "relation_load_strategy": "lazy",
        "relation_actions": {"filter": False, "view": False, "edit": False, "view_all": True},
        "relation_edit_options": {"searchable": True, "createable": False, "max_display": 5, "page_size": 50},
    },
    MANY_TO_MANY: {
        "relation_display_mode": "tags",
        "relation_edit_mode": "tags",
        "relation_load_strategy": "lazy",
        "relation_actions": {"filter": True, "view": False, "edit": False, "view_all": True},
        "relation_edit_options": {"searchable": True, "createable": False, "max_display": 5, "page_size": 50},
    },
}

# Presets are keyed by "single" / "multi" and resolved per cardinality
RELATION_PRESETS = {
    "compact": {
        "single": {
            "relation_display_mode": "badge",
            "relation_edit_mode": "select",
            "relation_edit_options": {"max_display": 3},
        },
        "multi": {
            "relation_display_mode": "count",
            "relation_edit_mode": "tags",
            "relation_edit_options": {"max_display": 3},
        },
    },
    "rich": {
        "single": {
            "relation_display_mode": "inline",
            "relation_edit_mode": "autocomplete",
            "relation_load_strategy": "eager",
        },
        "multi": {
            "relation_display_mode": "inline",
            "relation_edit_mode": "duallist",
            "relation_load_strategy": "eager",
            "relation_edit_options": {"max_display": 10},
        },
    },
    "performance": {
        "single": {
            "relation_display_mode": "link",
            "relation_edit_mode": "autocomplete",
            "relation_load_strategy": "ondemand",
            "relation_edit_options": {"page_size": 20},
        },
        "multi": {
            "relation_display_mode": "count",
            "relation_edit_mode": "tags",
            "relation_load_strategy": "ondemand",
            "relation_edit_options": {"page_size": 20},
        },
    },
}


def get_relation_type(field, inverse=None):
    """
    Classify a relation field by cardinality.

    An explicit ``relation_type`` on the field wins. Otherwise the type is
    derived from the list flag, the foreign key (``relation_from``) and,
    when known, the inverse field on the related model.

    Args:
        field: AdminField
        inverse: Optional AdminField on the other side of the relation

    Returns:
        One of RELATION_TYPES, or None for non-relation fields

    Examples:
        >>> get_relation_type(AdminField(name="author", relation_field=True, relation_from="author_id"))
        'many-to-one'
        >>> get_relation_type(AdminField(name="posts", relation_field=True, list=True))
        'one-to-many'
    """
    if not field.relation_field:
        return None

    if field.relation_type:
        return field.relation_type

    if field.list:
        if inverse is not None and inverse.list:
            return MANY_TO_MANY
        return ONE_TO_MANY

    if inverse is not None and not inverse.list:
        return ONE_TO_ONE
    if field.relation_from:
        return MANY_TO_ONE
    return ONE_TO_ONE


def is_single_relation(relation_type):
    return relation_type in SINGLE_RELATION_TYPES


def is_valid_display_mode(relation_type, display_mode):
    return display_mode in VALID_DISPLAY_MODES[relation_type]


def is_valid_action(relation_type, action):
    return action in VALID_ACTIONS[relation_type]


def get_valid_display_modes(relation_type):
    return list(VALID_DISPLAY_MODES[relation_type])


def get_valid_actions(relation_type):
    return list(VALID_ACTIONS[relation_type])


def get_valid_edit_modes(relation_type):
    return list(VALID_EDIT_MODES[relation_type])


def _defaults_for(relation_type):
    defaults = RELATION_DEFAULTS[relation_type]
    return {
        "relation_display_mode": defaults["relation_display_mode"],
        "relation_edit_mode": defaults["relation_edit_mode"],
        "relation_load_strategy": defaults["relation_load_strategy"],
        "relation_actions": RelationActions(**defaults["relation_actions"]),
        "relation_edit_options": RelationEditOptions(**defaults["relation_edit_options"]),
    }


def apply_relation_defaults(field, inverse=None):
    """
    Fill in any missing relation preferences from RELATION_DEFAULTS.

    Existing preferences are left untouched. Non-relation fields are
    returned unchanged.
    """
    relation_type = get_relation_type(field, inverse)
    if not relation_type:
        return field

    updates = {}
    for key, value in _defaults_for(relation_type).items():
        if getattr(field, key) is None:
            updates[key] = value
    if not field.relation_type:
        updates["relation_type"] = relation_type

    return field.model_copy(update=updates)


def validate_relation_config(field, inverse=None):
    """
    Validate and fix a field's relation configuration.

    - An invalid display mode is replaced by the first valid mode.
    - Actions are rewritten so every valid action keeps its value
      (False when unset) and every invalid action is False.
    - An unknown edit mode or load strategy falls back to the default for
      the relation type.

    Returns a new AdminField; the input is never mutated.
    """
    relation_type = get_relation_type(field, inverse)
    if not relation_type:
        return field

    updates = {}
    defaults = RELATION_DEFAULTS[relation_type]

    if field.relation_display_mode and not is_valid_display_mode(relation_type, field.relation_display_mode):
        valid_mode = VALID_DISPLAY_MODES[relation_type][0]
        logger.warning(
            "Display mode '%s' is not valid for %s relation '%s', using '%s'",
            field.relation_display_mode,
            relation_type,
            field.id or field.name,
            valid_mode,
        )
        updates["relation_display_mode"] = valid_mode

    if field.relation_actions is not None:
        valid_actions = VALID_ACTIONS[relation_type]
        validated = {}
        for action in ALL_ACTIONS:
            if action in valid_actions:
                validated[action] = bool(getattr(field.relation_actions, action))
            else:
                validated[action] = False
        updates["relation_actions"] = RelationActions(**validated)

    if field.relation_edit_mode and field.relation_edit_mode not in VALID_EDIT_MODES[relation_type]:
        updates["relation_edit_mode"] = defaults["relation_edit_mode"]

    if field.relation_load_strategy and field.relation_load_strategy not in LOAD_STRATEGIES:
        updates["relation_load_strategy"] = defaults["relation_load_strategy"]

    return field.model_copy(update=updates)


def find_inverse_field(admin_settings, model_name, field):
    """Find the field on the related model that shares this field's relation name."""
    if not (field.relation_field and field.relation_name):
        return None

    target = admin_settings.get_model(field.type)
    if target is None:
        return None

    for candidate in target.fields:
        if candidate.relation_name == field.relation_name and candidate.type.lower() == model_name.lower():
            if target.id == model_name and candidate.name == field.name:
                # Self relation: skip the field itself
                continue
            return candidate
    return None


def migrate_relation_configs(admin_settings):
    """
    Return a copy of the settings with every relation field validated.

    Used before the settings document is written back to disk.
    """
    models = []
    for model in admin_settings.models:
        fields = []
        for field in model.fields:
            if field.relation_field:
                inverse = find_inverse_field(admin_settings, model.id, field)
                field = validate_relation_config(field, inverse)
            fields.append(field)
        models.append(model.model_copy(update={"fields": fields}))
    return admin_settings.model_copy(update={"models": models})


def apply_relation_preset(field, preset, inverse=None):
    """
    Apply a named preset (compact, rich, performance) to a relation field.

    Display modes outside the cardinality's valid set are ignored, and the
    actions are reset to exactly the valid actions for the relation type.

    Raises:
        ValueError: If preset is unknown
    """
    if preset not in RELATION_PRESETS:
        raise ValueError(f"Unknown relation preset: '{preset}'")

    relation_type = get_relation_type(field, inverse)
    if not relation_type:
        return field

    config = RELATION_PRESETS[preset]["single" if is_single_relation(relation_type) else "multi"]
    updates = {}

    display_mode = config.get("relation_display_mode")
    if display_mode and is_valid_display_mode(relation_type, display_mode):
        updates["relation_display_mode"] = display_mode

    edit_mode = config.get("relation_edit_mode")
    if edit_mode and edit_mode in VALID_EDIT_MODES[relation_type]:
        updates["relation_edit_mode"] = edit_mode

    if "relation_load_strategy" in config:
        updates["relation_load_strategy"] = config["relation_load_strategy"]

    if "relation_edit_options" in config:
        current = field.relation_edit_options.model_dump() if field.relation_edit_options else {}
        current.update(config["relation_edit_options"])
        updates["relation_edit_options"] = RelationEditOptions(**current)

    valid_actions = VALID_ACTIONS[relation_type]
    updates["relation_actions"] = RelationActions(**{action: action in valid_actions for action in ALL_ACTIONS})

    return field.model_copy(update=updates)


def get_display_mode_help_text(relation_type):
    if relation_type in SINGLE_RELATION_TYPES:
        return "For single relations, use link, dropdown, badge, or inline display"
    if relation_type in (ONE_TO_MANY, MANY_TO_MANY):
        return "For list relations, use count, tags, or inline display"
    return ""


def get_action_help_text(relation_type, action):
    if is_valid_action(relation_type, action):
        return ""

    if action in ("view", "edit"):
        return f"Not available for {relation_type} relations (multiple records)"
    if action == "filter" and relation_type == ONE_TO_MANY:
        return "Not available for one-to-many relations"
    if action == "view_all" and relation_type in SINGLE_RELATION_TYPES:
        return f"Not available for {relation_type} relations (single record)"
    return ""


def _coerce_id(value):
    if isinstance(value, str):
        try:
            return int(value, 10)
        except ValueError:
            return value
    return value


def get_inverse_relation_field(admin_settings, model_name, field):
    """
    Get the foreign key name on the related model that points back here.

    Example:
        For User.posts -> Post.author (relation_from="author_id"),
        returns "author_id".
    """
    inverse = find_inverse_field(admin_settings, model_name, field)
    if inverse is None:
        return None
    return inverse.relation_from or None


def get_relation_view_all_filter(admin_settings, model_name, field, parent_id):
    """
    Build the filter used by "view all" navigation from a parent record.

    Args:
        admin_settings: AdminSettings
        model_name: Parent model name (e.g., "Author")
        field: Relation field on the parent (e.g., Author.posts)
        parent_id: Parent record id

    Returns:
        A filter dict ({field, operator, value, type}) for the related model,
        or None if the related model is not configured
    """
    target = admin_settings.get_model(field.type)
    if target is None:
        return None

    parent_id = _coerce_id(parent_id)
    inverse = find_inverse_field(admin_settings, model_name, field)

    if get_relation_type(field, inverse) == MANY_TO_MANY and inverse is not None:
        return {
            "field": inverse.name,
            "operator": "some",
            "value": {target_id_field(admin_settings, model_name): parent_id},
            "type": "relation",
        }

    if inverse is None or not inverse.relation_from:
        # No foreign key known on the other side; fall back to the lower-cased model name
        return {
            "field": model_name.lower(),
            "operator": "equals",
            "value": {"id": parent_id},
        }

    return {
        "field": inverse.relation_from,
        "operator": "equals",
        "value": parent_id,
    }


def target_id_field(admin_settings, model_name):
    model = admin_settings.get_model(model_name)
    return model.id_field if model else "id"
