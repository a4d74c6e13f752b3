"""
Django-Autoadmin Settings Schema

Pydantic models for the JSON settings document that describes which models
and fields the admin exposes and how they are displayed and edited.

The document keeps camelCase keys on disk (``idField``, ``relationDisplayMode``)
while Python code works with snake_case attributes.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


FieldKind = Literal["scalar", "enum", "object"]
RelationType = Literal["one-to-one", "many-to-one", "one-to-many", "many-to-many"]


class SettingsModel(BaseModel):
    """Base schema: camelCase aliases, snake_case attributes."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class RelationActions(SettingsModel):
    """Interactive actions offered next to a relation value."""

    filter: Optional[bool] = None
    view: Optional[bool] = None
    edit: Optional[bool] = None
    view_all: Optional[bool] = None


class RelationEditOptions(SettingsModel):
    """Options for relation pickers and previews."""

    preview_fields: Optional[List[str]] = None
    searchable: Optional[bool] = None
    createable: Optional[bool] = None
    max_display: Optional[int] = None
    page_size: Optional[int] = None


class AdminField(SettingsModel):
    """One attribute of an admin model."""

    id: str = ""
    name: str
    title: str = ""
    type: str = "String"
    kind: FieldKind = "scalar"
    list: bool = False
    required: bool = False
    is_id: bool = False
    unique: bool = False
    order: int = 0

    # Relation metadata
    relation_field: bool = False
    relation_from: Optional[str] = None
    relation_to: Optional[str] = None
    relation_name: Optional[str] = None
    relation_type: Optional[RelationType] = None

    # Per-operation visibility
    read: bool = True
    filter: bool = True
    sort: bool = True
    create: bool = True
    update: bool = True
    editor: bool = False
    upload: bool = False

    # Relation display/edit preferences
    relation_display_mode: Optional[str] = None
    relation_actions: Optional[RelationActions] = None
    relation_edit_mode: Optional[str] = None
    relation_edit_options: Optional[RelationEditOptions] = None
    relation_load_strategy: Optional[str] = None
    relation_cache_ttl: Optional[int] = Field(default=None, alias="relationCacheTTL")

    @property
    def display_title(self) -> str:
        return self.title or self.name


class AdminModel(SettingsModel):
    """A data entity exposed in the admin."""

    id: str
    name: str = ""
    id_field: str = "id"
    display_fields: List[str] = Field(default_factory=lambda: ["id"])
    read: bool = True
    create: bool = True
    update: bool = True
    delete: bool = True
    fields: List[AdminField] = Field(default_factory=list)

    def get_field(self, name: str) -> Optional[AdminField]:
        for field in self.fields:
            if field.name == name:
                return field
        return None

    @property
    def id_admin_field(self) -> Optional[AdminField]:
        return self.get_field(self.id_field)


class AdminEnum(SettingsModel):
    name: str
    fields: List[str] = Field(default_factory=list)


class FilterValue(SettingsModel):
    """A single filter condition as sent by the filter panel."""

    field: str = Field(min_length=1)
    operator: str = Field(min_length=1)
    value: Any = None
    type: Optional[str] = None


class AdminSettings(SettingsModel):
    """The whole settings document."""

    models: List[AdminModel] = Field(default_factory=list)
    enums: List[AdminEnum] = Field(default_factory=list)

    def get_model(self, name: str) -> Optional[AdminModel]:
        """Find a model by class name, case-insensitive."""
        wanted = name.lower()
        for model in self.models:
            if model.id.lower() == wanted:
                return model
        return None

    def get_enum(self, name: str) -> Optional[AdminEnum]:
        for enum in self.enums:
            if enum.name == name:
                return enum
        return None
