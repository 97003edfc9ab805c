"""Element data model — one placed instance of a catalog type."""

import uuid
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, SerializeAsAny, model_validator
from pydantic.alias_generators import to_camel

from .catalog import properties_model_for
from .properties import ElementProperties


def new_element_id(element_type: str) -> str:
    return f"{element_type}_{uuid.uuid4().hex[:8]}"


def coerce_properties(element_type: str, properties: Any) -> ElementProperties:
    """Validate ``properties`` (mapping or model) against the schema of ``element_type``.

    Raises ValueError (pydantic.ValidationError included) when the type is
    unknown or the values do not fit the schema.
    """
    model = properties_model_for(element_type)
    if model is None:
        raise ValueError(f"Unknown element type: {element_type!r}")
    if properties is None:
        return model()
    if isinstance(properties, model):
        return properties.model_copy(deep=True)
    if isinstance(properties, ElementProperties):
        properties = properties.model_dump(by_alias=True)
    return model.model_validate(properties)


class Element(BaseModel):
    """A single element on the composition surface.

    Wire form: ``{id, elementType, properties, order}``.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    element_type: str
    properties: SerializeAsAny[ElementProperties]
    order: int = 0

    @model_validator(mode="before")
    @classmethod
    def _resolve_properties(cls, data):
        if not isinstance(data, dict):
            return data
        element_type = data.get("elementType", data.get("element_type"))
        if not isinstance(element_type, str):
            raise ValueError("elementType is required")
        return {**data, "properties": coerce_properties(element_type, data.get("properties"))}

    @classmethod
    def create(cls, element_type: str, properties: Any = None,
               order: int = 0, element_id: Optional[str] = None) -> "Element":
        return cls(
            id=element_id or new_element_id(element_type),
            element_type=element_type,
            properties=properties,
            order=order,
        )

    def with_properties(self, properties: ElementProperties) -> "Element":
        return self.model_copy(update={"properties": properties})

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")
