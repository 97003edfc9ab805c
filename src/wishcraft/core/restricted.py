"""Restricted mode gate — template-derived editing over a fixed type palette."""

import logging
from typing import Iterable, Optional
from pydantic import BaseModel, ConfigDict

from .canvas import CanvasStore
from .elements import Element, ElementProperties

logger = logging.getLogger("Wishcraft.core.restricted")


class RestrictedModeGate(BaseModel):
    """Constrains add/remove to the element types of the source template.

    Template slots are singular per type: selecting a type either re-selects
    the instance already on the canvas or restores it from the template's
    original properties. Types the template never had are rejected.
    """
    model_config = ConfigDict(frozen=True)

    active: bool = False
    template_elements: tuple[Element, ...] = ()

    @classmethod
    def inactive(cls) -> "RestrictedModeGate":
        return cls()

    @classmethod
    def from_template_elements(cls, elements: Iterable[Element]) -> "RestrictedModeGate":
        return cls(
            active=True,
            template_elements=tuple(el.model_copy(deep=True) for el in elements),
        )

    @property
    def template_types(self) -> tuple[str, ...]:
        seen: list[str] = []
        for el in self.template_elements:
            if el.element_type not in seen:
                seen.append(el.element_type)
        return tuple(seen)

    def can_add(self, element_type: str) -> bool:
        if not self.active:
            return True
        return element_type in self.template_types

    def template_properties_for(self, element_type: str) -> Optional[ElementProperties]:
        for el in self.template_elements:
            if el.element_type == element_type:
                return el.properties.model_copy(deep=True)
        return None

    def select(self, canvas: CanvasStore, element_type: str) -> Optional[Element]:
        """Re-select the existing instance of ``element_type`` or restore it."""
        if not self.can_add(element_type):
            logger.info(f"Restricted mode: '{element_type}' is not a template type")
            return None

        existing = canvas.instances_of(element_type)
        if existing:
            element = existing[0]
            canvas.selected_id = element.id
        else:
            element = canvas.place(element_type, self.template_properties_for(element_type))
            if element is None:
                return None
        if element.id not in canvas.selection_ids:
            canvas.selection_ids.append(element.id)
        return element

    def resolve_unselect(self, canvas: CanvasStore, key: str) -> Optional[str]:
        """Element id removed by unselecting ``key`` (an element id or a type)."""
        if canvas.contains(key):
            return key
        instances = canvas.instances_of(key)
        return instances[0].id if instances else None
