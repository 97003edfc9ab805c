"""Canvas element store — ordered element instances plus the current selection."""

import logging
from typing import Any, Optional
from pydantic import BaseModel, Field

from .elements import Element, coerce_properties, get_element_definition, new_element_id

logger = logging.getLogger("Wishcraft.core.canvas")


class CanvasStore(BaseModel):
    """Ordered collection of elements on the composition surface.

    ``selected_id`` is the element being edited; ``selection_ids`` is the
    wider selection (palette picks in free mode, the editable template
    subset in restricted mode). Both hold ids so they never go stale when
    properties change.
    """
    elements: list[Element] = Field(default_factory=list)
    selected_id: Optional[str] = None
    selection_ids: list[str] = Field(default_factory=list)

    def get(self, element_id: str) -> Optional[Element]:
        for el in self.elements:
            if el.id == element_id:
                return el
        return None

    def contains(self, element_id: str) -> bool:
        return self.get(element_id) is not None

    def element_types(self) -> list[str]:
        seen: list[str] = []
        for el in self.elements:
            if el.element_type not in seen:
                seen.append(el.element_type)
        return seen

    def instances_of(self, element_type: str) -> list[Element]:
        return [el for el in self.elements if el.element_type == element_type]

    def latest_instance_of(self, element_type: str) -> Optional[Element]:
        instances = self.instances_of(element_type)
        return instances[-1] if instances else None

    @property
    def selected_element(self) -> Optional[Element]:
        if self.selected_id is None:
            return None
        return self.get(self.selected_id)

    @property
    def selection(self) -> list[Element]:
        return [el for el in (self.get(i) for i in self.selection_ids) if el is not None]

    def place(self, element_type: str, properties: Any = None) -> Optional[Element]:
        """Instantiate ``element_type`` at the end of the canvas and focus it.

        Uses catalog defaults unless ``properties`` is given. Returns None for
        an unknown type or invalid properties.
        """
        if get_element_definition(element_type) is None:
            logger.info(f"Rejected unknown element type '{element_type}'")
            return None
        try:
            props = coerce_properties(element_type, properties)
        except ValueError as e:
            logger.warning(f"Rejected properties for new '{element_type}': {e}")
            return None

        element_id = new_element_id(element_type)
        while self.contains(element_id):
            element_id = new_element_id(element_type)

        element = Element(
            id=element_id,
            element_type=element_type,
            properties=props,
            order=len(self.elements),
        )
        self.elements.append(element)
        self.selected_id = element.id
        return element

    def update_properties(self, element_id: str, properties: Any) -> Optional[Element]:
        """Replace the property map of ``element_id``; None if rejected."""
        for index, el in enumerate(self.elements):
            if el.id != element_id:
                continue
            try:
                props = coerce_properties(el.element_type, properties)
            except ValueError as e:
                logger.warning(f"Rejected property update for '{element_id}': {e}")
                return None
            updated = el.with_properties(props)
            self.elements[index] = updated
            return updated
        return None

    def remove(self, element_id: str) -> Optional[Element]:
        element = self.get(element_id)
        if element is None:
            return None
        self.elements = [el for el in self.elements if el.id != element_id]
        self.selection_ids = [i for i in self.selection_ids if i != element_id]
        if self.selected_id == element_id:
            self.selected_id = None
        self._reindex()
        return element

    def focus(self, element_id: Optional[str]) -> Optional[Element]:
        """Switch the edited element. ``None`` selects everything, focusing nothing."""
        if element_id is None:
            self.selected_id = None
            self.selection_ids = [el.id for el in self.elements]
            return None
        element = self.get(element_id)
        if element is None:
            return None
        self.selected_id = element.id
        self.selection_ids = [element.id]
        return element

    def _reindex(self):
        for i, el in enumerate(self.elements):
            el.order = i

    def to_summary(self) -> list[dict]:
        return [
            {
                "id": el.id,
                "order": el.order,
                "element_type": el.element_type,
                "selected": el.id == self.selected_id,
            }
            for el in self.elements
        ]
