"""Wish templates — reusable element palettes with a default reveal order."""

import logging
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .elements import Element, get_element_definition
from .sequence import MAX_STEP_SIZE, MAX_STEPS

logger = logging.getLogger("Wishcraft.core.templates")

BLANK_TEMPLATE_ID = "custom-blank"


class WishTemplate(BaseModel):
    """A template stores element *types*, never instances.

    ``default_element_ids`` lists one catalog type id per element to create.
    ``step_sequence`` refers to those entries by type id; older templates may
    still hold instance ids of the form ``<type>_<suffix>``.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    description: str = ""
    occasion: str = "custom"
    difficulty: Literal["easy", "medium", "hard", "expert"] = "easy"
    color: str = ""
    default_element_ids: list[str] = Field(default_factory=list)
    step_sequence: list[list[str]] = Field(default_factory=list)
    is_public: bool = True

    @property
    def is_blank(self) -> bool:
        return self.id == BLANK_TEMPLATE_ID


class TemplateLibrary(BaseModel):
    """Collection of wish templates with CRUD operations."""
    templates: dict[str, WishTemplate] = Field(default_factory=dict)

    @classmethod
    def with_builtins(cls) -> "TemplateLibrary":
        return cls(templates={t.id: t.model_copy(deep=True) for t in BUILTIN_TEMPLATES})

    def get(self, template_id: str) -> Optional[WishTemplate]:
        return self.templates.get(template_id)

    def add(self, template: WishTemplate) -> WishTemplate:
        self.templates[template.id] = template
        return template

    def remove(self, template_id: str) -> bool:
        if template_id in self.templates:
            del self.templates[template_id]
            return True
        return False

    def by_occasion(self, occasion: str) -> list[WishTemplate]:
        if occasion == "all":
            return list(self.templates.values())
        return [t for t in self.templates.values() if t.occasion == occasion]

    def list_templates(self) -> list[dict]:
        return [
            {
                "id": t.id,
                "name": t.name,
                "description": t.description,
                "occasion": t.occasion,
                "difficulty": t.difficulty,
                "element_count": len(t.default_element_ids),
                "step_count": len(t.step_sequence),
            }
            for t in self.templates.values()
        ]


BUILTIN_TEMPLATES: list[WishTemplate] = [
    WishTemplate(
        id="birthday-balloons",
        name="Birthday Balloons",
        description="A greeting followed by a sky of balloons to pop",
        occasion="birthday",
        difficulty="easy",
        color="#FF6B9D",
        default_element_ids=["beautiful-text", "balloons-interactive", "confetti"],
        step_sequence=[["beautiful-text"], ["balloons-interactive"], ["confetti"]],
    ),
    WishTemplate(
        id="romantic-letter",
        name="Romantic Letter",
        description="A sealed love letter, then a sweet message with balloons",
        occasion="valentine",
        difficulty="medium",
        color="#E91E63",
        default_element_ids=["love-letter", "beautiful-text", "balloons-interactive"],
        step_sequence=[["love-letter"], ["beautiful-text", "balloons-interactive"]],
    ),
    WishTemplate(
        id="celebration",
        name="Celebration",
        description="Music, a message, balloons and a confetti finale",
        occasion="celebration",
        difficulty="medium",
        color="#4ECDC4",
        default_element_ids=["beautiful-text", "music-player", "balloons-interactive", "confetti"],
        step_sequence=[["beautiful-text", "music-player"], ["balloons-interactive"], ["confetti"]],
    ),
    WishTemplate(
        id=BLANK_TEMPLATE_ID,
        name="Blank Canvas",
        description="Start from scratch with any element",
        occasion="custom",
        difficulty="easy",
    ),
]


def _type_of_reference(ref: str) -> Optional[str]:
    if get_element_definition(ref) is not None:
        return ref
    if "_" in ref:
        prefix = ref.rsplit("_", 1)[0]
        if get_element_definition(prefix) is not None:
            return prefix
    return None


def instantiate_template(template: WishTemplate) -> tuple[list[Element], list[list[str]]]:
    """Expand a template into fresh elements and a step sequence over their ids.

    Step references resolve against the default entries: exact entry match
    first, then by element type (bare type id or legacy ``<type>_<suffix>``).
    References that resolve to nothing are dropped; the result respects the
    step size, per-step type uniqueness and step count limits.
    """
    entries: list[tuple[str, Element]] = []
    for entry in template.default_element_ids:
        element_type = _type_of_reference(entry)
        if element_type is None:
            logger.warning(f"Template '{template.id}': skipping unknown element type '{entry}'")
            continue
        element = Element.create(element_type, order=len(entries))
        while any(element.id == el.id for _, el in entries):
            element = Element.create(element_type, order=len(entries))
        entries.append((entry, element))

    used: set[str] = set()

    def resolve(ref: str) -> Optional[Element]:
        for entry, element in entries:
            if entry == ref and element.id not in used:
                return element
        element_type = _type_of_reference(ref)
        if element_type is None:
            return None
        for _, element in entries:
            if element.element_type == element_type and element.id not in used:
                return element
        return None

    steps: list[list[str]] = []
    for raw_step in template.step_sequence:
        step: list[str] = []
        step_types: set[str] = set()
        for ref in raw_step:
            element = resolve(ref)
            if element is None:
                logger.debug(f"Template '{template.id}': unresolved step reference '{ref}'")
                continue
            if element.element_type in step_types or len(step) >= MAX_STEP_SIZE:
                continue
            step.append(element.id)
            step_types.add(element.element_type)
            used.add(element.id)
        if step:
            steps.append(step)

    if len(steps) > MAX_STEPS:
        logger.info(f"Template '{template.id}': sequence truncated to {MAX_STEPS} steps")
        steps = steps[:MAX_STEPS]
    return [element for _, element in entries], steps


def template_from_session(template_id: str, name: str, elements: list[Element],
                          steps: list[list[str]], **metadata) -> WishTemplate:
    """Build a template from authored elements, converting instance ids to type ids."""
    types_by_id = {el.id: el.element_type for el in elements}
    return WishTemplate(
        id=template_id,
        name=name,
        default_element_ids=[el.element_type for el in sorted(elements, key=lambda e: e.order)],
        step_sequence=[[types_by_id.get(i, i) for i in step] for step in steps],
        **metadata,
    )
