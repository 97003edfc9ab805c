"""Step sequence model and builder.

A step groups at most two elements of different types that are revealed
together during one presentation beat. The sequence is the ordered list of
steps; an element id belongs to at most one step.
"""

import logging
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from .canvas import CanvasStore
from .elements import Element, is_interactive

logger = logging.getLogger("Wishcraft.core.sequence")

MAX_STEPS = 10
MAX_STEP_SIZE = 2


class StepSequence(BaseModel):
    """Ordered steps; wire form is ``list[list[str]]`` of element ids."""
    steps: list[list[str]] = Field(default_factory=list)

    @field_validator("steps")
    @classmethod
    def _check_steps(cls, steps: list[list[str]]) -> list[list[str]]:
        seen: set[str] = set()
        cleaned = []
        for step in steps:
            if not step:
                continue
            if len(step) > MAX_STEP_SIZE:
                raise ValueError(f"A step holds at most {MAX_STEP_SIZE} elements, got {len(step)}")
            for element_id in step:
                if element_id in seen:
                    raise ValueError(f"Element '{element_id}' appears in more than one step")
                seen.add(element_id)
            cleaned.append(list(step))
        return cleaned

    @property
    def is_configured(self) -> bool:
        return bool(self.steps)

    def referenced_ids(self) -> set[str]:
        return {element_id for step in self.steps for element_id in step}

    def step_index_of(self, element_id: str) -> Optional[int]:
        for index, step in enumerate(self.steps):
            if element_id in step:
                return index
        return None

    def purge(self, element_id: str) -> bool:
        """Drop ``element_id`` from every step and compact emptied steps."""
        if element_id not in self.referenced_ids():
            return False
        self.steps = [
            step for step in ([i for i in s if i != element_id] for s in self.steps) if step
        ]
        return True

    def to_wire(self) -> list[list[str]]:
        return [list(step) for step in self.steps]


class SequencePreset(BaseModel):
    """A canned ordering expressed in element types."""
    name: str
    description: str = ""
    steps: list[list[str]]
    required_elements: dict[str, int] = Field(default_factory=dict)


QUICK_SEQUENCE_PRESETS: list[SequencePreset] = [
    SequencePreset(
        name="Birthday Celebration",
        description="Perfect for birthday wishes",
        steps=[["beautiful-text"], ["balloons-interactive"]],
        required_elements={"beautiful-text": 1, "balloons-interactive": 1},
    ),
    SequencePreset(
        name="Romantic Surprise",
        description="Sweet and romantic sequence",
        steps=[["love-letter"], ["beautiful-text", "balloons-interactive"]],
        required_elements={"love-letter": 1, "beautiful-text": 1, "balloons-interactive": 1},
    ),
    SequencePreset(
        name="Celebration Flow",
        description="Dynamic celebration sequence",
        steps=[["beautiful-text", "music-player"], ["balloons-interactive"], ["confetti"]],
        required_elements={
            "beautiful-text": 1,
            "music-player": 1,
            "balloons-interactive": 1,
            "confetti": 1,
        },
    ),
]


class StepSequenceBuilder:
    """Mutates a StepSequence under the combination rules, against a canvas."""

    def __init__(self, canvas: CanvasStore, sequence: StepSequence):
        self.canvas = canvas
        self.sequence = sequence

    def can_combine(self, step: list[str], element_id: str) -> bool:
        if len(step) >= MAX_STEP_SIZE:
            return False
        if element_id in step:
            return False
        element = self.canvas.get(element_id)
        if element is None:
            return False
        existing_types = {
            el.element_type for el in (self.canvas.get(i) for i in step) if el is not None
        }
        return element.element_type not in existing_types

    def get_available_elements_for_steps(self) -> list[Element]:
        used = self.sequence.referenced_ids()
        return [el for el in self.canvas.elements if el.id not in used]

    def can_add_more_steps(self) -> bool:
        return (
            len(self.sequence.steps) < MAX_STEPS
            and bool(self.get_available_elements_for_steps())
        )

    def add_to_step_sequence(self, element_id: str) -> bool:
        """Merge into the tail step when compatible, else start a new step."""
        if not self.canvas.contains(element_id):
            logger.debug(f"Rejected sequencing unknown element '{element_id}'")
            return False
        if element_id in self.sequence.referenced_ids():
            logger.debug(f"Rejected sequencing '{element_id}': already in a step")
            return False

        steps = self.sequence.steps
        if steps and self.can_combine(steps[-1], element_id):
            self.sequence.steps = steps[:-1] + [steps[-1] + [element_id]]
            return True
        if len(steps) >= MAX_STEPS:
            logger.info(f"Rejected new step for '{element_id}': sequence is full ({MAX_STEPS})")
            return False
        self.sequence.steps = steps + [[element_id]]
        return True

    def remove_from_step_sequence(self, element_id: str) -> bool:
        return self.sequence.purge(element_id)

    def reorder_steps(self, from_index: int, to_index: int) -> bool:
        steps = list(self.sequence.steps)
        if not 0 <= from_index < len(steps):
            return False
        to_index = max(0, min(to_index, len(steps) - 1))
        if to_index == from_index:
            return False
        moved = steps.pop(from_index)
        steps.insert(to_index, moved)
        self.sequence.steps = steps
        return True

    def remove_step(self, index: int) -> bool:
        if not 0 <= index < len(self.sequence.steps):
            return False
        self.sequence.steps = [s for i, s in enumerate(self.sequence.steps) if i != index]
        return True

    def clear_step_sequence(self) -> bool:
        if not self.sequence.steps:
            return False
        self.sequence.steps = []
        return True

    def auto_generate_sequence(self) -> list[list[str]]:
        """One singleton step per interactive element, in canvas order."""
        interactive = [el for el in self.canvas.elements if is_interactive(el.element_type)]
        if len(interactive) > MAX_STEPS:
            logger.info(f"Auto-generated sequence truncated to {MAX_STEPS} steps")
        self.sequence.steps = [[el.id] for el in interactive[:MAX_STEPS]]
        return self.sequence.to_wire()

    def add_next_step(self) -> Optional[list[str]]:
        """Append the first unsequenced element as a singleton step."""
        if not self.can_add_more_steps():
            return None
        first = self.get_available_elements_for_steps()[0]
        self.sequence.steps = self.sequence.steps + [[first.id]]
        return [first.id]

    def available_presets(self, presets: Optional[list[SequencePreset]] = None) -> list[SequencePreset]:
        counts: dict[str, int] = {}
        for el in self.canvas.elements:
            counts[el.element_type] = counts.get(el.element_type, 0) + 1
        return [
            p for p in (presets if presets is not None else QUICK_SEQUENCE_PRESETS)
            if all(counts.get(t, 0) >= n for t, n in p.required_elements.items())
        ]

    def apply_preset(self, preset: SequencePreset) -> bool:
        """Replace the sequence, binding each type slot to an unused element of that type."""
        if preset not in self.available_presets([preset]):
            logger.info(f"Preset '{preset.name}' needs elements the canvas does not have")
            return False

        used: set[str] = set()
        new_steps: list[list[str]] = []
        for step_types in preset.steps:
            step: list[str] = []
            step_types_seen: set[str] = set()
            for element_type in step_types:
                if element_type in step_types_seen or len(step) >= MAX_STEP_SIZE:
                    continue
                candidate = next(
                    (el for el in self.canvas.instances_of(element_type) if el.id not in used),
                    None,
                )
                if candidate is None:
                    continue
                step.append(candidate.id)
                used.add(candidate.id)
                step_types_seen.add(element_type)
            if step:
                new_steps.append(step)

        self.sequence.steps = new_steps[:MAX_STEPS]
        return True
