"""Serialized composition (a "wish") and persistence results."""

import uuid
from datetime import datetime, timezone
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from .elements import Element
from .sequence import StepSequence


def _now() -> datetime:
    return datetime.now(timezone.utc)


class WishComposition(BaseModel):
    """Everything needed to replay a wish.

    Wire form::

        {"elements": [...], "stepSequence": [["id1"], ["id2", "id3"]],
         "recipientName": ..., "message": ..., ...}
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    recipient_name: str = ""
    message: str = ""
    theme: str = "purple"
    occasion: str = ""
    custom_background_color: Optional[str] = None
    template_id: Optional[str] = None
    is_public: bool = True
    elements: list[Element] = Field(default_factory=list)
    step_sequence: list[list[str]] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    @model_validator(mode="after")
    def _check_references(self):
        ids = [el.id for el in self.elements]
        if len(set(ids)) != len(ids):
            raise ValueError("Element ids must be unique")
        StepSequence(steps=self.step_sequence)
        types = {el.id: el.element_type for el in self.elements}
        for step in self.step_sequence:
            step_types = [types[i] for i in step if i in types]
            if len(set(step_types)) != len(step_types):
                raise ValueError(f"Step {step} holds two elements of the same type")
        return self

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class PersistenceResult(BaseModel):
    """Outcome of a save/load/delete; failures are values, not exceptions."""
    success: bool
    data: Any = None
    error: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None, message: Optional[str] = None) -> "PersistenceResult":
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, error: str) -> "PersistenceResult":
        return cls(success=False, error=error)
