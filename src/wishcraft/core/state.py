"""Authoring session state — the single owner of canvas, sequence and gate.

Every mutation goes through a named command, records an undo snapshot and
notifies listeners once the new state is in place. Rejected commands leave
state untouched and emit nothing.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional
from pydantic import BaseModel, Field, PrivateAttr

from .canvas import CanvasStore
from .composition import PersistenceResult, WishComposition
from .elements import Element
from .events import EngineEvent, Listener, ListenerRegistry
from .playback import PlaybackEngine, Scheduler
from .restricted import RestrictedModeGate
from .sequence import SequencePreset, StepSequence, StepSequenceBuilder
from .templates import WishTemplate, instantiate_template
from .workspace import Workspace

logger = logging.getLogger("Wishcraft.core.session")

MAX_UNDO = 50

SessionEvent = EngineEvent

COMMANDS = (
    "add_element",
    "update_element_properties",
    "delete_element",
    "select_element",
    "unselect_element",
    "focus_element",
    "add_to_step_sequence",
    "remove_from_step_sequence",
    "reorder_steps",
    "remove_step",
    "clear_step_sequence",
    "auto_generate_sequence",
    "add_next_step",
    "apply_preset",
    "undo",
)


class WishMetadata(BaseModel):
    """Recipient-facing fields saved alongside the composition."""
    recipient_name: str = ""
    message: str = ""
    theme: str = "purple"
    occasion: str = ""
    custom_background_color: Optional[str] = None
    is_public: bool = True


class _Snapshot(BaseModel):
    canvas: CanvasStore
    sequence: StepSequence


class UndoEntry(BaseModel):
    """A snapshot of canvas and sequence for undo."""
    description: str
    snapshot_json: str


class AuthoringSession(BaseModel):
    """State container for one wish being authored."""
    wish_id: Optional[str] = None
    template_id: Optional[str] = None
    canvas: CanvasStore = Field(default_factory=CanvasStore)
    sequence: StepSequence = Field(default_factory=StepSequence)
    gate: RestrictedModeGate = Field(default_factory=RestrictedModeGate.inactive)
    metadata: WishMetadata = Field(default_factory=WishMetadata)
    created_at: Optional[datetime] = None
    workspace: Optional[Workspace] = None
    published: bool = False
    undo_stack: list[UndoEntry] = Field(default_factory=list)

    model_config = {"arbitrary_types_allowed": True}

    _listeners: ListenerRegistry = PrivateAttr(default_factory=ListenerRegistry)

    # ── Hydration ───────────────────────────────────────────────────────

    @classmethod
    def from_template(cls, template: WishTemplate, template_mode: bool = True,
                      workspace: Optional[Workspace] = None) -> "AuthoringSession":
        """Build a session in one step; restricted unless the template is blank."""
        elements, steps = instantiate_template(template)
        canvas = CanvasStore(elements=elements)
        restricted = template_mode and not template.is_blank
        gate = RestrictedModeGate.inactive()
        if restricted:
            gate = RestrictedModeGate.from_template_elements(elements)
            canvas.selection_ids = [el.id for el in elements]
        logger.info(
            f"Session from template '{template.id}': {len(elements)} elements, "
            f"{len(steps)} steps, restricted={restricted}"
        )
        return cls(
            template_id=template.id,
            canvas=canvas,
            sequence=StepSequence(steps=steps),
            gate=gate,
            metadata=WishMetadata(occasion=template.occasion),
            workspace=workspace,
        )

    @classmethod
    def from_composition(cls, composition: WishComposition,
                         workspace: Optional[Workspace] = None) -> "AuthoringSession":
        """Reopen a saved wish for editing.

        Dangling step references are dropped, as is the second member of a
        step that repeats an element type.
        """
        canvas = CanvasStore(elements=[el.model_copy(deep=True) for el in composition.elements])
        sequence = StepSequence(steps=composition.step_sequence)
        for element_id in sorted(sequence.referenced_ids()):
            if not canvas.contains(element_id):
                logger.warning(f"Wish {composition.id}: dropping dangling step reference '{element_id}'")
                sequence.purge(element_id)
        for step in sequence.to_wire():
            step_types = set()
            for element_id in step:
                element_type = canvas.get(element_id).element_type
                if element_type in step_types:
                    logger.warning(f"Wish {composition.id}: dropping '{element_id}', "
                                   f"its step already holds a {element_type}")
                    sequence.purge(element_id)
                step_types.add(element_type)
        return cls(
            wish_id=composition.id,
            template_id=composition.template_id,
            canvas=canvas,
            sequence=sequence,
            metadata=WishMetadata(
                recipient_name=composition.recipient_name,
                message=composition.message,
                theme=composition.theme,
                occasion=composition.occasion,
                custom_background_color=composition.custom_background_color,
                is_public=composition.is_public,
            ),
            created_at=composition.created_at,
            workspace=workspace,
        )

    # ── Introspection ───────────────────────────────────────────────────

    @property
    def is_restricted(self) -> bool:
        return self.gate.active

    @property
    def builder(self) -> StepSequenceBuilder:
        return StepSequenceBuilder(self.canvas, self.sequence)

    @property
    def elements(self) -> list[Element]:
        return self.canvas.elements

    @property
    def steps(self) -> list[list[str]]:
        return self.sequence.to_wire()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self._listeners.subscribe(listener)

    # ── Commands ────────────────────────────────────────────────────────

    def dispatch(self, command: str, **params: Any) -> Any:
        """Run a named command; unknown names raise ValueError."""
        if command not in COMMANDS:
            raise ValueError(f"Unknown command: {command!r}")
        return getattr(self, command)(**params)

    def add_element(self, element_type: str) -> Optional[Element]:
        """Place a new element, or in restricted mode select/restore the template slot."""
        if self.gate.active:
            return self._restricted_select(element_type)
        snapshot = self._snapshot_json()
        element = self.canvas.place(element_type)
        if element is None:
            return None
        self.canvas.selection_ids.append(element.id)
        self._commit(f"Add {element_type}", snapshot, "element_added",
                     element_id=element.id, element_type=element_type)
        return element

    def select_element(self, element_type: str) -> Optional[Element]:
        return self.add_element(element_type)

    def unselect_element(self, key: str) -> bool:
        """Remove an instance. ``key`` is an element id, or a type (latest instance)."""
        if self.gate.active:
            element_id = self.gate.resolve_unselect(self.canvas, key)
        elif self.canvas.contains(key):
            element_id = key
        else:
            latest = self.canvas.latest_instance_of(key)
            element_id = latest.id if latest else None
        if element_id is None:
            logger.debug(f"Unselect '{key}': nothing to remove")
            return False
        return self.delete_element(element_id)

    def update_element_properties(self, element_id: str, properties: Any) -> Optional[Element]:
        snapshot = self._snapshot_json()
        updated = self.canvas.update_properties(element_id, properties)
        if updated is None:
            return None
        self._commit(f"Update {element_id}", snapshot, "element_updated", element_id=element_id)
        return updated

    def delete_element(self, element_id: str) -> bool:
        """Remove an element and purge it from the step sequence."""
        snapshot = self._snapshot_json()
        removed = self.canvas.remove(element_id)
        if removed is None:
            logger.debug(f"Delete '{element_id}': no such element")
            return False
        self.sequence.purge(element_id)
        self._commit(f"Delete {element_id}", snapshot, "element_deleted",
                     element_id=element_id, element_type=removed.element_type)
        return True

    def focus_element(self, element_id: Optional[str] = None) -> bool:
        if element_id is not None and not self.canvas.contains(element_id):
            return False
        self.canvas.focus(element_id)
        self._listeners.emit("selection_changed", selected_id=self.canvas.selected_id)
        return True

    def add_to_step_sequence(self, element_id: str) -> bool:
        return self._sequence_command(
            f"Sequence {element_id}", lambda b: b.add_to_step_sequence(element_id))

    def remove_from_step_sequence(self, element_id: str) -> bool:
        return self._sequence_command(
            f"Unsequence {element_id}", lambda b: b.remove_from_step_sequence(element_id))

    def reorder_steps(self, from_index: int, to_index: int) -> bool:
        return self._sequence_command(
            f"Move step {from_index} to {to_index}", lambda b: b.reorder_steps(from_index, to_index))

    def remove_step(self, index: int) -> bool:
        return self._sequence_command(f"Remove step {index}", lambda b: b.remove_step(index))

    def clear_step_sequence(self) -> bool:
        return self._sequence_command("Clear sequence", lambda b: b.clear_step_sequence())

    def auto_generate_sequence(self) -> list[list[str]]:
        before = self.sequence.to_wire()
        snapshot = self._snapshot_json()
        steps = self.builder.auto_generate_sequence()
        if steps != before:
            self._commit("Auto-generate sequence", snapshot, "sequence_changed", steps=steps)
        return steps

    def add_next_step(self) -> Optional[list[str]]:
        snapshot = self._snapshot_json()
        step = self.builder.add_next_step()
        if step is not None:
            self._commit("Add next step", snapshot, "sequence_changed", steps=self.steps)
        return step

    def apply_preset(self, preset: SequencePreset) -> bool:
        return self._sequence_command(f"Apply preset {preset.name}", lambda b: b.apply_preset(preset))

    def _sequence_command(self, description: str,
                          operation: Callable[[StepSequenceBuilder], bool]) -> bool:
        snapshot = self._snapshot_json()
        if not operation(self.builder):
            return False
        self._commit(description, snapshot, "sequence_changed", steps=self.steps)
        return True

    def _restricted_select(self, element_type: str) -> Optional[Element]:
        snapshot = self._snapshot_json()
        restored = not self.canvas.instances_of(element_type)
        element = self.gate.select(self.canvas, element_type)
        if element is None:
            return None
        if restored:
            self._commit(f"Restore {element_type}", snapshot, "element_added",
                         element_id=element.id, element_type=element_type)
        else:
            self._listeners.emit("selection_changed", selected_id=element.id)
        return element

    # ── Undo ────────────────────────────────────────────────────────────

    def _snapshot_json(self) -> str:
        return _Snapshot(canvas=self.canvas, sequence=self.sequence).model_dump_json(by_alias=True)

    def _push_undo(self, description: str, snapshot_json: str):
        self.undo_stack.append(UndoEntry(description=description, snapshot_json=snapshot_json))
        if len(self.undo_stack) > MAX_UNDO:
            self.undo_stack = self.undo_stack[-MAX_UNDO:]

    def checkpoint(self, description: str):
        """Save the current canvas and sequence to the undo stack."""
        self._push_undo(description, self._snapshot_json())

    def undo(self) -> Optional[str]:
        """Revert to the last checkpoint. Returns description of what was undone."""
        if not self.undo_stack:
            return None
        entry = self.undo_stack.pop()
        snapshot = _Snapshot.model_validate_json(entry.snapshot_json)
        self.canvas = snapshot.canvas
        self.sequence = snapshot.sequence
        self.auto_save()
        self._listeners.emit("undone", description=entry.description)
        return entry.description

    def _commit(self, description: str, snapshot_json: str, event: str, **payload: Any):
        self._push_undo(description, snapshot_json)
        self.auto_save()
        self._listeners.emit(event, **payload)

    # ── Metadata & persistence ──────────────────────────────────────────

    def set_metadata(self, **fields: Any) -> WishMetadata:
        self.metadata = WishMetadata.model_validate({**self.metadata.model_dump(), **fields})
        self._listeners.emit("metadata_changed", **fields)
        return self.metadata

    def validate_for_save(self) -> list[str]:
        """Problems that block saving; empty when the wish can be saved."""
        problems = []
        if not self.canvas.elements:
            problems.append("Add at least one element to your wish")
        if not self.metadata.recipient_name.strip():
            problems.append("Recipient name is required")
        return problems

    def to_composition(self) -> WishComposition:
        now = datetime.now(timezone.utc)
        fields = dict(
            recipient_name=self.metadata.recipient_name,
            message=self.metadata.message,
            theme=self.metadata.theme,
            occasion=self.metadata.occasion,
            custom_background_color=self.metadata.custom_background_color,
            is_public=self.metadata.is_public,
            template_id=self.template_id,
            elements=[el.model_copy(deep=True) for el in self.canvas.elements],
            step_sequence=self.sequence.to_wire(),
            created_at=self.created_at or now,
            updated_at=now,
        )
        if self.wish_id:
            fields["id"] = self.wish_id
        return WishComposition(**fields)

    def save(self) -> PersistenceResult:
        problems = self.validate_for_save()
        if problems:
            return PersistenceResult.fail("; ".join(problems))
        if not self.workspace:
            return PersistenceResult.fail("No workspace attached")
        composition = self.to_composition()
        result = self.workspace.save_wish(composition)
        if result.success:
            self.wish_id = composition.id
            self.created_at = composition.created_at
        return result

    def publish(self, store) -> PersistenceResult:
        """Send the wish to a remote store; later calls update the same remote wish."""
        problems = self.validate_for_save()
        if problems:
            return PersistenceResult.fail("; ".join(problems))
        composition = self.to_composition()
        result = store.save_wish(composition, create=not self.published)
        if result.success:
            self.wish_id = composition.id
            self.created_at = composition.created_at
            self.published = True
        return result

    def auto_save(self):
        """Save current state to workspace if available."""
        if not self.workspace or not self.canvas.elements:
            return
        composition = self.to_composition()
        result = self.workspace.save_wish(composition)
        if result.success:
            self.wish_id = composition.id
            self.created_at = composition.created_at
        else:
            logger.warning(f"Auto-save failed: {result.error}")

    # ── Playback ────────────────────────────────────────────────────────

    def start_playback(self, scheduler: Optional[Scheduler] = None,
                       auto_play: bool = False, **kwargs: Any) -> PlaybackEngine:
        """Hand a snapshot of the composition to a fresh, started engine."""
        engine = PlaybackEngine.for_elements(
            self.canvas.elements, self.sequence.to_wire(),
            scheduler=scheduler, auto_play=auto_play, **kwargs,
        )
        engine.start()
        return engine
