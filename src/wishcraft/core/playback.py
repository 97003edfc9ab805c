"""Playback engine — drives which elements are visible during a presentation.

States: IDLE -> PLAYING -> FINISHED. Steps advance on a completion signal
from a visible element, on manual navigation, or on the auto-play timer.
"""

import asyncio
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Protocol

from .canvas import CanvasStore
from .elements import Element, is_interactive
from .events import ListenerRegistry, Listener
from .sequence import StepSequence

logger = logging.getLogger("Wishcraft.core.playback")

AUTO_PLAY_DELAY = float(os.getenv("WISHCRAFT_AUTOPLAY_DELAY", "3.0"))  # seconds per step


class PlaybackStatus(str, Enum):
    IDLE = "idle"
    PLAYING = "playing"
    FINISHED = "finished"


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioScheduler:
    """Schedules callbacks on the running asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        """Raises RuntimeError when no loop was given and none is running."""
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


@dataclass
class PlaybackState:
    """Ephemeral presentation state; never persisted."""
    current_step_index: int = 0
    completed_element_ids: set[str] = field(default_factory=set)
    is_playing: bool = False
    auto_play: bool = False
    status: PlaybackStatus = PlaybackStatus.IDLE


class MultiTargetCompletion:
    """Renderer-side helper for elements with several sub-targets.

    Calls ``on_complete(element_id)`` exactly once, when the last target
    resolves (every balloon popped, every tile placed). A single-activation
    element is simply ``target_count=1``.
    """

    def __init__(self, element_id: str, target_count: int,
                 on_complete: Callable[[str], object]):
        if target_count < 1:
            raise ValueError("target_count must be at least 1")
        self.element_id = element_id
        self.target_count = target_count
        self._on_complete = on_complete
        self._resolved: set[int] = set()
        self._fired = False

    @property
    def remaining(self) -> int:
        return self.target_count - len(self._resolved)

    @property
    def is_complete(self) -> bool:
        return self._fired

    def resolve(self, target: int = 0) -> bool:
        """Mark ``target`` resolved. True when this call completed the element."""
        if self._fired or not 0 <= target < self.target_count:
            return False
        self._resolved.add(target)
        if len(self._resolved) < self.target_count:
            return False
        self._fired = True
        self._on_complete(self.element_id)
        return True


class PlaybackEngine:
    """Steps through a composition's sequence.

    Reads the canvas and sequence at call time, so ids deleted after the
    engine was created are skipped rather than raising. When no sequence is
    configured every interactive element becomes its own step, in canvas
    order.
    """

    def __init__(self, canvas: CanvasStore, sequence: StepSequence,
                 scheduler: Optional[Scheduler] = None,
                 auto_play_delay: float = AUTO_PLAY_DELAY,
                 auto_play: bool = False):
        self.canvas = canvas
        self.sequence = sequence
        self.state = PlaybackState(auto_play=auto_play)
        self.auto_play_delay = auto_play_delay
        self._scheduler = scheduler or AsyncioScheduler()
        self._timer: Optional[TimerHandle] = None
        self._timer_generation = 0
        self._listeners = ListenerRegistry()

    @classmethod
    def for_elements(cls, elements: list[Element], steps: list[list[str]],
                     **kwargs) -> "PlaybackEngine":
        canvas = CanvasStore(elements=[el.model_copy(deep=True) for el in elements])
        return cls(canvas, StepSequence(steps=steps), **kwargs)

    # ── Introspection ───────────────────────────────────────────────────

    @property
    def status(self) -> PlaybackStatus:
        return self.state.status

    @property
    def current_step_index(self) -> int:
        return self.state.current_step_index

    @property
    def completed_element_ids(self) -> frozenset[str]:
        return frozenset(self.state.completed_element_ids)

    def effective_steps(self) -> list[list[str]]:
        if self.sequence.is_configured:
            return self.sequence.to_wire()
        return [[el.id] for el in self.canvas.elements if is_interactive(el.element_type)]

    @property
    def step_count(self) -> int:
        return len(self.effective_steps())

    @property
    def is_last_step(self) -> bool:
        return self.state.current_step_index == self.step_count - 1

    @property
    def has_more_steps(self) -> bool:
        return self.state.current_step_index < self.step_count - 1

    @property
    def progress(self) -> float:
        total = self.step_count
        if self.state.status == PlaybackStatus.FINISHED:
            return 1.0
        if total == 0:
            return 0.0
        return (self.state.current_step_index + 1) / total

    def current_step_ids(self) -> list[str]:
        steps = self.effective_steps()
        index = self.state.current_step_index
        if 0 <= index < len(steps):
            return list(steps[index])
        return []

    def get_visible_elements(self) -> list[Element]:
        """Canvas elements of the current step; dangling ids are skipped."""
        ids = set(self.current_step_ids())
        return [el for el in self.canvas.elements if el.id in ids]

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self._listeners.subscribe(listener)

    # ── Transitions ─────────────────────────────────────────────────────

    def start(self):
        self._cancel_timer()
        auto_play = self.state.auto_play
        self.state = PlaybackState(auto_play=auto_play, is_playing=auto_play)
        if self.step_count == 0:
            self._finish()
            return
        self.state.status = PlaybackStatus.PLAYING
        logger.info(f"Playback started with {self.step_count} steps")
        self._listeners.emit("started", step_count=self.step_count)
        self._schedule()

    def advance(self) -> bool:
        """Move to the next step, or finish after the last one."""
        if self.state.status != PlaybackStatus.PLAYING:
            return False
        if self.has_more_steps:
            self.state.current_step_index += 1
            self._listeners.emit("advanced", step_index=self.state.current_step_index)
            self._schedule()
        else:
            self._finish()
        return True

    def complete_element(self, element_id: str) -> bool:
        """Completion signal from a renderer. Only visible elements count."""
        if self.state.status != PlaybackStatus.PLAYING:
            return False
        if element_id not in self.current_step_ids():
            logger.debug(f"Ignoring completion of '{element_id}': not in the current step")
            return False
        if element_id in self.state.completed_element_ids:
            return False
        self.state.completed_element_ids.add(element_id)
        self._listeners.emit("element_completed", element_id=element_id)
        return self.advance()

    def next(self) -> bool:
        return self._navigate(self.state.current_step_index + 1)

    def previous(self) -> bool:
        return self._navigate(self.state.current_step_index - 1)

    def go_to(self, index: int) -> bool:
        return self._navigate(index)

    def _navigate(self, target: int) -> bool:
        total = self.step_count
        if self.state.status == PlaybackStatus.IDLE or total == 0:
            return False
        target = max(0, min(target, total - 1))
        if target == self.state.current_step_index and self.state.status == PlaybackStatus.PLAYING:
            return False
        self.state.current_step_index = target
        self.state.status = PlaybackStatus.PLAYING
        self._listeners.emit("navigated", step_index=target)
        self._schedule()
        return True

    def _finish(self):
        self._cancel_timer()
        self.state.status = PlaybackStatus.FINISHED
        self.state.current_step_index = self.step_count
        self.state.is_playing = False
        logger.info("Playback finished")
        self._listeners.emit("finished")

    # ── Auto-play ───────────────────────────────────────────────────────

    def set_auto_play(self, enabled: bool) -> bool:
        """Turn auto-play on or off. False when no timer could be scheduled."""
        self.state.auto_play = enabled
        self.state.is_playing = enabled
        if enabled:
            self._schedule()
        else:
            self._cancel_timer()
        self._listeners.emit("auto_play_changed", auto_play=self.state.auto_play)
        return self.state.auto_play == enabled

    def play(self) -> bool:
        if self.state.status != PlaybackStatus.PLAYING:
            return False
        self.state.is_playing = True
        self._schedule()
        return self.state.is_playing

    def pause(self):
        self.state.is_playing = False
        self._cancel_timer()

    def toggle_play(self) -> bool:
        if self.state.is_playing:
            self.pause()
            return False
        return self.play()

    def stop(self):
        """Discard presentation state and return to IDLE."""
        self._cancel_timer()
        self.state = PlaybackState(auto_play=self.state.auto_play)
        self._listeners.emit("stopped")

    def reset(self):
        """Restart from the first step."""
        self.start()

    def close(self):
        """Tear down: cancel the timer and drop listeners."""
        self._cancel_timer()
        self.state = PlaybackState()
        self._listeners.clear()

    def _schedule(self):
        self._cancel_timer()
        if not (self.state.is_playing and self.state.status == PlaybackStatus.PLAYING):
            return
        generation = self._timer_generation
        try:
            self._timer = self._scheduler.call_later(
                self.auto_play_delay, lambda: self._on_timer(generation)
            )
        except RuntimeError as e:
            logger.warning(f"Auto-play disabled, cannot schedule timer: {e}")
            self.state.auto_play = False
            self.state.is_playing = False

    def _cancel_timer(self):
        self._timer_generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self, generation: int):
        if generation != self._timer_generation:
            return
        self._timer = None
        if self.state.is_playing and self.state.status == PlaybackStatus.PLAYING:
            self.advance()
