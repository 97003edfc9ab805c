"""Tests for wishcraft.core.sequence — StepSequence, builder, presets."""

import pytest
from pydantic import ValidationError

from wishcraft.core.canvas import CanvasStore
from wishcraft.core.sequence import (
    MAX_STEPS,
    QUICK_SEQUENCE_PRESETS,
    SequencePreset,
    StepSequence,
    StepSequenceBuilder,
)


def _builder(*types: str) -> tuple[StepSequenceBuilder, list[str]]:
    canvas = CanvasStore()
    ids = [canvas.place(t).id for t in types]
    return StepSequenceBuilder(canvas, StepSequence()), ids


def _assert_invariants(builder: StepSequenceBuilder):
    seen = set()
    assert len(builder.sequence.steps) <= MAX_STEPS
    for step in builder.sequence.steps:
        assert 1 <= len(step) <= 2
        types = [builder.canvas.get(i).element_type for i in step]
        assert len(set(types)) == len(types)
        for element_id in step:
            assert element_id not in seen
            seen.add(element_id)


# ── StepSequence model ──────────────────────────────────────────────────

class TestStepSequence:
    def test_empty_steps_dropped(self):
        seq = StepSequence(steps=[["a"], [], ["b"]])
        assert seq.steps == [["a"], ["b"]]

    def test_oversized_step_rejected(self):
        with pytest.raises(ValidationError):
            StepSequence(steps=[["a", "b", "c"]])

    def test_duplicate_id_rejected(self):
        with pytest.raises(ValidationError):
            StepSequence(steps=[["a"], ["a"]])

    def test_purge_compacts(self):
        seq = StepSequence(steps=[["a"], ["b", "c"]])
        assert seq.purge("a")
        assert seq.steps == [["b", "c"]]
        assert seq.purge("b")
        assert seq.steps == [["c"]]
        assert not seq.purge("zzz")

    def test_step_index_of(self):
        seq = StepSequence(steps=[["a"], ["b", "c"]])
        assert seq.step_index_of("c") == 1
        assert seq.step_index_of("z") is None

    def test_is_configured(self):
        assert not StepSequence().is_configured
        assert StepSequence(steps=[["a"]]).is_configured


# ── Adding ──────────────────────────────────────────────────────────────

class TestAddToStepSequence:
    def test_same_type_goes_to_separate_steps(self):
        builder, (b1, b2) = _builder("balloons-interactive", "balloons-interactive")
        assert builder.add_to_step_sequence(b1)
        assert builder.add_to_step_sequence(b2)
        assert builder.sequence.steps == [[b1], [b2]]

    def test_different_types_merge_into_tail(self):
        builder, (b, t) = _builder("balloons-interactive", "beautiful-text")
        builder.add_to_step_sequence(b)
        builder.add_to_step_sequence(t)
        assert builder.sequence.steps == [[b, t]]

    def test_third_element_starts_new_step(self):
        builder, (b, t, c) = _builder("balloons-interactive", "beautiful-text", "confetti")
        for i in (b, t, c):
            builder.add_to_step_sequence(i)
        assert builder.sequence.steps == [[b, t], [c]]

    def test_only_tail_step_is_merge_target(self):
        builder, (t1, b, t2, c) = _builder(
            "beautiful-text", "balloons-interactive", "beautiful-text", "confetti")
        builder.add_to_step_sequence(t1)
        builder.add_to_step_sequence(b)
        builder.add_to_step_sequence(t2)
        builder.add_to_step_sequence(c)
        assert builder.sequence.steps == [[t1, b], [t2, c]]

    def test_duplicate_add_rejected(self):
        builder, (b,) = _builder("balloons-interactive")
        assert builder.add_to_step_sequence(b)
        assert not builder.add_to_step_sequence(b)
        assert builder.sequence.steps == [[b]]

    def test_unknown_id_rejected(self):
        builder, _ = _builder("confetti")
        assert not builder.add_to_step_sequence("ghost")
        assert builder.sequence.steps == []

    def test_step_limit(self):
        builder, ids = _builder(*["confetti"] * 11)
        for element_id in ids[:10]:
            assert builder.add_to_step_sequence(element_id)
        assert not builder.add_to_step_sequence(ids[10])
        assert len(builder.sequence.steps) == 10

    def test_full_sequence_still_merges_into_tail(self):
        builder, ids = _builder(*["confetti"] * 10, "beautiful-text")
        for element_id in ids[:10]:
            builder.add_to_step_sequence(element_id)
        assert builder.add_to_step_sequence(ids[10])
        assert builder.sequence.steps[-1] == [ids[9], ids[10]]

    def test_invariants_hold_for_mixed_adds(self):
        types = ["confetti", "beautiful-text", "confetti", "music-player",
                 "balloons-interactive", "balloons-interactive", "beautiful-text"]
        builder, ids = _builder(*types)
        for element_id in ids + ids:
            builder.add_to_step_sequence(element_id)
        _assert_invariants(builder)


# ── Removal & reorder ───────────────────────────────────────────────────

class TestRemoveAndReorder:
    def test_remove_leaves_partner(self):
        builder, (b, t) = _builder("balloons-interactive", "beautiful-text")
        builder.add_to_step_sequence(b)
        builder.add_to_step_sequence(t)
        assert builder.remove_from_step_sequence(b)
        assert builder.sequence.steps == [[t]]

    def test_remove_drops_empty_step(self):
        builder, (b, c) = _builder("balloons-interactive", "balloons-interactive")
        builder.add_to_step_sequence(b)
        builder.add_to_step_sequence(c)
        builder.remove_from_step_sequence(b)
        assert builder.sequence.steps == [[c]]

    def test_remove_is_idempotent(self):
        builder, (b,) = _builder("confetti")
        builder.add_to_step_sequence(b)
        assert builder.remove_from_step_sequence(b)
        assert not builder.remove_from_step_sequence(b)
        assert builder.sequence.steps == []

    def test_reorder(self):
        builder, ids = _builder("confetti", "confetti", "confetti")
        for i in ids:
            builder.add_to_step_sequence(i)
        assert builder.reorder_steps(0, 2)
        assert builder.sequence.steps == [[ids[1]], [ids[2]], [ids[0]]]

    def test_reorder_clamps_target(self):
        builder, ids = _builder("confetti", "confetti")
        for i in ids:
            builder.add_to_step_sequence(i)
        assert builder.reorder_steps(0, 99)
        assert builder.sequence.steps == [[ids[1]], [ids[0]]]

    def test_reorder_out_of_range_source(self):
        builder, ids = _builder("confetti")
        builder.add_to_step_sequence(ids[0])
        assert not builder.reorder_steps(5, 0)
        assert not builder.reorder_steps(0, 0)

    def test_reorder_preserves_multiset(self):
        builder, ids = _builder("confetti", "beautiful-text", "confetti", "music-player")
        for i in ids:
            builder.add_to_step_sequence(i)
        before = sorted(map(tuple, builder.sequence.steps))
        builder.reorder_steps(1, 0)
        assert sorted(map(tuple, builder.sequence.steps)) == before

    def test_remove_step(self):
        builder, ids = _builder("confetti", "confetti")
        for i in ids:
            builder.add_to_step_sequence(i)
        assert builder.remove_step(0)
        assert builder.sequence.steps == [[ids[1]]]
        assert not builder.remove_step(5)

    def test_clear(self):
        builder, ids = _builder("confetti")
        builder.add_to_step_sequence(ids[0])
        assert builder.clear_step_sequence()
        assert builder.sequence.steps == []
        assert not builder.clear_step_sequence()


# ── Generation helpers ──────────────────────────────────────────────────

class TestGeneration:
    def test_auto_generate_interactive_only(self):
        builder, (b, _letter, t, _quiz) = _builder(
            "balloons-interactive", "love-letter", "beautiful-text", "interactive-quiz")
        assert builder.auto_generate_sequence() == [[b], [t]]

    def test_auto_generate_three_interactive_two_decorative(self):
        builder, (b, _letter, t, _quiz, m) = _builder(
            "balloons-interactive", "love-letter", "beautiful-text",
            "interactive-quiz", "music-player")
        steps = builder.auto_generate_sequence()
        assert steps == [[b], [t], [m]]
        _assert_invariants(builder)
        assert builder.sequence.steps == steps

    def test_auto_generate_capped(self):
        builder, ids = _builder(*["confetti"] * 12)
        steps = builder.auto_generate_sequence()
        assert len(steps) == MAX_STEPS
        assert steps[0] == [ids[0]]

    def test_available_elements(self):
        builder, (a, b) = _builder("confetti", "music-player")
        builder.add_to_step_sequence(a)
        assert [e.id for e in builder.get_available_elements_for_steps()] == [b]

    def test_add_next_step(self):
        builder, (a, b) = _builder("confetti", "music-player")
        assert builder.add_next_step() == [a]
        assert builder.add_next_step() == [b]
        assert builder.add_next_step() is None
        assert builder.sequence.steps == [[a], [b]]

    def test_can_add_more_steps(self):
        builder, ids = _builder("confetti")
        assert builder.can_add_more_steps()
        builder.add_to_step_sequence(ids[0])
        assert not builder.can_add_more_steps()

    def test_can_combine(self):
        builder, (b, t, b2) = _builder("balloons-interactive", "beautiful-text", "balloons-interactive")
        assert builder.can_combine([b], t)
        assert not builder.can_combine([b], b2)
        assert not builder.can_combine([b, t], b2)
        assert not builder.can_combine([b], "ghost")


# ── Presets ─────────────────────────────────────────────────────────────

class TestPresets:
    def test_builtin_presets(self):
        names = {p.name for p in QUICK_SEQUENCE_PRESETS}
        assert names == {"Birthday Celebration", "Romantic Surprise", "Celebration Flow"}

    def test_available_presets_follow_canvas(self):
        builder, _ = _builder("beautiful-text", "balloons-interactive")
        assert [p.name for p in builder.available_presets()] == ["Birthday Celebration"]

    def test_apply_preset(self):
        builder, (t, b, m, c) = _builder(
            "beautiful-text", "balloons-interactive", "music-player", "confetti")
        flow = next(p for p in QUICK_SEQUENCE_PRESETS if p.name == "Celebration Flow")
        assert builder.apply_preset(flow)
        assert builder.sequence.steps == [[t, m], [b], [c]]
        _assert_invariants(builder)

    def test_apply_unavailable_preset(self):
        builder, _ = _builder("confetti")
        preset = SequencePreset(name="x", steps=[["love-letter"]],
                                required_elements={"love-letter": 1})
        assert not builder.apply_preset(preset)
        assert builder.sequence.steps == []
