"""Tests for wishcraft.core.workspace — Workspace and local wish files."""

import json
import pytest
from pathlib import Path
from unittest.mock import patch

from wishcraft.core.composition import WishComposition
from wishcraft.core.elements import Element
from wishcraft.core.workspace import Workspace


@pytest.fixture
def ws(tmp_path) -> Workspace:
    return Workspace(project_name="birthday", root_path=tmp_path / "birthday").initialize()


def _wish(**kwargs) -> WishComposition:
    balloons = Element.create("balloons-interactive", {"balloonImage1": "b.png"}, element_id="b1")
    text = Element.create("beautiful-text", {"title": "Hi"}, element_id="t1", order=1)
    return WishComposition(
        recipient_name="Sarah",
        elements=[balloons, text],
        step_sequence=[["t1"], ["b1"]],
        **kwargs,
    )


# ── Workspace structure ─────────────────────────────────────────────────

class TestWorkspaceInit:
    def test_initialize_creates_dirs(self, ws):
        assert ws.wishes_dir.is_dir()
        assert ws.manifest_path.exists()

    def test_manifest_content(self, ws):
        data = json.loads(ws.manifest_path.read_text())
        assert data["project_name"] == "birthday"
        assert data["wishes"] == []

    def test_load(self, ws):
        loaded = Workspace.load(ws.root_path)
        assert loaded.project_name == "birthday"
        assert loaded.root_path == ws.root_path

    def test_load_missing_manifest(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Workspace.load(tmp_path / "nowhere")

    def test_in_projects_dir(self):
        ws = Workspace.in_projects_dir("demo")
        assert ws.root_path.name == "demo"
        assert isinstance(ws.root_path, Path)


# ── Wish persistence ────────────────────────────────────────────────────

class TestWishFiles:
    def test_save_and_load(self, ws):
        wish = _wish()
        result = ws.save_wish(wish)
        assert result.success
        assert result.data == {"id": wish.id}

        loaded = ws.load_wish(wish.id)
        assert loaded.success
        assert loaded.data.recipient_name == "Sarah"
        assert loaded.data.step_sequence == [["t1"], ["b1"]]
        assert loaded.data.elements[0].properties.balloon_images == [None, "b.png"]

    def test_file_uses_wire_keys(self, ws):
        wish = _wish()
        ws.save_wish(wish)
        data = json.loads(ws.wish_path(wish.id).read_text())
        assert data["recipientName"] == "Sarah"
        assert data["stepSequence"] == [["t1"], ["b1"]]
        assert data["elements"][0]["properties"]["balloonImage1"] == "b.png"

    def test_manifest_lists_wishes(self, ws):
        wish = _wish()
        ws.save_wish(wish)
        data = json.loads(ws.manifest_path.read_text())
        assert data["wishes"] == [wish.id]

    def test_load_missing(self, ws):
        result = ws.load_wish("nope")
        assert not result.success
        assert "not found" in result.error

    def test_load_corrupt(self, ws):
        ws.wish_path("bad").write_text("{not json")
        result = ws.load_wish("bad")
        assert not result.success

    def test_list_wishes_skips_corrupt(self, ws):
        wish = _wish()
        ws.save_wish(wish)
        ws.wish_path("bad").write_text("[]")
        summaries = ws.list_wishes()
        assert [s["id"] for s in summaries] == [wish.id]
        assert summaries[0]["element_count"] == 2
        assert summaries[0]["step_count"] == 2

    def test_delete(self, ws):
        wish = _wish()
        ws.save_wish(wish)
        assert ws.delete_wish(wish.id).success
        assert not ws.wish_path(wish.id).exists()
        assert not ws.delete_wish(wish.id).success

    def test_delete_io_error_returned(self, ws):
        wish = _wish()
        ws.save_wish(wish)
        with patch.object(Path, "unlink", side_effect=OSError("busy")):
            result = ws.delete_wish(wish.id)
        assert not result.success
        assert "busy" in result.error
        assert ws.wish_path(wish.id).exists()

    @pytest.mark.parametrize("wish_id", ["../outside", "a/b", "..", ""])
    def test_ids_with_path_parts_rejected(self, ws, wish_id):
        with pytest.raises(ValueError):
            ws.wish_path(wish_id)
        assert not ws.load_wish(wish_id).success
        assert not ws.delete_wish(wish_id).success

    def test_load_rejects_same_type_step(self, ws):
        wire = _wish().to_wire()
        wire["elements"][1]["elementType"] = "balloons-interactive"
        wire["elements"][1]["properties"] = {}
        wire["stepSequence"] = [["b1", "t1"]]
        ws.wish_path("dup").write_text(json.dumps(wire))
        result = ws.load_wish("dup")
        assert not result.success
        assert "same type" in result.error


# ── WishComposition ─────────────────────────────────────────────────────

class TestWishComposition:
    def test_duplicate_element_ids_rejected(self):
        a = Element.create("confetti", element_id="x")
        b = Element.create("music-player", element_id="x")
        with pytest.raises(ValueError):
            WishComposition(elements=[a, b])

    def test_invalid_steps_rejected(self):
        with pytest.raises(ValueError):
            WishComposition(step_sequence=[["a", "b", "c"]])

    def test_from_wire(self):
        wish = WishComposition.model_validate({
            "id": "wish_1",
            "recipientName": "Sarah",
            "elements": [{
                "id": "balloons_1",
                "elementType": "balloons-interactive",
                "properties": {"numberOfBalloons": 8, "balloonSize": 70},
            }],
            "stepSequence": [["balloons_1"]],
        })
        assert wish.elements[0].properties.number_of_balloons == 8
        assert wish.to_wire()["id"] == "wish_1"

    def test_same_type_step_rejected(self):
        a = Element.create("balloons-interactive", element_id="b1")
        b = Element.create("balloons-interactive", element_id="b2", order=1)
        with pytest.raises(ValueError):
            WishComposition(elements=[a, b], step_sequence=[["b1", "b2"]])

    def test_different_types_share_a_step(self):
        wish = WishComposition(elements=_wish().elements, step_sequence=[["b1", "t1"]])
        assert wish.step_sequence == [["b1", "t1"]]
