"""Tests for wishcraft.storage.remote — RemoteWishStore."""

import pytest
import requests
from unittest.mock import patch, MagicMock

from wishcraft.core.composition import WishComposition
from wishcraft.core.elements import Element
from wishcraft.storage.remote import RemoteWishStore, REQUEST_TIMEOUT


def _response(body, content=b"x"):
    resp = MagicMock()
    resp.json.return_value = body
    resp.content = content
    resp.raise_for_status.return_value = None
    return resp


def _wish() -> WishComposition:
    return WishComposition(
        id="wish_1",
        recipient_name="Sarah",
        elements=[Element.create("confetti", element_id="c1")],
        step_sequence=[["c1"]],
    )


@pytest.fixture
def store():
    return RemoteWishStore(base_url="https://store.example/api/", token="secret")


# ── Configuration ───────────────────────────────────────────────────────

class TestConfig:
    def test_base_url_trailing_slash(self, store):
        assert store.base_url == "https://store.example/api"

    def test_env_defaults(self, monkeypatch):
        monkeypatch.setenv("WISHCRAFT_STORE_URL", "https://env.example")
        monkeypatch.setenv("WISHCRAFT_STORE_TOKEN", "tok")
        s = RemoteWishStore()
        assert s.base_url == "https://env.example"
        assert s._headers() == {"Authorization": "Bearer tok"}

    def test_no_token_no_header(self, monkeypatch):
        monkeypatch.delenv("WISHCRAFT_STORE_TOKEN", raising=False)
        assert RemoteWishStore(base_url="http://x")._headers() == {}


# ── Requests ────────────────────────────────────────────────────────────

class TestRemoteWishStore:
    @patch("wishcraft.storage.remote.requests.request")
    def test_save_posts_wire_form(self, mock_request, store):
        mock_request.return_value = _response({"success": True, "data": {"id": "wish_1"}})
        result = store.save_wish(_wish())
        assert result.success
        assert result.data == {"id": "wish_1"}

        args, kwargs = mock_request.call_args
        assert args == ("POST", "https://store.example/api/wishes")
        assert kwargs["json"]["recipientName"] == "Sarah"
        assert kwargs["json"]["stepSequence"] == [["c1"]]
        assert kwargs["headers"] == {"Authorization": "Bearer secret"}
        assert kwargs["timeout"] == REQUEST_TIMEOUT

    @patch("wishcraft.storage.remote.requests.request")
    def test_update_uses_put(self, mock_request, store):
        mock_request.return_value = _response({"success": True, "data": None})
        store.save_wish(_wish(), create=False)
        assert mock_request.call_args[0] == ("PUT", "https://store.example/api/wishes/wish_1")

    @patch("wishcraft.storage.remote.requests.request")
    def test_load_validates(self, mock_request, store):
        mock_request.return_value = _response({"success": True, "data": _wish().to_wire()})
        result = store.load_wish("wish_1")
        assert result.success
        assert isinstance(result.data, WishComposition)
        assert result.data.step_sequence == [["c1"]]

    @patch("wishcraft.storage.remote.requests.request")
    def test_load_invalid_payload(self, mock_request, store):
        mock_request.return_value = _response({
            "success": True,
            "data": {"elements": [{"id": "x", "elementType": "fireworks"}]},
        })
        result = store.load_wish("wish_1")
        assert not result.success

    @patch("wishcraft.storage.remote.requests.request")
    def test_load_rejects_same_type_step(self, mock_request, store):
        mock_request.return_value = _response({
            "success": True,
            "data": {
                "elements": [
                    {"id": "b1", "elementType": "balloons-interactive"},
                    {"id": "b2", "elementType": "balloons-interactive"},
                ],
                "stepSequence": [["b1", "b2"]],
            },
        })
        assert not store.load_wish("wish_1").success

    @patch("wishcraft.storage.remote.requests.request")
    def test_envelope_failure(self, mock_request, store):
        mock_request.return_value = _response({"success": False, "error": "Wish not found"})
        result = store.load_wish("missing")
        assert not result.success
        assert result.error == "Wish not found"

    @patch("wishcraft.storage.remote.requests.request")
    def test_network_error(self, mock_request, store):
        mock_request.side_effect = requests.ConnectionError("refused")
        result = store.save_wish(_wish())
        assert not result.success
        assert "refused" in result.error

    @patch("wishcraft.storage.remote.requests.request")
    def test_http_error(self, mock_request, store):
        resp = _response({})
        resp.raise_for_status.side_effect = requests.HTTPError("500 Server Error")
        mock_request.return_value = resp
        assert not store.delete_wish("wish_1").success

    @patch("wishcraft.storage.remote.requests.request")
    def test_invalid_json(self, mock_request, store):
        resp = _response(None)
        resp.json.side_effect = ValueError("Expecting value")
        mock_request.return_value = resp
        result = store.load_wish("wish_1")
        assert not result.success
        assert "Invalid response" in result.error

    @patch("wishcraft.storage.remote.requests.request")
    def test_delete_empty_body(self, mock_request, store):
        mock_request.return_value = _response(None, content=b"")
        assert store.delete_wish("wish_1").success
        assert mock_request.call_args[0] == ("DELETE", "https://store.example/api/wishes/wish_1")

    @patch("wishcraft.storage.remote.requests.request")
    def test_list_templates_skips_invalid(self, mock_request, store):
        mock_request.return_value = _response({
            "success": True,
            "data": [
                {"id": "t1", "name": "One", "defaultElementIds": ["confetti"]},
                {"name": "missing id"},
            ],
        })
        result = store.list_templates()
        assert result.success
        assert [t.id for t in result.data] == ["t1"]
