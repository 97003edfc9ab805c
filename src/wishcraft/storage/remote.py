"""HTTP client for a remote wish document store."""

import logging
import os
from typing import Any, Optional

import requests
from pydantic import ValidationError

from wishcraft.core.composition import PersistenceResult, WishComposition
from wishcraft.core.templates import WishTemplate

logger = logging.getLogger("Wishcraft.storage.remote")

DEFAULT_STORE_URL = "http://localhost:3000/api"
REQUEST_TIMEOUT = 15


class RemoteWishStore:
    """Saves and loads wishes over a JSON REST API.

    Responses use the envelope ``{"success": bool, "data": ..., "error": ...}``.
    Every network or decoding failure is logged and returned as a failed
    PersistenceResult; nothing here raises to the caller.
    """

    def __init__(self, base_url: Optional[str] = None, token: Optional[str] = None):
        self.base_url = (base_url or os.getenv("WISHCRAFT_STORE_URL", DEFAULT_STORE_URL)).rstrip("/")
        self._token = token if token is not None else os.getenv("WISHCRAFT_STORE_TOKEN", "")

    def _headers(self) -> dict[str, str]:
        if self._token:
            return {"Authorization": f"Bearer {self._token}"}
        return {}

    def _request(self, method: str, path: str, payload: Optional[dict] = None) -> PersistenceResult:
        try:
            resp = requests.request(
                method,
                f"{self.base_url}{path}",
                json=payload,
                headers=self._headers(),
                timeout=REQUEST_TIMEOUT,
            )
            resp.raise_for_status()
            body: Any = resp.json() if resp.content else {}
        except requests.RequestException as e:
            logger.error(f"{method} {path} failed: {e}")
            return PersistenceResult.fail(str(e))
        except ValueError as e:
            logger.error(f"{method} {path} returned invalid JSON: {e}")
            return PersistenceResult.fail(f"Invalid response: {e}")

        if isinstance(body, dict) and "success" in body:
            if not body["success"]:
                return PersistenceResult.fail(body.get("error") or "Request failed")
            return PersistenceResult.ok(data=body.get("data"), message=body.get("message"))
        return PersistenceResult.ok(data=body)

    def save_wish(self, wish: WishComposition, create: bool = True) -> PersistenceResult:
        """POST a new wish, or PUT over an existing one."""
        if create:
            result = self._request("POST", "/wishes", wish.to_wire())
        else:
            result = self._request("PUT", f"/wishes/{wish.id}", wish.to_wire())
        if result.success:
            logger.info(f"Saved wish {wish.id} to {self.base_url}")
        return result

    def load_wish(self, wish_id: str) -> PersistenceResult:
        result = self._request("GET", f"/wishes/{wish_id}")
        if not result.success:
            return result
        try:
            wish = WishComposition.model_validate(result.data)
        except ValidationError as e:
            logger.warning(f"Wish {wish_id} from store failed validation: {e}")
            return PersistenceResult.fail(str(e))
        return PersistenceResult.ok(data=wish)

    def delete_wish(self, wish_id: str) -> PersistenceResult:
        return self._request("DELETE", f"/wishes/{wish_id}")

    def list_templates(self) -> PersistenceResult:
        result = self._request("GET", "/templates")
        if not result.success:
            return result
        templates = []
        for item in result.data or []:
            try:
                templates.append(WishTemplate.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping invalid template from store: {e}")
        return PersistenceResult.ok(data=templates)
