"""Project workspace and local wish persistence."""

import json
import logging
import os
from pathlib import Path
from pydantic import BaseModel, ValidationError

from .composition import PersistenceResult, WishComposition

logger = logging.getLogger("Wishcraft.core.workspace")

DEFAULT_PROJECTS_DIR = os.getenv("WISHCRAFT_PROJECTS_DIR", "./projects")


class Workspace(BaseModel):
    """Manages a wish project directory: ``project.json`` plus ``wishes/<id>.json``."""
    project_name: str
    root_path: Path

    model_config = {"arbitrary_types_allowed": True}

    @property
    def wishes_dir(self) -> Path:
        return self.root_path / "wishes"

    @property
    def manifest_path(self) -> Path:
        return self.root_path / "project.json"

    @classmethod
    def in_projects_dir(cls, project_name: str) -> "Workspace":
        return cls(project_name=project_name, root_path=Path(DEFAULT_PROJECTS_DIR) / project_name)

    def initialize(self) -> "Workspace":
        """Create the project directory structure."""
        self.wishes_dir.mkdir(parents=True, exist_ok=True)
        self.save_manifest()
        return self

    def save_manifest(self):
        data = {
            "project_name": self.project_name,
            "wishes": sorted(p.stem for p in self.wishes_dir.glob("*.json")),
        }
        self.manifest_path.write_text(json.dumps(data, indent=2, default=str))

    @classmethod
    def load(cls, project_path: Path) -> "Workspace":
        """Load a workspace from an existing project directory."""
        manifest_path = project_path / "project.json"
        if not manifest_path.exists():
            raise FileNotFoundError(f"No project.json found in {project_path}")

        data = json.loads(manifest_path.read_text())
        return cls(project_name=data["project_name"], root_path=project_path)

    def wish_path(self, wish_id: str) -> Path:
        if not wish_id or "/" in wish_id or "\\" in wish_id or wish_id in (".", ".."):
            raise ValueError(f"Invalid wish id: {wish_id!r}")
        return self.wishes_dir / f"{wish_id}.json"

    def save_wish(self, wish: WishComposition) -> PersistenceResult:
        try:
            self.wishes_dir.mkdir(parents=True, exist_ok=True)
            self.wish_path(wish.id).write_text(wish.model_dump_json(by_alias=True, indent=2))
            self.save_manifest()
        except (OSError, ValueError) as e:
            logger.error(f"Failed to save wish {wish.id}: {e}")
            return PersistenceResult.fail(str(e))
        return PersistenceResult.ok(data={"id": wish.id}, message="Wish saved")

    def load_wish(self, wish_id: str) -> PersistenceResult:
        try:
            path = self.wish_path(wish_id)
        except ValueError as e:
            return PersistenceResult.fail(str(e))
        if not path.exists():
            return PersistenceResult.fail(f"Wish '{wish_id}' not found")
        try:
            wish = WishComposition.model_validate_json(path.read_text())
        except (OSError, ValidationError) as e:
            logger.warning(f"Failed to load wish {wish_id}: {e}")
            return PersistenceResult.fail(str(e))
        return PersistenceResult.ok(data=wish)

    def list_wishes(self) -> list[dict]:
        summaries = []
        for path in sorted(self.wishes_dir.glob("*.json")):
            try:
                wish = WishComposition.model_validate_json(path.read_text())
            except (OSError, ValidationError) as e:
                logger.warning(f"Skipping unreadable wish file {path.name}: {e}")
                continue
            summaries.append({
                "id": wish.id,
                "recipient_name": wish.recipient_name,
                "element_count": len(wish.elements),
                "step_count": len(wish.step_sequence),
                "updated_at": wish.updated_at.isoformat(),
            })
        return summaries

    def delete_wish(self, wish_id: str) -> PersistenceResult:
        try:
            path = self.wish_path(wish_id)
        except ValueError as e:
            return PersistenceResult.fail(str(e))
        if not path.exists():
            return PersistenceResult.fail(f"Wish '{wish_id}' not found")
        try:
            path.unlink()
            self.save_manifest()
        except OSError as e:
            logger.error(f"Failed to delete wish {wish_id}: {e}")
            return PersistenceResult.fail(str(e))
        return PersistenceResult.ok(message="Wish deleted")
