"""Wishcraft MCP Server - MCP tools for composing and replaying interactive wishes."""

from mcp.server.fastmcp import FastMCP, Context
import json
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Any, Optional
from pathlib import Path

from wishcraft.core.elements import list_element_definitions
from wishcraft.core.playback import AsyncioScheduler, PlaybackEngine
from wishcraft.core.sequence import QUICK_SEQUENCE_PRESETS
from wishcraft.core.state import AuthoringSession
from wishcraft.core.templates import BLANK_TEMPLATE_ID, TemplateLibrary
from wishcraft.core.workspace import Workspace, DEFAULT_PROJECTS_DIR
from wishcraft.storage.remote import RemoteWishStore

# Configure logging
logging.basicConfig(level=logging.INFO,
                    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger("Wishcraft")


# ── Global State ────────────────────────────────────────────────────────

_workspace: Optional[Workspace] = None
_session = AuthoringSession()
_templates = TemplateLibrary.with_builtins()
_playback: Optional[PlaybackEngine] = None
_loop: Optional[asyncio.AbstractEventLoop] = None


def _session_summary() -> dict:
    return {
        "wish_id": _session.wish_id,
        "template_id": _session.template_id,
        "restricted": _session.is_restricted,
        "elements": _session.canvas.to_summary(),
        "step_sequence": _session.steps,
        "selected_id": _session.canvas.selected_id,
        "recipient_name": _session.metadata.recipient_name,
        "undo_depth": len(_session.undo_stack),
    }


def _playback_summary() -> dict:
    if _playback is None:
        return {"status": "none"}
    return {
        "status": _playback.status.value,
        "current_step_index": _playback.current_step_index,
        "step_count": _playback.step_count,
        "progress": round(_playback.progress, 3),
        "visible_elements": [el.id for el in _playback.get_visible_elements()],
        "completed_element_ids": sorted(_playback.completed_element_ids),
        "is_playing": _playback.state.is_playing,
        "auto_play": _playback.state.auto_play,
    }


def _close_playback():
    global _playback
    if _playback is not None:
        _playback.close()
        _playback = None


# ── Server Setup ────────────────────────────────────────────────────────

@asynccontextmanager
async def server_lifespan(server: FastMCP) -> AsyncIterator[Dict[str, Any]]:
    global _loop
    try:
        logger.info("Wishcraft server starting up")
        _loop = asyncio.get_running_loop()
        yield {}
    finally:
        _close_playback()
        _loop = None
        logger.info("Wishcraft server shut down")


mcp = FastMCP("Wishcraft", lifespan=server_lifespan)


# ═══════════════════════════════════════════════════════════════════════
# PROJECT MANAGEMENT TOOLS
# ═══════════════════════════════════════════════════════════════════════

@mcp.tool()
def create_project(ctx: Context, project_name: str, base_path: str = "") -> str:
    """Create a new wish project directory.

    Parameters:
    - project_name: Name for the project (used as directory name)
    - base_path: Optional base directory (defaults to ./projects/)
    """
    global _workspace
    base = Path(base_path) if base_path else Path(DEFAULT_PROJECTS_DIR)
    project_path = base / project_name

    if project_path.exists():
        return f"Error: Project directory already exists at {project_path}"

    _workspace = Workspace(project_name=project_name, root_path=project_path).initialize()
    _session.workspace = _workspace
    return json.dumps({
        "status": "created",
        "project_name": project_name,
        "path": str(project_path),
    }, indent=2)


@mcp.tool()
def load_project(ctx: Context, project_path: str) -> str:
    """Load an existing wish project.

    Parameters:
    - project_path: Path to the project directory
    """
    global _workspace
    try:
        _workspace = Workspace.load(Path(project_path))
    except FileNotFoundError as e:
        return f"Error loading project: {str(e)}"
    _session.workspace = _workspace
    return json.dumps({
        "status": "loaded",
        "project_name": _workspace.project_name,
        "path": str(_workspace.root_path),
        "wishes": _workspace.list_wishes(),
    }, indent=2)


@mcp.tool()
def get_project_status(ctx: Context) -> str:
    """Get the open project and the wish currently being authored."""
    return json.dumps({
        "project_loaded": _workspace is not None,
        "project_name": _workspace.project_name if _workspace else None,
        "session": _session_summary(),
        "playback": _playback_summary(),
    }, indent=2)


# ═══════════════════════════════════════════════════════════════════════
# CATALOG & TEMPLATE TOOLS
# ═══════════════════════════════════════════════════════════════════════

@mcp.tool()
def list_element_types(ctx: Context) -> str:
    """List every element type that can be placed on a wish."""
    return json.dumps([
        {
            "id": d.id,
            "name": d.name,
            "category": d.category,
            "description": d.description,
            "is_premium": d.is_premium,
        }
        for d in list_element_definitions()
    ], indent=2)


@mcp.tool()
def list_templates(ctx: Context, occasion: str = "all") -> str:
    """List wish templates, optionally filtered by occasion."""
    ids = {t.id for t in _templates.by_occasion(occasion)}
    return json.dumps([t for t in _templates.list_templates() if t["id"] in ids], indent=2)


@mcp.tool()
def new_wish(ctx: Context, template_id: str = BLANK_TEMPLATE_ID, template_mode: bool = True) -> str:
    """Start authoring a new wish from a template.

    Parameters:
    - template_id: Template to start from (custom-blank for an empty canvas)
    - template_mode: Restrict editing to the template's element types
    """
    global _session
    template = _templates.get(template_id)
    if template is None:
        return f"Error: Template '{template_id}' not found"
    _close_playback()
    _session = AuthoringSession.from_template(template, template_mode=template_mode,
                                              workspace=_workspace)
    return json.dumps(_session_summary(), indent=2)


@mcp.tool()
def open_wish(ctx: Context, wish_id: str) -> str:
    """Reopen a saved wish from the current project for editing."""
    global _session
    if not _workspace:
        return "Error: No project is currently open. Use create_project or load_project first."
    result = _workspace.load_wish(wish_id)
    if not result.success:
        return f"Error: {result.error}"
    _close_playback()
    _session = AuthoringSession.from_composition(result.data, workspace=_workspace)
    return json.dumps(_session_summary(), indent=2)


@mcp.tool()
def get_wish(ctx: Context) -> str:
    """Get the full serialized composition being authored."""
    return json.dumps(_session.to_composition().to_wire(), indent=2)


@mcp.tool()
def set_wish_details(ctx: Context, recipient_name: str = None, message: str = None,
                     theme: str = None, custom_background_color: str = None) -> str:
    """Set recipient-facing details of the wish."""
    fields = {
        k: v for k, v in {
            "recipient_name": recipient_name,
            "message": message,
            "theme": theme,
            "custom_background_color": custom_background_color,
        }.items() if v is not None
    }
    metadata = _session.set_metadata(**fields)
    return json.dumps(metadata.model_dump(), indent=2)


@mcp.tool()
def save_wish(ctx: Context) -> str:
    """Validate and save the wish into the current project."""
    result = _session.save()
    if not result.success:
        return f"Error: {result.error}"
    return json.dumps({"status": "saved", "wish_id": _session.wish_id}, indent=2)


@mcp.tool()
def publish_wish(ctx: Context, store_url: str = "") -> str:
    """Send the wish to a remote wish store (WISHCRAFT_STORE_URL by default)."""
    store = RemoteWishStore(base_url=store_url or None)
    result = _session.publish(store)
    if not result.success:
        return f"Error publishing wish: {result.error}"
    return json.dumps({"status": "published", "store": store.base_url, "data": result.data},
                      indent=2, default=str)


# ═══════════════════════════════════════════════════════════════════════
# CANVAS TOOLS
# ═══════════════════════════════════════════════════════════════════════

@mcp.tool()
def add_element(ctx: Context, element_type: str) -> str:
    """Add an element (in template mode: re-select or restore a template element)."""
    element = _session.add_element(element_type)
    if element is None:
        return f"Error: Cannot add element of type '{element_type}'"
    return json.dumps(element.to_wire(), indent=2)


@mcp.tool()
def update_element_properties(ctx: Context, element_id: str, properties: dict) -> str:
    """Replace an element's properties (validated against its type)."""
    element = _session.update_element_properties(element_id, properties)
    if element is None:
        return f"Error: Could not update '{element_id}' (unknown id or invalid properties)"
    return json.dumps(element.to_wire(), indent=2)


@mcp.tool()
def delete_element(ctx: Context, element_id: str) -> str:
    """Delete an element; it is also removed from the step sequence."""
    if not _session.delete_element(element_id):
        return f"Error: Element '{element_id}' not found"
    return json.dumps(_session_summary(), indent=2)


@mcp.tool()
def unselect_element(ctx: Context, key: str) -> str:
    """Remove an element by id, or the most recent instance of a type."""
    if not _session.unselect_element(key):
        return f"Error: Nothing to remove for '{key}'"
    return json.dumps(_session_summary(), indent=2)


@mcp.tool()
def focus_element(ctx: Context, element_id: str = None) -> str:
    """Switch the element being edited; omit element_id to select all."""
    if not _session.focus_element(element_id):
        return f"Error: Element '{element_id}' not found"
    return json.dumps(_session_summary(), indent=2)


@mcp.tool()
def undo(ctx: Context) -> str:
    """Undo the last canvas or sequence change."""
    description = _session.undo()
    if description:
        return f"Undone: {description}. Element count: {len(_session.elements)}"
    return "Nothing to undo."


# ═══════════════════════════════════════════════════════════════════════
# STEP SEQUENCE TOOLS
# ═══════════════════════════════════════════════════════════════════════

def _sequence_result(changed: bool, error: str) -> str:
    if not changed:
        return f"Error: {error}"
    return json.dumps({"step_sequence": _session.steps}, indent=2)


@mcp.tool()
def add_to_step_sequence(ctx: Context, element_id: str) -> str:
    """Add an element to the tail step, or start a new step."""
    return _sequence_result(_session.add_to_step_sequence(element_id),
                            f"Cannot sequence '{element_id}'")


@mcp.tool()
def remove_from_step_sequence(ctx: Context, element_id: str) -> str:
    """Take an element out of the step sequence."""
    return _sequence_result(_session.remove_from_step_sequence(element_id),
                            f"'{element_id}' is not in the sequence")


@mcp.tool()
def reorder_steps(ctx: Context, from_index: int, to_index: int) -> str:
    """Move a whole step to a new position."""
    return _sequence_result(_session.reorder_steps(from_index, to_index),
                            "Nothing to move")


@mcp.tool()
def remove_step(ctx: Context, index: int) -> str:
    """Delete a whole step (its elements stay on the canvas)."""
    return _sequence_result(_session.remove_step(index), f"No step at index {index}")


@mcp.tool()
def clear_step_sequence(ctx: Context) -> str:
    """Remove every step."""
    return _sequence_result(_session.clear_step_sequence(), "Sequence is already empty")


@mcp.tool()
def auto_generate_sequence(ctx: Context) -> str:
    """One step per interactive element, in canvas order."""
    return json.dumps({"step_sequence": _session.auto_generate_sequence()}, indent=2)


@mcp.tool()
def add_next_step(ctx: Context) -> str:
    """Append the first unsequenced element as its own step."""
    step = _session.add_next_step()
    return _sequence_result(step is not None, "No element available or sequence is full")


@mcp.tool()
def list_presets(ctx: Context) -> str:
    """List quick sequence presets and whether the canvas can use them."""
    available = {p.name for p in _session.builder.available_presets()}
    return json.dumps([
        {"name": p.name, "description": p.description, "steps": p.steps,
         "available": p.name in available}
        for p in QUICK_SEQUENCE_PRESETS
    ], indent=2)


@mcp.tool()
def apply_preset(ctx: Context, name: str) -> str:
    """Replace the sequence with a quick preset."""
    preset = next((p for p in QUICK_SEQUENCE_PRESETS if p.name == name), None)
    if preset is None:
        return f"Error: Unknown preset '{name}'"
    return _sequence_result(_session.apply_preset(preset),
                            f"Preset '{name}' needs elements the wish does not have")


# ═══════════════════════════════════════════════════════════════════════
# PLAYBACK TOOLS
# ═══════════════════════════════════════════════════════════════════════

@mcp.tool()
def start_playback(ctx: Context, auto_play: bool = False) -> str:
    """Start presenting the wish from the first step."""
    global _playback
    _close_playback()
    _playback = _session.start_playback(scheduler=AsyncioScheduler(loop=_loop), auto_play=auto_play)
    return json.dumps(_playback_summary(), indent=2)


@mcp.tool()
def get_playback_status(ctx: Context) -> str:
    """Current step, visible elements and progress."""
    return json.dumps(_playback_summary(), indent=2)


def _with_playback(action) -> str:
    if _playback is None:
        return "Error: Playback has not been started. Use start_playback first."
    action(_playback)
    return json.dumps(_playback_summary(), indent=2)


@mcp.tool()
def complete_element(ctx: Context, element_id: str) -> str:
    """Signal that a visible element finished its interaction."""
    return _with_playback(lambda p: p.complete_element(element_id))


@mcp.tool()
def next_step(ctx: Context) -> str:
    """Go to the next step."""
    return _with_playback(lambda p: p.next())


@mcp.tool()
def previous_step(ctx: Context) -> str:
    """Go back one step."""
    return _with_playback(lambda p: p.previous())


@mcp.tool()
def go_to_step(ctx: Context, index: int) -> str:
    """Jump to a step (clamped to the valid range)."""
    return _with_playback(lambda p: p.go_to(index))


@mcp.tool()
def set_auto_play(ctx: Context, enabled: bool) -> str:
    """Turn timed auto-advance on or off."""
    return _with_playback(lambda p: p.set_auto_play(enabled))


@mcp.tool()
def stop_playback(ctx: Context) -> str:
    """Stop presenting and discard playback state."""
    return _with_playback(lambda p: p.stop())


# ═══════════════════════════════════════════════════════════════════════
# MCP PROMPT
# ═══════════════════════════════════════════════════════════════════════

@mcp.prompt()
def wish_authoring_workflow() -> str:
    """Recommended workflow for composing a wish"""
    return """You are helping the user compose an interactive wish. Follow this workflow:

1. **Project**: Use create_project() or load_project() so work is saved.

2. **Start**: Use list_templates() and new_wish() with a template id.
   Templates other than custom-blank restrict editing to their element types.

3. **Compose**: Use add_element(), update_element_properties() and
   delete_element(). list_element_types() shows what is available.

4. **Sequence**: Use add_to_step_sequence() to build the reveal order, or
   auto_generate_sequence() / apply_preset() for a quick start.
   A step holds at most two elements of different types; at most 10 steps.

5. **Details**: Use set_wish_details() for the recipient name and message,
   then save_wish().

6. **Preview**: Use start_playback(), then complete_element() or next_step()
   to move through the steps.

Tips:
- Use undo() if you make a mistake
- Use get_project_status() to check the wish and playback state
"""


# ── Main ────────────────────────────────────────────────────────────────

def main():
    """Run the MCP server"""
    mcp.run()


if __name__ == "__main__":
    main()
