"""Element catalog — the static registry of placeable element types."""

from typing import Any, Literal, Optional
from pydantic import BaseModel, Field

from .properties import (
    ElementProperties,
    BalloonsProperties,
    BeautifulTextProperties,
    ConfettiProperties,
    MusicPlayerProperties,
    InteractiveQuizProperties,
    ImagePuzzleProperties,
    CommentWallProperties,
    LoveLetterProperties,
    DateQuestionProperties,
)

# Types that carry their own completion signal or text reveal and are
# therefore meaningful to sequence.
INTERACTIVE_ELEMENT_TYPES: tuple[str, ...] = (
    "balloons-interactive",
    "beautiful-text",
    "confetti",
    "music-player",
)


class PropertyOption(BaseModel):
    value: str
    label: str
    is_premium: bool = False


class PropertyDefinition(BaseModel):
    """Editing schema for a single property, consumed by property panels."""
    name: str
    kind: Literal["text", "number", "color", "select", "range", "checkbox", "file"]
    label: str
    default_value: Any = None
    options: list[PropertyOption] = Field(default_factory=list)
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None
    is_premium: bool = False


class ElementDefinition(BaseModel):
    """A catalog entry: identity, presentation metadata and property schema."""
    id: str
    kind: Literal["image", "text", "animation", "sound", "interaction"]
    name: str
    description: str = ""
    icon: str = ""
    category: Literal["basic", "birthday", "valentine", "celebration", "custom"] = "basic"
    is_premium: bool = False
    properties_model: type[ElementProperties]
    property_definitions: list[PropertyDefinition] = Field(default_factory=list)

    def default_properties(self) -> ElementProperties:
        """A fresh default property set for this type."""
        return self.properties_model()


_FONTS = [
    PropertyOption(value="inter", label="Inter"),
    PropertyOption(value="poppins", label="Poppins"),
    PropertyOption(value="montserrat", label="Montserrat"),
    PropertyOption(value="playfair", label="Playfair Display"),
    PropertyOption(value="dancing", label="Dancing Script", is_premium=True),
    PropertyOption(value="pacifico", label="Pacifico", is_premium=True),
]

_TEXT_PROPERTY_DEFINITIONS = [
    PropertyDefinition(name="title", kind="text", label="Title", default_value="Happy Birthday!"),
    PropertyDefinition(name="message", kind="text", label="Message",
                       default_value="Wishing you a wonderful day filled with joy and laughter!"),
    PropertyDefinition(name="titleFont", kind="select", label="Title Font",
                       default_value="playfair", options=_FONTS),
    PropertyDefinition(name="messageFont", kind="select", label="Message Font",
                       default_value="inter", options=_FONTS),
    PropertyDefinition(name="titleColor", kind="color", label="Title Color", default_value="#FF6B9D"),
    PropertyDefinition(name="messageColor", kind="color", label="Message Color", default_value="#4A5568"),
    PropertyDefinition(name="titleSize", kind="range", label="Title Size",
                       default_value=48, min=24, max=96, step=1),
    PropertyDefinition(name="messageSize", kind="range", label="Message Size",
                       default_value=18, min=12, max=32, step=1),
    PropertyDefinition(
        name="alignment", kind="select", label="Text Alignment", default_value="center",
        options=[
            PropertyOption(value="left", label="Left"),
            PropertyOption(value="center", label="Center"),
            PropertyOption(value="right", label="Right"),
        ],
    ),
    PropertyDefinition(name="shadow", kind="checkbox", label="Enable Shadow", default_value=True),
    PropertyDefinition(name="gradient", kind="checkbox", label="Enable Gradient",
                       default_value=False, is_premium=True),
    PropertyDefinition(name="padding", kind="range", label="Padding",
                       default_value=20, min=0, max=60, step=1),
]

_BALLOON_PROPERTY_DEFINITIONS = [
    PropertyDefinition(name="numberOfBalloons", kind="range", label="Number of Balloons",
                       default_value=5, min=1, max=20, step=1),
    PropertyDefinition(name="balloonSize", kind="range", label="Balloon Size",
                       default_value=60, min=10, max=200, step=5),
    PropertyDefinition(name="imageUrl", kind="file", label="Surprise Image"),
]


ELEMENT_CATALOG: dict[str, ElementDefinition] = {
    d.id: d for d in [
        ElementDefinition(
            id="balloons-interactive", kind="animation", name="Interactive Balloons",
            description="Click to pop balloons with surprise images", icon="🎈",
            category="birthday", properties_model=BalloonsProperties,
            property_definitions=_BALLOON_PROPERTY_DEFINITIONS,
        ),
        ElementDefinition(
            id="beautiful-text", kind="text", name="Beautiful Text",
            description="Titles and messages with custom fonts and colors", icon="✨",
            category="basic", is_premium=True, properties_model=BeautifulTextProperties,
            property_definitions=_TEXT_PROPERTY_DEFINITIONS,
        ),
        ElementDefinition(
            id="confetti", kind="animation", name="Confetti",
            description="A burst of celebratory confetti", icon="🎊",
            category="celebration", properties_model=ConfettiProperties,
        ),
        ElementDefinition(
            id="music-player", kind="sound", name="Music Player",
            description="Background music for the wish", icon="🎵",
            category="basic", properties_model=MusicPlayerProperties,
        ),
        ElementDefinition(
            id="interactive-quiz", kind="interaction", name="Interactive Quiz",
            description="How well does the recipient know you?", icon="❓",
            category="custom", properties_model=InteractiveQuizProperties,
        ),
        ElementDefinition(
            id="image-puzzle", kind="interaction", name="Image Puzzle",
            description="Drag tiles to reveal a photo and a secret message", icon="🧩",
            category="custom", is_premium=True, properties_model=ImagePuzzleProperties,
        ),
        ElementDefinition(
            id="comment-wall", kind="interaction", name="Comment Wall",
            description="A post friends can leave comments on", icon="💬",
            category="celebration", properties_model=CommentWallProperties,
        ),
        ElementDefinition(
            id="love-letter", kind="text", name="Love Letter",
            description="A sealed letter that unfolds when opened", icon="💌",
            category="valentine", properties_model=LoveLetterProperties,
        ),
        ElementDefinition(
            id="date-question", kind="interaction", name="Date Question",
            description="A question with a very persistent 'yes'", icon="💘",
            category="valentine", properties_model=DateQuestionProperties,
        ),
    ]
}


def get_element_definition(element_type: str) -> Optional[ElementDefinition]:
    return ELEMENT_CATALOG.get(element_type)


def list_element_definitions() -> list[ElementDefinition]:
    return list(ELEMENT_CATALOG.values())


def list_by_category(category: str) -> list[ElementDefinition]:
    return [d for d in ELEMENT_CATALOG.values() if d.category == category]


def default_properties(element_type: str) -> Optional[ElementProperties]:
    definition = ELEMENT_CATALOG.get(element_type)
    if definition is None:
        return None
    return definition.default_properties()


def properties_model_for(element_type: str) -> Optional[type[ElementProperties]]:
    definition = ELEMENT_CATALOG.get(element_type)
    return definition.properties_model if definition else None


def is_interactive(element_type: str) -> bool:
    return element_type in INTERACTIVE_ELEMENT_TYPES
