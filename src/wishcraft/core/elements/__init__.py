"""Elements package — public API re-exports."""

from .properties import (
    ElementProperties,
    BalloonsProperties,
    BeautifulTextProperties,
    ConfettiProperties,
    MusicPlayerProperties,
    QuizQuestion,
    InteractiveQuizProperties,
    ImagePuzzleProperties,
    CommentWallProperties,
    LoveLetterProperties,
    DateQuestionProperties,
    MAX_BALLOONS,
)
from .catalog import (
    ELEMENT_CATALOG,
    INTERACTIVE_ELEMENT_TYPES,
    ElementDefinition,
    PropertyDefinition,
    PropertyOption,
    default_properties,
    get_element_definition,
    is_interactive,
    list_by_category,
    list_element_definitions,
    properties_model_for,
)
from .element import Element, coerce_properties, new_element_id

__all__ = [
    "Element",
    "ElementProperties",
    "BalloonsProperties",
    "BeautifulTextProperties",
    "ConfettiProperties",
    "MusicPlayerProperties",
    "QuizQuestion",
    "InteractiveQuizProperties",
    "ImagePuzzleProperties",
    "CommentWallProperties",
    "LoveLetterProperties",
    "DateQuestionProperties",
    "MAX_BALLOONS",
    "ELEMENT_CATALOG",
    "INTERACTIVE_ELEMENT_TYPES",
    "ElementDefinition",
    "PropertyDefinition",
    "PropertyOption",
    "default_properties",
    "get_element_definition",
    "is_interactive",
    "list_by_category",
    "list_element_definitions",
    "properties_model_for",
    "coerce_properties",
    "new_element_id",
]
