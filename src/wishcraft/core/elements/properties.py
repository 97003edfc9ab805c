"""Per-type property models for canvas elements.

One model per element type, keyed by ``elementType``. Wire keys are camelCase
(``numberOfBalloons``); Python attributes are snake_case.
"""

import re
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, model_serializer, model_validator
from pydantic.alias_generators import to_camel

MAX_BALLOONS = 20
MAX_QUIZ_QUESTIONS = 5

DEFAULT_BALLOON_COLORS = ["#FF6B9D", "#4ECDC4", "#45B7D1", "#96CEB4", "#FFEAA7"]

_BALLOON_IMAGE_KEY = re.compile(r"balloonImage(\d+)")


class ElementProperties(BaseModel):
    """Base for every element property schema."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    transition: Optional[str] = None  # fade, slide-up, zoom-in, ...


class BalloonsProperties(ElementProperties):
    """Poppable balloons; each balloon may reveal its own image.

    ``balloon_images`` is a bounded list of per-balloon image slots. On the
    wire the slots travel as ``balloonImage0`` .. ``balloonImageN`` keys.
    """
    number_of_balloons: int = Field(default=5, ge=1, le=MAX_BALLOONS)
    balloon_colors: list[str] = Field(default_factory=lambda: list(DEFAULT_BALLOON_COLORS))
    animation_duration: int = Field(default=3000, ge=0)
    pop_on_click: bool = True
    show_image_on_pop: bool = True
    image_url: Optional[str] = None
    balloon_size: int = Field(default=60, ge=10, le=200)
    float_speed: float = Field(default=2.0, ge=0)
    interactive: bool = True
    balloon_images: list[Optional[str]] = Field(default_factory=list, max_length=MAX_BALLOONS)

    @model_validator(mode="before")
    @classmethod
    def _collect_balloon_images(cls, data):
        if not isinstance(data, dict):
            return data
        slots: dict[int, Optional[str]] = {}
        rest = {}
        for key, value in data.items():
            match = _BALLOON_IMAGE_KEY.fullmatch(key)
            if match:
                slots[int(match.group(1))] = value
            else:
                rest[key] = value
        if not slots:
            return rest

        images = list(rest.pop("balloonImages", None) or rest.pop("balloon_images", None) or [])
        size = max(slots) + 1
        if len(images) < size:
            images.extend([None] * (size - len(images)))
        for index, value in slots.items():
            images[index] = value
        rest["balloonImages"] = images
        return rest

    @model_validator(mode="after")
    def _trim_images_to_balloon_count(self):
        if len(self.balloon_images) > self.number_of_balloons:
            self.balloon_images = self.balloon_images[:self.number_of_balloons]
        return self

    @model_serializer(mode="wrap")
    def _expand_balloon_images(self, handler):
        data = handler(self)
        images = data.pop("balloonImages", None)
        if images is None:
            images = data.pop("balloon_images", None) or []
        for index, image in enumerate(images):
            if image:
                data[f"balloonImage{index}"] = image
        return data

    def image_for(self, index: int) -> Optional[str]:
        """Image revealed by balloon ``index``, falling back to ``image_url``."""
        if 0 <= index < len(self.balloon_images) and self.balloon_images[index]:
            return self.balloon_images[index]
        return self.image_url


class BeautifulTextProperties(ElementProperties):
    """Styled title + message block."""
    title: str = "Happy Birthday!"
    message: str = "Wishing you a wonderful day filled with joy and laughter!"
    title_font: str = "playfair"
    message_font: str = "inter"
    title_color: str = "#FF6B9D"
    message_color: str = "#4A5568"
    title_size: int = Field(default=48, ge=24, le=96)
    message_size: int = Field(default=18, ge=12, le=32)
    alignment: Literal["left", "center", "right"] = "center"
    animation: str = "fade-in"
    shadow: bool = True
    gradient: bool = False
    padding: int = Field(default=20, ge=0, le=60)


class ConfettiProperties(ElementProperties):
    particle_count: int = Field(default=100, ge=1, le=500)
    colors: list[str] = Field(default_factory=lambda: list(DEFAULT_BALLOON_COLORS))
    duration: int = Field(default=3000, ge=0)
    spread: int = Field(default=70, ge=0, le=360)


class MusicPlayerProperties(ElementProperties):
    music_id: str = "birthday-song"
    loop: bool = False


class QuizQuestion(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    question: str
    options: list[str] = Field(min_length=2)
    correct: str

    @model_validator(mode="after")
    def _correct_is_an_option(self):
        if self.correct not in self.options:
            raise ValueError(f"correct answer '{self.correct}' is not one of the options")
        return self


class InteractiveQuizProperties(ElementProperties):
    title: str = "How Well Do You Know Me?"
    questions: list[QuizQuestion] = Field(default_factory=list, max_length=MAX_QUIZ_QUESTIONS)
    perfect_score_message: str = "Perfect! You know me so well!"
    good_score_message: str = "Great job! You know me pretty well!"
    average_score_message: str = "Not bad! We should spend more time together!"
    low_score_message: str = "Looks like we need to catch up!"


class ImagePuzzleProperties(ElementProperties):
    image_url: str = ""
    grid_size: int = Field(default=3, ge=2, le=6)
    difficulty: Literal["easy", "medium", "hard"] = "medium"
    secret_message: str = ""


class CommentWallProperties(ElementProperties):
    post_type: Literal["photo", "video"] = "photo"
    media_url: str = ""
    post_description: str = ""


class LoveLetterProperties(ElementProperties):
    title: str = "My Dearest"
    message: str = (
        "Every moment with you feels like a beautiful dream come true. "
        "Your love has filled my heart with endless joy and happiness."
    )
    signature: str = "With all my love"
    initials: str = "JD"
    letter_color: str = "#F5F5DC"
    ink_color: str = "#2F2F2F"
    font_style: str = "handwriting"


class DateQuestionProperties(ElementProperties):
    question: str = "Will you go on a date with me?"
    yes_text: str = "Yes"
    no_text: str = "No"
