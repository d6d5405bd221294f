"""
Request and result schemas for caption generation.
"""
from typing import List, Literal

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator

from services.errors import ValidationError

CAPTION_COUNT = 10

Goal = Literal['get_more_comments', 'go_viral', 'soft_sell', 'premium_tone', 'faith_motivation', 'storytelling']
Platform = Literal['Instagram', 'TikTok', 'LinkedIn', 'WhatsApp Status']
CaptionLength = Literal['short', 'medium', 'long']
EmojiLevel = Literal['none', 'low', 'normal', 'high']
Mood = Literal['happy', 'calm', 'excited', 'serious', 'romantic', 'funny', 'unknown']
CaptionStyle = Literal['curiosity', 'emotional', 'humorous', 'premium', 'faith', 'storytelling', 'direct']
CallToAction = Literal['comment', 'like', 'save', 'share', 'follow', 'click', 'none']


class GenerationRequest(BaseModel):
    """User settings for one generation. Field aliases match the JSON body."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, str_strip_whitespace=True)

    image_url: str = Field(alias='imageUrl', min_length=1)
    goal: Goal
    platform: Platform
    audience: str = Field(min_length=1)
    language: str = Field(min_length=1)
    caption_length: CaptionLength = Field(alias='captionLength')
    emoji_level: EmojiLevel = Field(alias='emojiLevel')

    @classmethod
    def from_payload(cls, data):
        """Build a request from a decoded JSON body, raising ValidationError on bad input."""
        if not isinstance(data, dict):
            raise ValidationError('Request body must be a JSON object')

        if not str(data.get('imageUrl') or '').strip():
            raise ValidationError('Image URL is required')

        try:
            return cls.model_validate(data)
        except pydantic.ValidationError as e:
            raise ValidationError(describe_errors(e)) from e


class Caption(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str = Field(min_length=1)
    style: CaptionStyle
    cta: CallToAction
    reason: str

    @field_validator('style', 'cta', mode='before')
    @classmethod
    def _normalize_enum(cls, value):
        return value.strip().lower() if isinstance(value, str) else value


class GenerationResult(BaseModel):
    """Decoded model output. Exactly ten captions, hashtags without duplicates."""

    model_config = ConfigDict(frozen=True)

    photo_summary: str
    detected_mood: Mood
    captions: List[Caption] = Field(min_length=CAPTION_COUNT, max_length=CAPTION_COUNT)
    hashtags: List[str]
    why_it_works: List[str]
    content_warnings: List[str] = Field(default_factory=list)

    @field_validator('detected_mood', mode='before')
    @classmethod
    def _normalize_mood(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator('hashtags')
    @classmethod
    def _unique_hashtags(cls, tags):
        seen = set()
        unique = []
        for tag in tags:
            tag = tag.strip()
            if tag and tag not in seen:
                seen.add(tag)
                unique.append(tag)
        return unique

    def to_dict(self):
        return self.model_dump()


def describe_errors(exc):
    """Flatten pydantic errors into one readable line."""
    parts = []
    for error in exc.errors():
        location = '.'.join(str(p) for p in error.get('loc', ())) or 'body'
        parts.append(f"{location}: {error.get('msg')}")
    return '; '.join(parts)


