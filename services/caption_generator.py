"""
Caption generation service.
- Fetches the uploaded photo and inlines it as base64
- Sends photo + instructions to Gemini generateContent
- Decodes the model's text into a validated GenerationResult
"""
import base64
import json
import logging
import re

import pydantic
import requests

from config import (
    GEMINI_API_KEY, GEMINI_API_URL, GEMINI_MODEL,
    IMAGE_FETCH_TIMEOUT, GENERATION_TIMEOUT
)
from prompts import build_caption_prompt, caption_length_band, count_words
from services.errors import (
    UpstreamFetchError, UpstreamGenerationError,
    ResponseParseError, SchemaValidationError
)
from services.models import GenerationResult, describe_errors

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MIME = 'image/jpeg'

_LEADING_FENCE = re.compile(r'^```[a-zA-Z]*[ \t]*\n?')
_TRAILING_FENCE = re.compile(r'\n?```$')


# =============================================================================
# Image Utilities
# =============================================================================

def fetch_image_as_base64(image_url, timeout=IMAGE_FETCH_TIMEOUT):
    """Download an image and return (base64_data, mime_type)."""
    try:
        response = requests.get(image_url, timeout=timeout)
    except requests.exceptions.RequestException as e:
        raise UpstreamFetchError(f'Failed to fetch image from URL: {e}') from e

    if not response.ok:
        raise UpstreamFetchError(f'Failed to fetch image from URL (status {response.status_code})')

    mime_type = response.headers.get('Content-Type') or DEFAULT_IMAGE_MIME
    mime_type = mime_type.split(';')[0].strip().lower()
    if not mime_type.startswith('image/'):
        raise UpstreamFetchError(f'URL did not return an image (content type {mime_type})')

    if not response.content:
        raise UpstreamFetchError('Image URL returned an empty body')

    return base64.b64encode(response.content).decode('utf-8'), mime_type


# =============================================================================
# Response Decoding
# =============================================================================

def strip_code_fences(text):
    """Remove a Markdown code fence wrapped around the model output.

    Unfenced text comes back unchanged.
    """
    cleaned = text.strip()
    if not cleaned.startswith('```'):
        return text
    cleaned = _LEADING_FENCE.sub('', cleaned, count=1)
    cleaned = _TRAILING_FENCE.sub('', cleaned, count=1)
    return cleaned.strip()


def decode_generation_result(text):
    """Decode model text into a GenerationResult.

    Raises ResponseParseError when the text is not JSON and
    SchemaValidationError when the JSON breaks the result schema. Both carry
    the raw text.
    """
    cleaned = strip_code_fences(text)

    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error('Failed to parse JSON from model response: %s\nRaw response: %s', e, text)
        raise ResponseParseError('Failed to parse AI response', raw=text) from e

    if not isinstance(payload, dict):
        logger.error('Model response is JSON but not an object. Raw response: %s', text)
        raise SchemaValidationError('AI response has an unexpected shape', raw=text,
                                    reason='top-level value is not an object')

    try:
        return GenerationResult.model_validate(payload)
    except pydantic.ValidationError as e:
        reason = describe_errors(e)
        logger.error('Model response failed schema validation: %s\nRaw response: %s', reason, text)
        raise SchemaValidationError('AI response has an unexpected shape', raw=text, reason=reason) from e


def captions_outside_length_band(result, caption_length):
    """Return the captions whose word count misses the requested band."""
    low, high = caption_length_band(caption_length)
    return [c for c in result.captions if not low <= count_words(c.text) <= high]


# =============================================================================
# Caption Generator
# =============================================================================

class CaptionGenerator:
    """Generate captions for a photo using Gemini."""

    def __init__(self, api_key=GEMINI_API_KEY, model=GEMINI_MODEL, api_url=GEMINI_API_URL):
        if not api_key:
            raise ValueError('GEMINI_API_KEY is required')
        self.api_key = api_key
        self.model = model
        self.api_url = api_url.rstrip('/')

    @property
    def endpoint(self):
        return f'{self.api_url}/models/{self.model}:generateContent'

    def generate(self, request):
        """Run one generation for a GenerationRequest and return a GenerationResult."""
        image_data, mime_type = fetch_image_as_base64(request.image_url)
        prompt = build_caption_prompt(request)

        text = self.generate_text(prompt, image_data, mime_type)
        result = decode_generation_result(text)

        off_band = captions_outside_length_band(result, request.caption_length)
        if off_band:
            logger.warning('%d of %d captions miss the %s word band',
                           len(off_band), len(result.captions), request.caption_length)

        return result

    def generate_text(self, prompt, image_data, mime_type):
        """Send prompt + inline image to Gemini and return the model's text."""
        headers = {
            'x-goog-api-key': self.api_key,
            'Content-Type': 'application/json'
        }

        payload = {
            'contents': [
                {
                    'role': 'user',
                    'parts': [
                        {'text': prompt},
                        {
                            'inline_data': {
                                'mime_type': mime_type,
                                'data': image_data
                            }
                        }
                    ]
                }
            ]
        }

        try:
            response = requests.post(
                self.endpoint,
                headers=headers,
                json=payload,
                timeout=GENERATION_TIMEOUT
            )
        except requests.exceptions.RequestException as e:
            raise UpstreamGenerationError(f'Gemini API connection failed: {e}') from e

        if response.status_code != 200:
            logger.error('Gemini API error: %s - %s', response.status_code, response.text)
            raise UpstreamGenerationError(f'Gemini API error: {response.status_code} - {_error_message(response)}')

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamGenerationError('Gemini API returned a non-JSON body') from e

        text = extract_candidate_text(data)
        logger.debug('Gemini response content: %s', text[:500])
        return text


def extract_candidate_text(data):
    """Join the text parts of the first candidate in a generateContent response."""
    candidates = data.get('candidates') or []
    if not candidates:
        block_reason = (data.get('promptFeedback') or {}).get('blockReason')
        if block_reason:
            raise UpstreamGenerationError(f'Gemini blocked the request: {block_reason}')
        raise UpstreamGenerationError('No candidates returned from Gemini')

    parts = (candidates[0].get('content') or {}).get('parts') or []
    text = ''.join(part.get('text', '') for part in parts)
    if not text.strip():
        finish_reason = candidates[0].get('finishReason', 'unknown')
        raise UpstreamGenerationError(f'Gemini returned no text (finish reason: {finish_reason})')

    return text


def _error_message(response):
    try:
        return response.json()['error']['message']
    except (ValueError, KeyError, TypeError):
        return response.text[:200]
