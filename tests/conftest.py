import os

# config.py exits when these are missing, so set them before any app import
os.environ.setdefault('GEMINI_API_KEY', 'test-gemini-key')
os.environ.setdefault('SUPABASE_URL', 'https://project.supabase.co')
os.environ.setdefault('SUPABASE_ANON_KEY', 'test-anon-key')
os.environ.setdefault('APP_SECRET_KEY', 'test-secret-key')

import copy
import json
from datetime import datetime, timezone

import pytest

from services.auth import UserSession
from services.models import GenerationRequest


def caption(i, style='curiosity', cta='comment'):
    return {
        'text': f'Caption number {i} with a hook?',
        'style': style,
        'cta': cta,
        'reason': f'Reason {i}',
    }


SAMPLE_RESULT = {
    'photo_summary': 'A person holding a coffee cup by a sunny window.',
    'detected_mood': 'calm',
    'captions': [caption(i) for i in range(1, 11)],
    'hashtags': ['#coffee', '#morning', '#slowliving'],
    'why_it_works': ['Questions invite replies', 'Warm tone fits friends'],
    'content_warnings': [],
}


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code=200, json_data=None, content=b'', headers=None, text=None):
        self.status_code = status_code
        self._json = json_data
        self.content = content
        self.headers = headers or {}
        if text is not None:
            self.text = text
        elif json_data is not None:
            self.text = json.dumps(json_data)
        else:
            self.text = content.decode('utf-8', errors='replace')

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if self._json is None:
            raise ValueError('No JSON body')
        return self._json


class RecordingRequests:
    """Replaces requests.request and returns queued responses in order."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def __call__(self, method, url, **kwargs):
        self.calls.append({'method': method, 'url': url, **kwargs})
        return self.responses.pop(0)


class InMemoryHistoryStore:
    """History store double keyed the same way as the generations table."""

    def __init__(self):
        self.rows = []
        self.count_override = None

    def insert(self, user, row):
        stored = dict(row, id=f'gen-{len(self.rows) + 1}', user_id=user.user_id,
                      created_at=datetime.now(timezone.utc).isoformat())
        self.rows.append(stored)
        return stored

    def list(self, user, limit=5):
        own = [r for r in self.rows if r['user_id'] == user.user_id]
        return list(reversed(own))[:limit]

    def delete(self, user, entry_id):
        before = len(self.rows)
        self.rows = [r for r in self.rows if not (r['id'] == entry_id and r['user_id'] == user.user_id)]
        return before - len(self.rows)

    def clear(self, user):
        before = len(self.rows)
        self.rows = [r for r in self.rows if r['user_id'] != user.user_id]
        return before - len(self.rows)

    def count_today(self, user, now=None):
        if self.count_override is not None:
            return self.count_override
        return len([r for r in self.rows if r['user_id'] == user.user_id])


@pytest.fixture
def result_payload():
    return copy.deepcopy(SAMPLE_RESULT)


@pytest.fixture
def request_payload():
    return {
        'imageUrl': 'https://project.supabase.co/storage/v1/object/public/uploads/u1/1.jpg',
        'goal': 'get_more_comments',
        'platform': 'Instagram',
        'audience': 'friends',
        'language': 'English',
        'captionLength': 'short',
        'emojiLevel': 'normal',
    }


@pytest.fixture
def make_request(request_payload):
    def factory(**overrides):
        return GenerationRequest.from_payload(dict(request_payload, **overrides))
    return factory


@pytest.fixture
def user():
    return UserSession(user_id='user-1', email='ada@example.com', access_token='token-1',
                       display_name='Ada')


@pytest.fixture
def other_user():
    return UserSession(user_id='user-2', email='bob@example.com', access_token='token-2')
