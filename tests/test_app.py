from io import BytesIO

import pytest
from PIL import Image

import app as app_module
import config
from conftest import InMemoryHistoryStore
from services.errors import BackendError, ResponseParseError, SessionExpired, UpstreamFetchError
from services.models import GenerationResult


class StubGenerator:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.requests = []

    def generate(self, request):
        self.requests.append(request)
        if self.error:
            raise self.error
        return self.result


class StubProfiles:
    def __init__(self, language='Spanish'):
        self.language = language
        self.saved = []

    def get_default_language(self, user):
        return self.language

    def save_default_language(self, user, language):
        self.saved.append((user.user_id, language))
        self.language = language


@pytest.fixture
def result(result_payload):
    return GenerationResult.model_validate(result_payload)


@pytest.fixture
def generator(monkeypatch, result):
    stub = StubGenerator(result=result)
    monkeypatch.setattr(app_module, 'generator', stub)
    return stub


@pytest.fixture
def history(monkeypatch):
    store = InMemoryHistoryStore()
    monkeypatch.setattr(app_module, 'history_store', store)
    return store


@pytest.fixture
def profiles(monkeypatch):
    stub = StubProfiles()
    monkeypatch.setattr(app_module, 'profile_store', stub)
    return stub


@pytest.fixture
def client():
    app_module.app.config['TESTING'] = True
    with app_module.app.test_client() as client:
        yield client


@pytest.fixture
def logged_in(client, user):
    with client.session_transaction() as sess:
        sess['user'] = user.to_session()
    return client


# =============================================================================
# Public API
# =============================================================================

def test_api_generate_requires_image_url(client, generator, request_payload):
    del request_payload['imageUrl']

    resp = client.post('/api/generate', json=request_payload)

    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'Image URL is required'}
    assert generator.requests == []


def test_api_generate_rejects_unknown_platform(client, generator, request_payload):
    request_payload['platform'] = 'MySpace'

    resp = client.post('/api/generate', json=request_payload)

    assert resp.status_code == 400
    assert 'platform' in resp.get_json()['error']


def test_api_generate_returns_result(client, generator, request_payload, result_payload):
    resp = client.post('/api/generate', json=request_payload)

    assert resp.status_code == 200
    body = resp.get_json()
    assert len(body['captions']) == 10
    assert body['photo_summary'] == result_payload['photo_summary']
    assert generator.requests[0].emoji_level == 'normal'


def test_api_generate_hides_raw_text_by_default(client, generator, request_payload):
    generator.error = ResponseParseError('Failed to parse AI response', raw='not json')

    resp = client.post('/api/generate', json=request_payload)

    assert resp.status_code == 500
    assert resp.get_json() == {'error': 'Failed to parse AI response'}


def test_api_generate_can_expose_raw_text(monkeypatch, client, generator, request_payload):
    monkeypatch.setattr(config, 'EXPOSE_RAW_RESPONSE', True)
    generator.error = ResponseParseError('Failed to parse AI response', raw='not json')

    resp = client.post('/api/generate', json=request_payload)

    assert resp.status_code == 500
    assert resp.get_json() == {'error': 'Failed to parse AI response', 'raw': 'not json'}


def test_api_generate_upstream_fetch_failure(client, generator, request_payload):
    generator.error = UpstreamFetchError('Failed to fetch image from URL (status 404)')

    resp = client.post('/api/generate', json=request_payload)

    assert resp.status_code == 500
    assert resp.get_json()['error'].startswith('Failed to fetch image')


# =============================================================================
# Dashboard generation
# =============================================================================

def test_generate_requires_login(client, generator, history, request_payload):
    resp = client.post('/generate', json=request_payload)

    assert resp.status_code == 401
    assert generator.requests == []


def test_generate_saves_history_and_reports_remaining(logged_in, generator, history, request_payload):
    resp = logged_in.post('/generate', json=request_payload)

    assert resp.status_code == 200
    body = resp.get_json()
    assert body['remaining'] == 2
    assert body['can_generate'] is True
    assert body['entry_id'] == 'gen-1'
    assert 'Analysis Complete' in body['html']
    assert len(history.rows) == 1
    assert history.rows[0]['image_url'] == request_payload['imageUrl']
    assert len(history.rows[0]['result_json']['captions']) == 10


def test_generate_blocked_at_daily_limit(logged_in, generator, history, request_payload):
    history.count_override = 3

    resp = logged_in.post('/generate', json=request_payload)

    assert resp.status_code == 429
    assert generator.requests == []
    assert history.rows == []


def test_generate_failure_is_not_saved(logged_in, generator, history, request_payload):
    generator.error = UpstreamFetchError('Failed to fetch image from URL')

    resp = logged_in.post('/generate', json=request_payload)

    assert resp.status_code == 500
    assert history.rows == []


def test_generate_still_returns_result_when_history_save_fails(monkeypatch, logged_in, generator,
                                                             history, request_payload):
    def broken_insert(user, row):
        raise BackendError('insert failed')

    monkeypatch.setattr(history, 'insert', broken_insert)

    resp = logged_in.post('/generate', json=request_payload)

    assert resp.status_code == 200
    assert resp.get_json()['entry_id'] is None


def test_usage_endpoint(logged_in, history, user):
    history.count_override = 1

    resp = logged_in.get('/usage')

    assert resp.get_json() == {'generations_today': 1, 'limit': 3, 'remaining': 2, 'can_generate': True}


# =============================================================================
# History
# =============================================================================

def test_delete_foreign_entry_is_forbidden(logged_in, history, other_user):
    history.insert(other_user, {'goal': 'go_viral'})

    resp = logged_in.delete('/history/gen-1')

    assert resp.status_code == 403
    assert 'permission' in resp.get_json()['error']
    assert len(history.rows) == 1


def test_delete_own_entry(logged_in, history, user):
    history.insert(user, {'goal': 'go_viral'})

    resp = logged_in.delete('/history/gen-1')

    assert resp.status_code == 200
    assert history.rows == []


def test_clear_history_keeps_other_users(logged_in, history, user, other_user):
    history.insert(user, {'goal': 'go_viral'})
    history.insert(other_user, {'goal': 'soft_sell'})

    resp = logged_in.post('/history/clear')

    assert resp.get_json()['deleted'] == 1
    assert [r['user_id'] for r in history.rows] == ['user-2']


def test_history_page_renders_entries(logged_in, history, user, result_payload):
    history.insert(user, {'goal': 'soft_sell', 'platform': 'TikTok', 'result_json': result_payload})

    resp = logged_in.get('/history')

    assert resp.status_code == 200
    html = resp.get_data(as_text=True)
    assert 'soft sell' in html
    assert result_payload['captions'][0]['text'] in html


# =============================================================================
# Pages / settings
# =============================================================================

def test_pages_redirect_when_logged_out(client):
    for path in ('/app', '/history', '/settings'):
        resp = client.get(path)
        assert resp.status_code == 302
        assert resp.headers['Location'].endswith('/login')


def test_dashboard_uses_profile_language(logged_in, history, profiles):
    resp = logged_in.get('/app')

    assert resp.status_code == 200
    html = resp.get_data(as_text=True)
    assert '<option value="Spanish" selected>' in html
    assert '3 Left Today' in html


def test_save_settings(logged_in, profiles):
    resp = logged_in.post('/settings', json={'default_language': 'French'})

    assert resp.status_code == 200
    assert profiles.saved == [('user-1', 'French')]


def test_save_settings_rejects_unknown_language(logged_in, profiles):
    resp = logged_in.post('/settings', json={'default_language': 'Klingon'})

    assert resp.status_code == 400
    assert profiles.saved == []


def test_upload_requires_file(logged_in):
    resp = logged_in.post('/upload', data={})

    assert resp.status_code == 400


def test_upload_rejects_oversized_image(monkeypatch, logged_in):
    buffer = BytesIO()
    Image.new('1', (64, 64)).save(buffer, format='PNG')
    monkeypatch.setattr(Image, 'MAX_IMAGE_PIXELS', 1000)

    resp = logged_in.post('/upload', data={'image': (BytesIO(buffer.getvalue()), 'huge.png', 'image/png')},
                          content_type='multipart/form-data')

    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'Image is too large'}


# =============================================================================
# Expired sessions
# =============================================================================

class ExpiringHistoryStore(InMemoryHistoryStore):
    def count_today(self, user, now=None):
        raise SessionExpired()


def test_expired_session_clears_login_for_json_routes(monkeypatch, logged_in):
    monkeypatch.setattr(app_module, 'history_store', ExpiringHistoryStore())

    resp = logged_in.get('/usage')

    assert resp.status_code == 401
    with logged_in.session_transaction() as sess:
        assert 'user' not in sess


def test_expired_session_redirects_pages_to_login(monkeypatch, logged_in, profiles):
    monkeypatch.setattr(app_module, 'history_store', ExpiringHistoryStore())

    resp = logged_in.get('/app')

    assert resp.status_code == 302
    assert resp.headers['Location'].endswith('/login')


def test_refreshed_tokens_are_saved_to_session(monkeypatch, logged_in, history):
    def refreshing_count(user, now=None):
        user.access_token = 'token-2'
        user.refresh_token = 'refresh-2'
        return 0

    monkeypatch.setattr(history, 'count_today', refreshing_count)

    resp = logged_in.get('/usage')

    assert resp.status_code == 200
    with logged_in.session_transaction() as sess:
        assert sess['user']['access_token'] == 'token-2'
        assert sess['user']['refresh_token'] == 'refresh-2'
