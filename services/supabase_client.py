"""
Thin REST client for the hosted Supabase project.

Auth, row storage and object storage all live on the platform; this module
only shapes HTTP calls. Calls made on behalf of a user carry that user's
access token so the project's row level security applies.
"""
import logging

import requests

from config import SUPABASE_URL, SUPABASE_ANON_KEY, SUPABASE_TIMEOUT
from services.errors import AuthError, BackendError, SessionExpired

logger = logging.getLogger(__name__)


class SupabaseClient:
    def __init__(self, url=SUPABASE_URL, anon_key=SUPABASE_ANON_KEY, timeout=SUPABASE_TIMEOUT):
        self.url = url.rstrip('/')
        self.anon_key = anon_key
        self.timeout = timeout

    def headers(self, access_token=None, **extra):
        headers = {
            'apikey': self.anon_key,
            'Authorization': f'Bearer {access_token or self.anon_key}',
        }
        headers.update(extra)
        return headers

    def rest_url(self, table):
        return f'{self.url}/rest/v1/{table}'

    def auth_url(self, path):
        return f'{self.url}/auth/v1/{path.lstrip("/")}'

    def storage_url(self, bucket, path):
        return f'{self.url}/storage/v1/object/{bucket}/{path}'

    def public_object_url(self, bucket, path):
        return f'{self.url}/storage/v1/object/public/{bucket}/{path}'

    def request(self, method, url, error_cls=BackendError, user=None, **kwargs):
        """Send a request and raise error_cls on transport errors or non-2xx responses.

        When `user` is given the call is made with their access token. A 401
        triggers one refresh of that token (updating `user` in place) and a
        single retry; SessionExpired is raised if the refresh is not possible.
        """
        kwargs.setdefault('timeout', self.timeout)
        response = self._send(method, url, error_cls, **kwargs)

        if response.status_code == 401 and user is not None:
            self.refresh_session(user)
            kwargs['headers'] = dict(kwargs.get('headers') or {},
                                     Authorization=f'Bearer {user.access_token}')
            response = self._send(method, url, error_cls, **kwargs)
            if response.status_code == 401:
                raise SessionExpired()

        if not response.ok:
            message = error_message(response)
            logger.warning('Supabase %s %s failed: %s %s', method, url, response.status_code, message)
            raise error_cls(message, status_code=response.status_code)

        return response

    def refresh_session(self, user):
        """Exchange user's refresh token for new tokens, updating user in place."""
        if not user.refresh_token:
            raise SessionExpired()

        response = self._send(
            'POST', self.auth_url('token'), AuthError,
            params={'grant_type': 'refresh_token'},
            headers=self.headers(),
            json={'refresh_token': user.refresh_token},
            timeout=self.timeout,
        )
        if not response.ok:
            logger.warning('Token refresh for %s failed: %s %s',
                           user.user_id, response.status_code, error_message(response))
            raise SessionExpired()

        data = response.json()
        user.access_token = data['access_token']
        user.refresh_token = data.get('refresh_token') or user.refresh_token
        logger.info('Refreshed access token for user %s', user.user_id)

    def _send(self, method, url, error_cls, **kwargs):
        try:
            return requests.request(method, url, **kwargs)
        except requests.exceptions.RequestException as e:
            raise error_cls(f'Backend connection failed: {e}') from e


def error_message(response):
    """Pick the human readable message out of a Supabase error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or f'HTTP {response.status_code}'

    if isinstance(body, dict):
        for key in ('msg', 'message', 'error_description', 'error'):
            if body.get(key):
                return str(body[key])
    return f'HTTP {response.status_code}'


def parse_content_range_total(value):
    """Return the total from a PostgREST Content-Range header like '0-4/17' or '*/0'."""
    if not value or '/' not in value:
        return None
    total = value.rsplit('/', 1)[1]
    return int(total) if total.isdigit() else None
