"""
Email/password authentication delegated to Supabase Auth.
"""
from dataclasses import dataclass

from services.errors import AuthError
from services.supabase_client import SupabaseClient


@dataclass
class UserSession:
    """The signed-in user, rebuilt from the Flask session on every request.

    Tokens are replaced in place when the backend refreshes an expired session.
    """

    user_id: str
    email: str
    access_token: str
    display_name: str = ''
    refresh_token: str = ''

    @property
    def greeting_name(self):
        return self.display_name or (self.email.split('@')[0] if self.email else '') or 'User'

    def to_session(self):
        return {
            'user_id': self.user_id,
            'email': self.email,
            'access_token': self.access_token,
            'display_name': self.display_name,
            'refresh_token': self.refresh_token,
        }

    @classmethod
    def from_session(cls, data):
        if not data or not data.get('user_id') or not data.get('access_token'):
            return None
        return cls(
            user_id=data['user_id'],
            email=data.get('email', ''),
            access_token=data['access_token'],
            display_name=data.get('display_name', ''),
            refresh_token=data.get('refresh_token', ''),
        )


def session_from_auth_response(data):
    """Build a UserSession from a Supabase token/signup response body."""
    user = data.get('user') or {}
    metadata = user.get('user_metadata') or {}
    return UserSession(
        user_id=user['id'],
        email=user.get('email', ''),
        access_token=data['access_token'],
        display_name=metadata.get('full_name', ''),
        refresh_token=data.get('refresh_token', ''),
    )


class AuthService:
    def __init__(self, client=None):
        self.client = client or SupabaseClient()

    def sign_in(self, email, password):
        """Exchange email + password for a UserSession."""
        if not email or not password:
            raise AuthError('Email and password are required')

        response = self.client.request(
            'POST',
            self.client.auth_url('token'),
            error_cls=AuthError,
            params={'grant_type': 'password'},
            headers=self.client.headers(),
            json={'email': email, 'password': password},
        )
        return session_from_auth_response(response.json())

    def sign_up(self, email, password, full_name=''):
        """Register a user. Returns None when the project requires email confirmation."""
        if not email or not password:
            raise AuthError('Email and password are required')

        response = self.client.request(
            'POST',
            self.client.auth_url('signup'),
            error_cls=AuthError,
            headers=self.client.headers(),
            json={'email': email, 'password': password, 'data': {'full_name': full_name}},
        )
        data = response.json()
        if not data.get('access_token'):
            return None
        return session_from_auth_response(data)

    def sign_out(self, user):
        self.client.request(
            'POST',
            self.client.auth_url('logout'),
            error_cls=AuthError,
            headers=self.client.headers(user.access_token),
        )
