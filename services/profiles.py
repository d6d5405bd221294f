from config import DEFAULT_LANGUAGE, PROFILES_TABLE
from services.supabase_client import SupabaseClient


class ProfileStore:
    """User preferences kept in the Supabase `profiles` table."""

    def __init__(self, client=None, table=PROFILES_TABLE):
        self.client = client or SupabaseClient()
        self.table = table

    def get_default_language(self, user):
        response = self.client.request(
            'GET', self.client.rest_url(self.table),
            user=user,
            headers=self.client.headers(user.access_token),
            params={'select': 'default_language', 'id': f'eq.{user.user_id}'},
        )
        rows = response.json()
        if rows and rows[0].get('default_language'):
            return rows[0]['default_language']
        return DEFAULT_LANGUAGE

    def save_default_language(self, user, language):
        # Upsert on the primary key
        self.client.request(
            'POST', self.client.rest_url(self.table),
            user=user,
            headers=self.client.headers(user.access_token, Prefer='resolution=merge-duplicates'),
            json={'id': user.user_id, 'default_language': language},
        )
