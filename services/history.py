"""
Generation history and the daily quota built on top of it.

Rows live in the Supabase `generations` table. The quota is a count of the
caller's rows created since local midnight. It is advisory only: the count
and the insert that follows a generation are separate calls, so two requests
from the same user can both pass the check.
"""
from datetime import datetime
from zoneinfo import ZoneInfo

from config import DAILY_LIMIT, GENERATIONS_TABLE, HISTORY_LIMIT, QUOTA_TIMEZONE
from services.errors import BackendError
from services.supabase_client import SupabaseClient, parse_content_range_total


# =============================================================================
# Quota Policy
# =============================================================================

def start_of_day(now=None, tz_name=QUOTA_TIMEZONE):
    """Midnight of the current day in the quota timezone, timezone-aware."""
    if tz_name:
        tz = ZoneInfo(tz_name)
        now = datetime.now(tz) if now is None else now.astimezone(tz)
        return now.replace(hour=0, minute=0, second=0, microsecond=0)

    # Server local time: take midnight on the naive wall clock, then resolve
    # its offset, which differs from the current one on DST change days
    if now is None:
        now = datetime.now()
    elif now.tzinfo is not None:
        now = now.astimezone().replace(tzinfo=None)
    return now.replace(hour=0, minute=0, second=0, microsecond=0).astimezone()


def can_generate(generations_today, limit=DAILY_LIMIT):
    return generations_today < limit


def remaining_today(generations_today, limit=DAILY_LIMIT):
    return max(limit - generations_today, 0)


def build_history_row(user, request, result):
    """Shape a generations row from a request and its decoded result."""
    return {
        'user_id': user.user_id,
        'image_url': request.image_url,
        'goal': request.goal,
        'platform': request.platform,
        'audience': request.audience,
        'language': request.language,
        'caption_length': request.caption_length,
        'emoji_level': request.emoji_level,
        'result_json': result.to_dict(),
    }


# =============================================================================
# History Store
# =============================================================================

class HistoryStore:
    def __init__(self, client=None, table=GENERATIONS_TABLE):
        self.client = client or SupabaseClient()
        self.table = table

    @property
    def url(self):
        return self.client.rest_url(self.table)

    def insert(self, user, row):
        """Append a history row owned by user and return the stored record."""
        row = dict(row, user_id=user.user_id)
        response = self.client.request(
            'POST', self.url,
            user=user,
            headers=self.client.headers(user.access_token, Prefer='return=representation'),
            json=row,
        )
        stored = response.json()
        return stored[0] if isinstance(stored, list) and stored else row

    def list(self, user, limit=HISTORY_LIMIT):
        """Most recent entries first."""
        response = self.client.request(
            'GET', self.url,
            user=user,
            headers=self.client.headers(user.access_token),
            params={
                'select': '*',
                'user_id': f'eq.{user.user_id}',
                'order': 'created_at.desc',
                'limit': limit,
            },
        )
        return response.json()

    def delete(self, user, entry_id):
        """Delete one of the user's entries and return how many rows were removed.

        Zero means the id does not exist or belongs to someone else.
        """
        response = self.client.request(
            'DELETE', self.url,
            user=user,
            headers=self.client.headers(user.access_token, Prefer='return=representation'),
            params={'id': f'eq.{entry_id}', 'user_id': f'eq.{user.user_id}'},
        )
        return len(response.json() or [])

    def clear(self, user):
        """Delete every entry owned by user."""
        response = self.client.request(
            'DELETE', self.url,
            user=user,
            headers=self.client.headers(user.access_token, Prefer='return=representation'),
            params={'user_id': f'eq.{user.user_id}'},
        )
        return len(response.json() or [])

    def count(self, user, since):
        """Count the user's entries created at or after `since`."""
        response = self.client.request(
            'HEAD', self.url,
            user=user,
            headers=self.client.headers(user.access_token, Prefer='count=exact'),
            params={
                'select': 'id',
                'user_id': f'eq.{user.user_id}',
                'created_at': f'gte.{since.isoformat()}',
            },
        )
        total = parse_content_range_total(response.headers.get('Content-Range'))
        if total is None:
            raise BackendError('Backend did not return a row count')
        return total

    def count_today(self, user, now=None):
        return self.count(user, start_of_day(now))
