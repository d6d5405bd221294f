"""
Unified configuration for the Caption AI app.
"""
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env.local
load_dotenv('.env.local')

# =============================================================================
# API Keys
# =============================================================================

GEMINI_API_KEY = os.getenv('GEMINI_API_KEY')
if not GEMINI_API_KEY:
    print('ERROR: GEMINI_API_KEY is not set in .env.local')
    sys.exit(1)

SUPABASE_URL = os.getenv('SUPABASE_URL')
if not SUPABASE_URL:
    print('ERROR: SUPABASE_URL is not set in .env.local')
    sys.exit(1)
SUPABASE_URL = SUPABASE_URL.rstrip('/')

SUPABASE_ANON_KEY = os.getenv('SUPABASE_ANON_KEY')
if not SUPABASE_ANON_KEY:
    print('ERROR: SUPABASE_ANON_KEY is not set in .env.local')
    sys.exit(1)

APP_SECRET_KEY = os.getenv('APP_SECRET_KEY')
if not APP_SECRET_KEY:
    print('ERROR: APP_SECRET_KEY is not set in .env.local')
    sys.exit(1)

# =============================================================================
# Gemini Settings
# =============================================================================

GEMINI_MODEL = os.getenv('GEMINI_MODEL', 'gemini-flash-latest')
GEMINI_API_URL = 'https://generativelanguage.googleapis.com/v1beta'

IMAGE_FETCH_TIMEOUT = 30
GENERATION_TIMEOUT = 120  # multimodal calls with a full photo are slow

# Include the model's raw text in /api/generate error bodies
EXPOSE_RAW_RESPONSE = os.getenv('EXPOSE_RAW_RESPONSE', 'False').lower() == 'true'

# =============================================================================
# Supabase Settings
# =============================================================================

SUPABASE_TIMEOUT = 30
UPLOAD_BUCKET = 'uploads'
GENERATIONS_TABLE = 'generations'
PROFILES_TABLE = 'profiles'

# =============================================================================
# Quota / History Settings
# =============================================================================

DAILY_LIMIT = 3
HISTORY_LIMIT = 5

# Timezone used to find "today's" midnight; empty means server local time
QUOTA_TIMEZONE = os.getenv('QUOTA_TIMEZONE', '')

DEFAULT_LANGUAGE = 'English'

# =============================================================================
# Flask Settings
# =============================================================================

MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16MB max upload

LOADING_MESSAGES = [
    'Scanning pixels',
    'Analyzing context',
    'Engineering hooks',
    'Optimizing reach',
    'Polishing results',
]
LOADING_MESSAGE_INTERVAL_MS = 1500

# =============================================================================
# Logging
# =============================================================================

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

logging.basicConfig(
    level=LOG_LEVEL,
    format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
)

ROOT_DIR = Path(__file__).parent
