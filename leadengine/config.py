"""
Centralized configuration — env vars and service constants.
"""
import os


# ── Logging ──────────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOG_FORMAT = os.getenv('LOG_FORMAT', 'text')

# ── Redis ─────────────────────────────────────────────────────────────────────
REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')

# ── PostgreSQL ────────────────────────────────────────────────────────────────
DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///local.db')
STORE_TIMEOUT_SECONDS = int(os.getenv('STORE_TIMEOUT_SECONDS', 10))

# ── HubSpot ───────────────────────────────────────────────────────────────────
HUBSPOT_API_URL = os.getenv('HUBSPOT_API_URL', 'https://api.hubapi.com')
HUBSPOT_TIMEOUT_SECONDS = int(os.getenv('HUBSPOT_TIMEOUT_SECONDS', 10))

# ── Scoring ───────────────────────────────────────────────────────────────────
MODEL_VERSION = '1.0'
SCORING_CONFIG_PATH = os.getenv(
    'SCORING_CONFIG_PATH',
    os.path.join(os.path.dirname(__file__), 'scoring', 'scoring_config.yaml'),
)

# ── Batch rescoring ──────────────────────────────────────────────────────────
RESCORE_POOL_SIZE = int(os.getenv('RESCORE_POOL_SIZE', 10))
RESCORE_LEAD_TIMEOUT_SECONDS = int(os.getenv('RESCORE_LEAD_TIMEOUT_SECONDS', 30))
RESCORE_DEFAULT_LIMIT = 100
RESCORE_MAX_LIMIT = 500
BATCH_MAX_ITEMS = 50

# ── API keys + rate limiting ─────────────────────────────────────────────────
API_KEY_PREFIX = 'nb_live_'
API_KEY_DISPLAY_CHARS = 12
DEFAULT_RATE_LIMIT_PER_MINUTE = int(os.getenv('DEFAULT_RATE_LIMIT_PER_MINUTE', 60))
RATE_LIMIT_WINDOW_SECONDS = 60
API_PERMISSIONS = ['score_single', 'score_batch', 'webhook']

# ── Internal auth ────────────────────────────────────────────────────────────
INTERNAL_API_TOKEN = os.getenv('INTERNAL_API_TOKEN')

# ── Lead pipeline stages (ordered) ───────────────────────────────────────────
LEAD_STATUSES = [
    'Contact Pending',
    'Follow Up',
    'Viewing Booked',
    'Negotiating',
    'Reserved',
    'Exchanged',
    'Completed',
    'Not Proceeding',
    'Duplicate',
]
