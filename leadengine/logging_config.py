"""
Logging setup for the scoring service.

configure_logging() runs once per create_app(). LOG_FORMAT picks plain text
for local runs or one JSON object per line for the log aggregator; LOG_LEVEL
defaults to INFO. Anything passed through extra={} (api_key_prefix,
company_id, batch counts...) is carried into the JSON output as-is.
"""
import json
import logging
import os
import sys
from datetime import datetime, timezone

SERVICE_NAME = 'leadengine'

TEXT_FORMAT = '[%(asctime)s] %(levelname)s %(name)s: %(message)s'
TEXT_DATEFMT = '%Y-%m-%d %H:%M:%S'

# Third-party loggers that are noisy at INFO
_NOISY_LOGGERS = [
    'urllib3',
    'requests',
    'sqlalchemy.engine',
    'werkzeug',
]


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    _RESERVED = set(vars(logging.LogRecord('', 0, '', 0, '', None, None))) | {'message', 'asctime'}

    def format(self, record):
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'service': SERVICE_NAME,
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        entry.update({
            key: value for key, value in record.__dict__.items()
            if key not in self._RESERVED and not key.startswith('_')
        })
        if record.exc_info and record.exc_info[0] is not None:
            entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _build_handler(level, log_format):
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    if log_format == 'json':
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt=TEXT_DATEFMT))
    return handler


def configure_logging(app=None):
    """
    Point the root logger at stderr with the configured format and level.

    Environment variables:
        LOG_LEVEL   Python log level name (default: INFO)
        LOG_FORMAT  "text" (default) or "json"

    With an app, Flask's own logger is routed through the root handler so
    request errors come out in the same format.
    """
    level = getattr(logging, os.getenv('LOG_LEVEL', 'INFO').upper(), logging.INFO)
    if not isinstance(level, int):
        level = logging.INFO
    log_format = os.getenv('LOG_FORMAT', 'text').lower()

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(_build_handler(level, log_format))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if app is not None:
        app.logger.handlers.clear()
        app.logger.propagate = True
