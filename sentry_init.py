import logging

import sentry_sdk
from sentry_sdk.integrations.flask import FlaskIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from config import Settings

logger = logging.getLogger(__name__)


def init_sentry(settings: Settings) -> bool:
    """Initialize Sentry if a DSN is configured. Returns True if initialized."""
    if not settings.sentry_dsn:
        return False

    # breadcrumbs from INFO, events from ERROR
    logging_integration = LoggingIntegration(level=logging.INFO, event_level=logging.ERROR)
    try:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            integrations=[FlaskIntegration(), logging_integration],
            traces_sample_rate=settings.sentry_traces_sample_rate,
            environment=settings.environment,
            release=settings.release,
            send_default_pii=False,
        )
        return True
    except Exception:
        logger.exception('failed to init sentry')
        return False


def capture_exception(exc: Exception):
    try:
        sentry_sdk.capture_exception(exc)
    except Exception:
        logger.debug('sentry capture failed', exc_info=True)


def set_tag(key: str, value):
    try:
        sentry_sdk.set_tag(key, value)
    except Exception:
        logger.debug('sentry set_tag failed', exc_info=True)
