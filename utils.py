import logging

# LINE carousel column text limit when a thumbnail is shown
COLUMN_TEXT_MAX = 60


def truncate_runes(text: str, limit: int = COLUMN_TEXT_MAX) -> str:
    """Keep at most `limit` code points of `text`; no ellipsis is added."""
    if not text:
        return ''
    return text if len(text) <= limit else text[:limit]


def safe_log_event(logger: logging.Logger, message: str, **kwargs) -> None:
    """Log an event without dumping sensitive payloads. kwargs should only contain non-sensitive tags."""
    # reply tokens and message text never reach the log
    allowed = {k: v for k, v in kwargs.items() if k in ('event_type', 'message_type', 'shop_count', 'search_error')}
    logger.info('%s %s', message, allowed)
