import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence, Tuple

import requests
from linebot import LineBotApi
from linebot.exceptions import LineBotApiError
from linebot.models import MessageEvent, TextMessage, LocationMessage, TextSendMessage, SendMessage

import hotpepper
from config import Settings
from hotpepper import SearchError, format_coordinate
from utils import safe_log_event
from utils_carousel import build_carousel_message
from sentry_init import capture_exception as sentry_capture_exception, set_tag as sentry_set_tag

logger = logging.getLogger(__name__)

NO_RESULTS_TEXT = '近くにお店が見つかりませんでした。別の場所で試してみてください。'
SEARCH_FAILED_TEXT = 'お店の検索に失敗しました。しばらくしてからもう一度お試しください。'


@dataclass
class DispatchReport:
    """Outcome of one webhook batch: replies sent and errors logged."""
    replies: List[Tuple[str, SendMessage]] = field(default_factory=list)
    errors: List[Exception] = field(default_factory=list)


class EventDispatcher:
    """Turn parsed LINE events into at most one reply each.

    Text messages are echoed verbatim, location messages get a carousel of
    nearby restaurants, everything else is ignored. Events are handled in
    arrival order and a failure on one event never stops the rest.
    """

    def __init__(self, line_bot_api: LineBotApi, settings: Settings, lookup: Optional[Callable[..., Any]] = None):
        self.line_bot_api = line_bot_api
        self.settings = settings
        self.lookup = lookup or hotpepper.lookup

    def handle(self, events: Sequence[Any]) -> DispatchReport:
        report = DispatchReport()
        for event in events:
            try:
                self.dispatch(event, report)
            except Exception as e:
                logger.exception('unexpected error while handling event')
                sentry_capture_exception(e)
                report.errors.append(e)
        return report

    def dispatch(self, event: Any, report: DispatchReport) -> None:
        if not isinstance(event, MessageEvent):
            return
        message = event.message
        if isinstance(message, TextMessage):
            self.on_text(event, report)
        elif isinstance(message, LocationMessage):
            self.on_location(event, report)
        else:
            safe_log_event(logger, 'ignored_message', event_type='message', message_type=getattr(message, 'type', None))

    def on_text(self, event: MessageEvent, report: DispatchReport) -> None:
        safe_log_event(logger, 'received_text', event_type='message', message_type='text')
        self._reply(event.reply_token, TextSendMessage(text=event.message.text), report)

    def on_location(self, event: MessageEvent, report: DispatchReport) -> None:
        lat = format_coordinate(event.message.latitude)
        lng = format_coordinate(event.message.longitude)
        try:
            columns = self.lookup(
                lat, lng,
                api_key=self.settings.hotpepper_api_key,
                endpoint=self.settings.hotpepper_endpoint,
                timeout=self.settings.search_timeout,
            )
        except SearchError as e:
            logger.warning('restaurant search failed (%s): %s', e.kind, e)
            sentry_set_tag('search_error', e.kind)
            sentry_capture_exception(e)
            report.errors.append(e)
            self._reply(event.reply_token, TextSendMessage(text=SEARCH_FAILED_TEXT), report)
            return

        safe_log_event(logger, 'restaurant_search', event_type='message', message_type='location', shop_count=len(columns))
        if not columns:
            self._reply(event.reply_token, TextSendMessage(text=NO_RESULTS_TEXT), report)
            return
        message = build_carousel_message(columns, aspect_ratio=self.settings.image_aspect_ratio)
        self._reply(event.reply_token, message, report)

    def _reply(self, reply_token: str, message: SendMessage, report: DispatchReport) -> None:
        try:
            self.line_bot_api.reply_message(reply_token, message)
        except (LineBotApiError, requests.RequestException) as e:
            logger.error('reply failed: %s', e)
            sentry_capture_exception(e)
            report.errors.append(e)
            return
        report.replies.append((reply_token, message))
