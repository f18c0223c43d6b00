#!/usr/bin/env python3
import os
import logging
from typing import Optional

from flask import Flask, request, abort, jsonify
from linebot import LineBotApi, WebhookParser
from linebot.exceptions import InvalidSignatureError

import hotpepper
from config import Settings, ENV_KEYS, load_settings
from handlers import EventDispatcher
from hotpepper import SearchError, format_coordinate
from utils_carousel import columns_to_dict
from sentry_init import init_sentry

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    # logging configuration (env: LOG_LEVEL, LOG_FILE)
    if settings.log_file:
        handlers = [logging.FileHandler(settings.log_file), logging.StreamHandler()]
    else:
        handlers = [logging.StreamHandler()]
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO), format='%(asctime)s %(levelname)s %(message)s', handlers=handlers)


def create_app(settings: Optional[Settings] = None, line_bot_api: Optional[LineBotApi] = None, lookup=None) -> Flask:
    """Build the webhook app.

    A missing or malformed configuration raises ConfigError here, which stops
    the process before it starts serving.
    """
    if settings is None:
        settings = load_settings()
    configure_logging(settings)

    if init_sentry(settings):
        logger.info('Sentry initialized')

    if line_bot_api is None:
        line_bot_api = LineBotApi(settings.channel_access_token)
    parser = WebhookParser(settings.channel_secret)
    lookup = lookup or hotpepper.lookup
    dispatcher = EventDispatcher(line_bot_api, settings, lookup=lookup)

    app = Flask(__name__)
    app.config['SETTINGS'] = settings
    app.config['DISPATCHER'] = dispatcher

    @app.route('/healthz', methods=['GET'])
    def healthz():
        return 'ok', 200

    @app.route('/callback', methods=['POST'])
    def callback():
        signature = request.headers.get('X-Line-Signature', '')
        body = request.get_data(as_text=True)
        try:
            events = parser.parse(body, signature)
        except InvalidSignatureError:
            logger.info('invalid signature')
            abort(400)
        except Exception:
            logger.exception('failed to parse webhook body')
            abort(500)

        report = dispatcher.handle(events)
        if report.errors:
            logger.info('handled %d events: %d replies, %d errors', len(events), len(report.replies), len(report.errors))
        return 'OK', 200

    # --- Debug endpoints (safe: do NOT return secrets) ---
    @app.route('/_debug/env_presence', methods=['GET'])
    def _debug_env_presence():
        # presence only, never values
        return {k: (os.getenv(k) is not None) for k in ENV_KEYS}, 200

    @app.route('/_debug/search', methods=['GET'])
    def _debug_search():
        """Run the restaurant search for ?lat=&lng= and return the carousel columns as JSON."""
        try:
            lat = format_coordinate(float(request.args['lat']))
            lng = format_coordinate(float(request.args['lng']))
        except (KeyError, ValueError):
            return {'error': 'lat and lng must be numbers'}, 400

        try:
            columns = lookup(lat, lng, api_key=settings.hotpepper_api_key,
                             endpoint=settings.hotpepper_endpoint, timeout=settings.search_timeout)
        except SearchError as e:
            return {'error': str(e), 'kind': e.kind, 'status_code': e.status_code}, 502

        return jsonify({'lat': lat, 'lng': lng, 'columns': columns_to_dict(columns)})

    return app


app = create_app()


if __name__ == '__main__':
    app.run(host='0.0.0.0', port=app.config['SETTINGS'].port)
