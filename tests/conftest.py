import os
import json

import pytest
import requests
from linebot import WebhookParser

from config import Settings
from scripts.send_test_webhook import make_signature

SECRET = 'fake_secret'


def pytest_configure(config):
    # 設定環境變數以避免 app 在 import 時失敗
    os.environ.setdefault('LINE_CHANNEL_ACCESS_TOKEN', 'fake_token')
    os.environ.setdefault('LINE_CHANNEL_SECRET', SECRET)
    os.environ.setdefault('HOTPEPPER_API_KEY', 'fake_key')
    os.environ.setdefault('PORT', '5000')


class DummyLineApi:
    def __init__(self, fail_tokens=()):
        self.replies = []
        self.fail_tokens = set(fail_tokens)

    def reply_message(self, reply_token, message):
        if reply_token in self.fail_tokens:
            raise requests.ConnectionError('reply endpoint unreachable')
        self.replies.append((reply_token, message))


def message_event(message, reply_token='rt'):
    return {
        'type': 'message',
        'mode': 'active',
        'timestamp': 1700000000000,
        'replyToken': reply_token,
        'source': {'type': 'user', 'userId': 'U1234567890'},
        'message': message,
    }


def text_event(text, reply_token='rt'):
    return message_event({'id': '1', 'type': 'text', 'text': text}, reply_token)


def location_event(lat, lng, reply_token='rt'):
    return message_event({'id': '2', 'type': 'location', 'title': 'pin', 'address': 'somewhere',
                          'latitude': lat, 'longitude': lng}, reply_token)


def image_event(reply_token='rt'):
    return message_event({'id': '3', 'type': 'image', 'contentProvider': {'type': 'line'}}, reply_token)


def signed_body(*events):
    body = json.dumps({'destination': 'U0000000000', 'events': list(events)})
    return body, make_signature(SECRET, body.encode('utf-8'))


def parse_events(*events):
    body, sig = signed_body(*events)
    return WebhookParser(SECRET).parse(body, sig)


@pytest.fixture
def settings():
    return Settings(
        channel_secret=SECRET,
        channel_access_token='fake_token',
        hotpepper_api_key='fake_key',
        port=5000,
        search_timeout=3.0,
    )


@pytest.fixture
def line_api():
    return DummyLineApi()
