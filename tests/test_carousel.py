from linebot.models import TemplateSendMessage

from utils import truncate_runes
from utils_carousel import build_column, build_carousel_message, columns_to_dict, OPEN_LINK_LABEL, CAROUSEL_ALT_TEXT


def test_truncate_keeps_short_text():
    assert truncate_runes('東京都港区') == '東京都港区'
    assert truncate_runes('') == ''
    assert truncate_runes(None) == ''


def test_truncate_exactly_sixty_is_unchanged():
    s = 'あ' * 60
    assert truncate_runes(s) == s


def test_truncate_counts_code_points_not_bytes():
    # 3-byte and 4-byte UTF-8 characters
    s = '東京都千代田区丸の内🍣' * 8
    out = truncate_runes(s)
    assert len(out) == 60
    assert out == s[:60]
    assert not out.endswith('…')


def test_truncate_sixty_one_drops_last():
    s = 'a' * 60 + '🍜'
    assert truncate_runes(s) == 'a' * 60


def test_build_column_fields():
    col = build_column({'name': 'Cafe X', 'address': '1' * 70, 'image': 'http://img', 'url': 'http://link'})
    assert col.title == 'Cafe X'
    assert col.text == '1' * 60
    assert col.thumbnail_image_url == 'http://img'
    assert col.image_background_color == '#FFFFFF'
    assert col.actions[0].label == OPEN_LINK_LABEL
    assert col.actions[0].uri == 'http://link'


def test_build_column_without_photo_has_no_thumbnail():
    col = build_column({'name': 'X', 'address': 'addr', 'image': '', 'url': 'http://link'})
    assert col.thumbnail_image_url is None


def test_carousel_message_wire_format():
    cols = [build_column({'name': 'A', 'address': 'a', 'image': 'http://a', 'url': 'http://la'}),
            build_column({'name': 'B', 'address': 'b', 'image': 'http://b', 'url': 'http://lb'})]
    msg = build_carousel_message(cols, aspect_ratio='square')
    assert isinstance(msg, TemplateSendMessage)
    data = msg.as_json_dict()
    assert data['altText'] == CAROUSEL_ALT_TEXT
    assert data['template']['type'] == 'carousel'
    assert data['template']['imageAspectRatio'] == 'square'
    assert data['template']['imageSize'] == 'cover'
    assert [c['title'] for c in data['template']['columns']] == ['A', 'B']


def test_columns_to_dict_uses_camel_case():
    cols = [build_column({'name': 'A', 'address': 'a', 'image': 'http://a', 'url': 'http://la'})]
    out = columns_to_dict(cols)
    assert out[0]['thumbnailImageUrl'] == 'http://a'
    assert out[0]['actions'][0]['type'] == 'uri'
