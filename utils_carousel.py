from typing import List, Dict, Any

from linebot.models import CarouselColumn, CarouselTemplate, TemplateSendMessage, URIAction

from utils import truncate_runes, COLUMN_TEXT_MAX

CAROUSEL_ALT_TEXT = 'レストラン一覧'
OPEN_LINK_LABEL = 'ホットペッパーで開く'
IMAGE_BACKGROUND = '#FFFFFF'


def build_column(shop: Dict[str, Any]) -> CarouselColumn:
    """Map one normalized shop dict onto a carousel column."""
    return CarouselColumn(
        thumbnail_image_url=shop.get('image') or None,
        title=shop.get('name') or '',
        text=truncate_runes(shop.get('address') or '', COLUMN_TEXT_MAX),
        image_background_color=IMAGE_BACKGROUND,
        actions=[URIAction(label=OPEN_LINK_LABEL, uri=shop.get('url') or '')],
    )


def build_columns(shops: List[Dict[str, Any]]) -> List[CarouselColumn]:
    return [build_column(s) for s in shops]


def build_carousel_message(columns: List[CarouselColumn], aspect_ratio: str = 'square') -> TemplateSendMessage:
    """Wrap columns in a template carousel message.

    The column count is not capped here; LINE rejects carousels above its limit.
    """
    template = CarouselTemplate(columns=columns, image_aspect_ratio=aspect_ratio, image_size='cover')
    return TemplateSendMessage(alt_text=CAROUSEL_ALT_TEXT, template=template)


def columns_to_dict(columns: List[CarouselColumn]) -> List[Dict[str, Any]]:
    """Return JSON-ready dicts in LINE's camelCase wire format."""
    return [c.as_json_dict() for c in columns]
