import logging
from typing import List, Dict, Any, Optional

import requests
from linebot.models import CarouselColumn

from utils_carousel import build_columns

DEFAULT_ENDPOINT = 'https://webservice.recruit.co.jp/hotpepper/gourmet/v1/'
DEFAULT_TIMEOUT = 5.0

logger = logging.getLogger(__name__)


class SearchError(Exception):
    NETWORK = 'network'
    DECODE = 'decode'
    EMPTY_RESULT = 'empty_result'

    def __init__(self, message: str, kind: str, status_code: Optional[int] = None, payload: Optional[Any] = None):
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code
        self.payload = payload


def format_coordinate(value: float) -> str:
    """Format a coordinate with exactly two fractional digits.

    Uses Python's correctly-rounded '.2f' formatting (ties of the exact binary
    value go to even), e.g. 35.6895 -> '35.69', 139.6917 -> '139.69'.
    """
    return f'{float(value):.2f}'


def _dig(obj: Any, *keys: str) -> str:
    for k in keys:
        if not isinstance(obj, dict):
            return ''
        obj = obj.get(k)
    return obj if isinstance(obj, str) else ''


def _normalize_shop(shop: Dict[str, Any]) -> Dict[str, str]:
    return {
        'name': _dig(shop, 'name'),
        'address': _dig(shop, 'address'),
        'image': _dig(shop, 'photo', 'mobile', 'l'),
        'url': _dig(shop, 'urls', 'pc'),
    }


def search_shops(lat: str, lng: str, *, api_key: str, endpoint: str = DEFAULT_ENDPOINT, timeout: float = DEFAULT_TIMEOUT) -> List[Dict[str, str]]:
    """Query the HotPepper gourmet API around (lat, lng) and return normalized shops.

    Raises SearchError with kind NETWORK (transport, timeout, non-2xx),
    DECODE (body is not the expected JSON shape) or EMPTY_RESULT (the API
    answered with its error envelope instead of a shop list).
    """
    params = {
        'format': 'json',
        'key': api_key,
        'lat': lat,
        'lng': lng,
    }

    try:
        resp = requests.get(endpoint, params=params, timeout=timeout)
    except requests.Timeout as e:
        raise SearchError('timeout', SearchError.NETWORK, payload=str(e)) from e
    except requests.RequestException as e:
        raise SearchError('network error', SearchError.NETWORK, payload=str(e)) from e

    if not 200 <= resp.status_code < 300:
        raise SearchError('bad status', SearchError.NETWORK, status_code=resp.status_code, payload=resp.text)

    try:
        data = resp.json()
    except ValueError as e:
        raise SearchError('invalid json', SearchError.DECODE, status_code=resp.status_code, payload=resp.text) from e

    results = data.get('results') if isinstance(data, dict) else None
    if not isinstance(results, dict):
        raise SearchError('missing results', SearchError.DECODE, status_code=resp.status_code, payload=data)

    if 'shop' not in results:
        errors = results.get('error') or []
        message = 'no shop list'
        if isinstance(errors, list) and errors and isinstance(errors[0], dict) and errors[0].get('message'):
            message = str(errors[0]['message'])
        raise SearchError(message, SearchError.EMPTY_RESULT, status_code=resp.status_code, payload=results)

    raw_shops = results.get('shop')
    if not isinstance(raw_shops, list):
        raise SearchError('shop is not a list', SearchError.DECODE, status_code=resp.status_code, payload=results)

    out = [_normalize_shop(s) for s in raw_shops if isinstance(s, dict)]
    logger.debug('hotpepper returned %d shops for lat=%s lng=%s', len(out), lat, lng)
    return out


def lookup(lat: str, lng: str, *, api_key: str, endpoint: str = DEFAULT_ENDPOINT, timeout: float = DEFAULT_TIMEOUT) -> List[CarouselColumn]:
    """Search shops near (lat, lng) and map them to carousel columns."""
    shops = search_shops(lat, lng, api_key=api_key, endpoint=endpoint, timeout=timeout)
    return build_columns(shops)
