import os
import logging
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from dotenv import dotenv_values

from hotpepper import DEFAULT_ENDPOINT, DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)

# Keys that Render's Secret Files feature may provide as /etc/secrets/<NAME>
SECRET_KEYS = (
    'LINE_CHANNEL_SECRET',
    'LINE_CHANNEL_ACCESS_TOKEN',
    'HOTPEPPER_API_KEY',
    'SENTRY_DSN',
)

ENV_KEYS = SECRET_KEYS + (
    'API_KEY',
    'PORT',
    'HOTPEPPER_ENDPOINT',
    'SEARCH_TIMEOUT_SEC',
    'CAROUSEL_IMAGE_ASPECT_RATIO',
    'LOG_LEVEL',
    'LOG_FILE',
)

ASPECT_RATIOS = ('square', 'rectangle')


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class Settings:
    channel_secret: str
    channel_access_token: str
    hotpepper_api_key: str
    port: int
    hotpepper_endpoint: str = DEFAULT_ENDPOINT
    search_timeout: float = DEFAULT_TIMEOUT
    image_aspect_ratio: str = 'square'
    log_level: str = 'INFO'
    log_file: Optional[str] = None
    sentry_dsn: Optional[str] = None
    sentry_traces_sample_rate: float = 0.1
    environment: str = 'dev'
    release: str = 'local'


def _read_env_file(environ: Mapping[str, str]) -> Dict[str, str]:
    path = environ.get('ENV_FILE')
    if path:
        if not os.path.exists(path):
            raise ConfigError(f'ENV_FILE {path} does not exist')
        values = dotenv_values(path)
    elif os.path.exists('.env'):
        values = dotenv_values('.env')
    else:
        return {}
    return {k: v for k, v in values.items() if v is not None}


def _read_secret_files(keys, base_path: str) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for k in keys:
        p = os.path.join(base_path, k)
        if not os.path.exists(p):
            continue
        try:
            with open(p, 'r', encoding='utf-8') as f:
                v = f.read().strip()
        except OSError:
            logger.exception('failed loading secret file %s', p)
            continue
        if v:
            out[k] = v
    return out


def _parse_port(raw: str) -> int:
    try:
        port = int(raw)
    except ValueError:
        raise ConfigError(f'PORT must be an integer, got {raw!r}')
    if not 0 < port < 65536:
        raise ConfigError(f'PORT out of range: {port}')
    return port


def _parse_float(name: str, raw: str) -> float:
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f'{name} must be a number, got {raw!r}')


def load_settings(environ: Optional[Mapping[str, str]] = None, secrets_dir: str = '/etc/secrets') -> Settings:
    """Build Settings from a dotenv file, secret files and the environment.

    Later sources win: dotenv file < /etc/secrets/<NAME> < environment.
    Raises ConfigError when a required value is missing or malformed.
    """
    if environ is None:
        environ = os.environ

    merged: Dict[str, str] = {}
    merged.update(_read_env_file(environ))
    merged.update(_read_secret_files(SECRET_KEYS, secrets_dir))
    merged.update({k: v for k, v in environ.items() if v != ''})

    required = {
        'LINE_CHANNEL_SECRET': merged.get('LINE_CHANNEL_SECRET'),
        'LINE_CHANNEL_ACCESS_TOKEN': merged.get('LINE_CHANNEL_ACCESS_TOKEN'),
        'HOTPEPPER_API_KEY': merged.get('HOTPEPPER_API_KEY') or merged.get('API_KEY'),
        'PORT': merged.get('PORT'),
    }
    missing = [k for k, v in required.items() if not v]
    if missing:
        raise ConfigError('missing required settings: ' + ', '.join(missing))

    timeout = _parse_float('SEARCH_TIMEOUT_SEC', merged.get('SEARCH_TIMEOUT_SEC', str(DEFAULT_TIMEOUT)))
    if timeout <= 0:
        raise ConfigError('SEARCH_TIMEOUT_SEC must be positive')

    aspect = merged.get('CAROUSEL_IMAGE_ASPECT_RATIO', 'square').lower()
    if aspect not in ASPECT_RATIOS:
        raise ConfigError(f'CAROUSEL_IMAGE_ASPECT_RATIO must be one of {ASPECT_RATIOS}')

    return Settings(
        channel_secret=required['LINE_CHANNEL_SECRET'],
        channel_access_token=required['LINE_CHANNEL_ACCESS_TOKEN'],
        hotpepper_api_key=required['HOTPEPPER_API_KEY'],
        port=_parse_port(required['PORT']),
        hotpepper_endpoint=merged.get('HOTPEPPER_ENDPOINT', DEFAULT_ENDPOINT),
        search_timeout=timeout,
        image_aspect_ratio=aspect,
        log_level=merged.get('LOG_LEVEL', 'INFO').upper(),
        log_file=merged.get('LOG_FILE'),
        sentry_dsn=merged.get('SENTRY_DSN'),
        sentry_traces_sample_rate=_parse_float('SENTRY_TRACES_SAMPLE_RATE', merged.get('SENTRY_TRACES_SAMPLE_RATE', '0.1')),
        environment=merged.get('ENVIRONMENT', 'dev'),
        release=merged.get('RELEASE', 'local'),
    )
