import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

from dogtrails.overpass import OVERPASS_SERVERS


@dataclass
class Settings:
    overpass_urls: List[str] = field(default_factory=lambda: list(OVERPASS_SERVERS))
    doc_api_key: Optional[str] = None
    port: int = 3000
    log_level: str = 'INFO'


def _split_urls(value):
    return [u.strip() for u in (value or '').split(',') if u.strip()]


def load_settings(environ=None):
    """Settings from the environment (and a .env file when reading os.environ)."""
    if environ is None:
        load_dotenv()
        environ = os.environ

    settings = Settings()
    urls = _split_urls(environ.get('OVERPASS_URL'))
    if urls:
        settings.overpass_urls = urls
    settings.doc_api_key = (environ.get('DOC_API_KEY') or '').strip() or None
    try:
        settings.port = int(environ.get('PORT', settings.port))
    except ValueError:
        raise ValueError(f"Invalid PORT: {environ.get('PORT')!r}")
    settings.log_level = (environ.get('LOG_LEVEL') or settings.log_level).upper()
    return settings
