"""Configuration loading utilities."""

import json
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "briefing.json"


def get_equips_api_key() -> str:
    """Get the Equips API key from environment.

    Returns:
        The API key

    Raises:
        ValueError: If EQUIPS_API_KEY is not set
    """
    load_dotenv()

    api_key = os.getenv("EQUIPS_API_KEY")
    if not api_key:
        raise ValueError("Equips credentials not set. Required: EQUIPS_API_KEY")

    return api_key


def get_proxy_credentials() -> tuple[str, str] | None:
    """Get enrichment proxy URL and key from environment.

    The proxy is optional. When ``MAKEREADY_PROXY_URL`` is not set,
    returns None and callers fetch directly from Equips.

    Returns:
        Tuple of (url, key), or None if no proxy is configured
    """
    load_dotenv()

    url = os.getenv("MAKEREADY_PROXY_URL")
    if not url:
        return None

    return url.rstrip("/"), os.getenv("MAKEREADY_PROXY_KEY", "")


@dataclass
class BriefingConfig:
    """Settings for fetching and rendering the briefing.

    Loaded from ``config/briefing.json``; every field has a default so
    the file only needs to list overrides.
    """

    equips_base_url: str = "https://api.equips.com"
    page_size: int = 500
    max_records: int = 10000
    lookup_batch_size: int = 10
    request_timeout: float = 30.0
    fetch_timeout: float = 120.0
    max_attempts: int = 3
    backoff_initial: float = 1.0
    timezone: str = "UTC"
    service_request_url: str = "https://app.equips.com/service-requests"
    cache_dir: str = "~/.cache/makeready"
    search_body: dict = field(default_factory=dict)

    @property
    def tz(self) -> ZoneInfo:
        """Timezone as a ZoneInfo object."""
        return ZoneInfo(self.timezone)

    @property
    def cache_path(self) -> Path:
        """Cache directory with ``~`` expanded."""
        return Path(self.cache_dir).expanduser()


def get_project_root() -> Path | None:
    """Get the project root directory, or None when installed outside a checkout."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / "pyproject.toml").exists():
            return parent
    return None


def load_briefing_config(path: Path | str | None = None) -> BriefingConfig:
    """Load briefing configuration from config file and environment.

    Args:
        path: Config file to read. Defaults to ``config/briefing.json``
            under the project root. A missing file yields the defaults.

    Environment overrides:
        MAKEREADY_CACHE_DIR: Snapshot cache directory
        MAKEREADY_TIMEZONE: Timezone for rendering epoch dates
    """
    load_dotenv()

    if path is None:
        root = get_project_root()
        path = root / "config" / CONFIG_FILENAME if root else None

    config_data: dict = {}
    if path is not None and Path(path).exists():
        with Path(path).open() as f:
            config_data = json.load(f)
    elif path is not None:
        logger.debug("No config file at %s, using defaults", path)

    known = {f.name for f in fields(BriefingConfig)}
    unknown = sorted(set(config_data) - known)
    if unknown:
        logger.warning(f"Ignoring unknown config keys: {', '.join(unknown)}")

    config = BriefingConfig(**{k: v for k, v in config_data.items() if k in known})

    cache_dir = os.getenv("MAKEREADY_CACHE_DIR")
    if cache_dir:
        config.cache_dir = cache_dir
    timezone = os.getenv("MAKEREADY_TIMEZONE")
    if timezone:
        config.timezone = timezone

    return config
