"""Core utilities for the make-ready briefing."""

from makeready.core.config import (
    BriefingConfig,
    get_equips_api_key,
    get_proxy_credentials,
    load_briefing_config,
)
from makeready.core.dates import NO_DATE, format_display_date, month_key, parse_local_date

__all__ = [
    "NO_DATE",
    "BriefingConfig",
    "format_display_date",
    "get_equips_api_key",
    "get_proxy_credentials",
    "load_briefing_config",
    "month_key",
    "parse_local_date",
]
