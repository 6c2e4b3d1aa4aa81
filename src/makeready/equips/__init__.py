"""Equips facilities API integration module."""

from makeready.equips.client import EquipsClient
from makeready.equips.enrich import enrich_service_requests
from makeready.equips.models import CUSTOM_FIELD_MAP, STATUS_DISPLAY, StatusReference

__all__ = [
    "CUSTOM_FIELD_MAP",
    "STATUS_DISPLAY",
    "EquipsClient",
    "StatusReference",
    "enrich_service_requests",
]
