"""Data models for the Equips integration."""

from __future__ import annotations

from dataclasses import dataclass

# Nested customFields keys → flattened report field names
CUSTOM_FIELD_MAP: dict[str, str] = {
    "cp_walk_date": "cpWalkDate",
    "evs": "evs",
    "key_release": "keyRelease",
    "hhg": "hhg",
    "move_in": "moveIn",
    "ntv": "ntv",
    "vacate": "vacate",
    "kti": "kti",
}

# requestStatus enum → display label
STATUS_DISPLAY: dict[str, str] = {
    "proposed": "Proposed",
    "internalDispatch": "Internal Dispatch",
    "equipsDispatch": "Equips Dispatch",
    "providerDispatch": "Provider Dispatch",
    "serviceComplete": "Service Complete",
    "closed": "Closed",
    "canceled": "Canceled",
    "invoiced": "Invoiced",
    "followUp": "Follow Up",
    "awaitingPayment": "Awaiting Payment",
    "inProgress": "In Progress",
    "onHold": "On Hold",
}

STATUS_REFERENCE_KEY = "serviceWorkflowToServiceStatusId"


def _nested_name(data: dict, key: str) -> str:
    value = data.get(key)
    if isinstance(value, dict):
        return value.get("name") or ""
    return ""


@dataclass
class StatusReference:
    """A resolved serviceWorkflowToServiceStatus record."""

    id: str
    status_name: str = ""
    workflow_name: str = ""

    @property
    def is_resolved(self) -> bool:
        """True if a status name was found."""
        return bool(self.status_name)

    @classmethod
    def from_api(cls, reference_id: str, data: dict) -> StatusReference:
        """Create from API response data.

        The status name is nested under ``serviceStatus.name``; some
        responses only carry a flat ``name``.
        """
        if not isinstance(data, dict):
            return cls(id=reference_id)
        return cls(
            id=reference_id,
            status_name=_nested_name(data, "serviceStatus") or data.get("name") or "",
            workflow_name=_nested_name(data, "serviceWorkflow"),
        )
