"""Triplet and rights-group operations.

A triplet is a standing access grant: members of the technician group get the
rights of the rights group on members of the agent group, until it expires
(or forever when it carries the no-expiration marker).
"""
from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from .client import ApiClient
from .exceptions import ApiError, NotFoundError, ValidationError
from .filters import filter_records
from .refs import Ref, as_ref, resolve_ref

logger = logging.getLogger(__name__)

_UNSET: Any = object()


def _expiration_fields(expires_at: Optional[datetime]) -> dict:
    """Wire representation of an expiration (None means no expiration)."""
    if expires_at is None:
        return {"expiration": None, "noExpiration": True}
    if not isinstance(expires_at, datetime):
        raise ValidationError(f"Expiration must be a datetime or None, got {type(expires_at).__name__}")
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    if expires_at <= datetime.now(timezone.utc):
        raise ValidationError(f"Expiration {expires_at.isoformat()} is in the past")
    return {"expiration": expires_at.astimezone(timezone.utc).isoformat(), "noExpiration": False}


def _require_id(value: Any, label: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{label} must be a positive integer id, got {value!r}")
    return value


class TripletService:
    """Service for managing triplets."""

    def __init__(self, client: ApiClient):
        self.client = client

    def list_triplets(self, name: Optional[str] = None) -> list[dict]:
        """Return all triplets, optionally filtered by a name glob."""
        records = self.client.get("api/triplet", route="triplet.list") or []
        return filter_records(records, name, case_sensitive=self.client.config.case_sensitive_match)

    def get_triplet(self, triplet_id: int) -> dict:
        """Fetch one triplet by id.

        Raises:
            NotFoundError: No triplet with that id
        """
        _require_id(triplet_id, "Triplet id")
        try:
            triplet = self.client.get(f"api/triplet/{triplet_id}", route="triplet.detail")
        except ApiError as e:
            if e.status_code == 404:
                raise NotFoundError("Triplet", f"#{triplet_id}") from e
            raise
        if not triplet:
            raise NotFoundError("Triplet", f"#{triplet_id}")
        return triplet

    def create_triplet(
        self,
        technician_group_id: int,
        rights_group_id: int,
        agent_group_id: int,
        expires_at: Optional[datetime] = None,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> dict:
        """Create a triplet from resolved group ids.

        Args:
            technician_group_id: Technician group id
            rights_group_id: Rights group id
            agent_group_id: Agent group id
            expires_at: Expiration (None for no expiration)
            name: Optional name
            description: Optional description
        """
        payload = {
            "technicianGroupId": _require_id(technician_group_id, "Technician group id"),
            "rightsGroupId": _require_id(rights_group_id, "Rights group id"),
            "agentGroupId": _require_id(agent_group_id, "Agent group id"),
            **_expiration_fields(expires_at),
        }
        if name is not None:
            payload["name"] = name
        if description is not None:
            payload["description"] = description

        created = self.client.post("api/triplet", body=payload, route="triplet.create")
        logger.info(
            f"[triplet] Created techgroup #{technician_group_id} / rightsgroup #{rights_group_id} "
            f"/ agentgroup #{agent_group_id}"
        )
        return created or payload

    def update_triplet(
        self,
        triplet_id: int,
        technician_group_id: Optional[int] = None,
        rights_group_id: Optional[int] = None,
        agent_group_id: Optional[int] = None,
        expires_at: Any = _UNSET,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> dict:
        """Update a triplet; unspecified fields keep their current value.

        Pass expires_at=None to switch to no expiration.
        """
        changes: dict[str, Any] = {}
        if technician_group_id is not None:
            changes["technicianGroupId"] = _require_id(technician_group_id, "Technician group id")
        if rights_group_id is not None:
            changes["rightsGroupId"] = _require_id(rights_group_id, "Rights group id")
        if agent_group_id is not None:
            changes["agentGroupId"] = _require_id(agent_group_id, "Agent group id")
        if expires_at is not _UNSET:
            changes.update(_expiration_fields(expires_at))
        if name is not None:
            changes["name"] = name
        if description is not None:
            changes["description"] = description
        if not changes:
            raise ValidationError("Nothing to update")

        current = self.get_triplet(triplet_id)
        payload = {**current, **changes}
        updated = self.client.put(f"api/triplet/{triplet_id}", body=payload, route="triplet.update")
        logger.info(f"[triplet] Updated #{triplet_id} ({', '.join(sorted(changes))})")
        return updated or payload

    def delete_triplet(self, triplet_id: int) -> None:
        _require_id(triplet_id, "Triplet id")
        self.client.delete(f"api/triplet/{triplet_id}", route="triplet.delete")
        logger.info(f"[triplet] Deleted #{triplet_id}")


class RightsGroupService:
    """Read-only access to rights groups."""

    def __init__(self, client: ApiClient):
        self.client = client

    def list_rights_groups(self, name: Optional[str] = None) -> list[dict]:
        records = self.client.get("api/rightsgroup", route="rightsgroup.list") or []
        return filter_records(records, name, case_sensitive=self.client.config.case_sensitive_match)

    def get_rights_group(self, ref: Ref | str | int) -> dict:
        return resolve_ref(
            as_ref(ref),
            self.list_rights_groups,
            "Rights group",
            case_sensitive=self.client.config.case_sensitive_match,
        )
