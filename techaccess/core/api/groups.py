"""Technician-group and agent-group operations.

Both group kinds share one shape: a cheap summary listing (name and member
count) and a more expensive per-group detail view carrying the members.
"""
from __future__ import annotations
import logging
from typing import Optional

from .client import ApiClient
from .exceptions import ApiError, NotFoundError, ValidationError
from .filters import filter_records
from .refs import ById, Ref, Resolved, as_ref, resolve_ref
from ..validators import validate_name

logger = logging.getLogger(__name__)


class GroupService:
    """Operations common to technician groups and agent groups.

    Subclasses set the collection path, the member segment used in membership
    edges and the route prefix used to look up transport modes.
    """

    kind = "Group"
    member_kind = "Member"
    collection = ""
    member_segment = ""
    route_prefix = ""

    def __init__(self, client: ApiClient):
        """Initialize group service.

        Args:
            client: Authenticated API client
        """
        self.client = client

    def list_groups(self, name: Optional[str] = None) -> list[dict]:
        """Return the group summary list (id, name, memberCount), optionally filtered by a name glob."""
        records = self.client.get(self.collection, route=f"{self.route_prefix}.list") or []
        return filter_records(records, name, case_sensitive=self.client.config.case_sensitive_match)

    def get_group(self, ref: Ref | str | int) -> dict:
        """Resolve a group's summary record."""
        return resolve_ref(
            as_ref(ref),
            self.list_groups,
            self.kind,
            case_sensitive=self.client.config.case_sensitive_match,
        )

    def fetch_detail(self, group_id: int) -> dict:
        """Fetch the detail view (with members) of a group by id.

        Raises:
            NotFoundError: No group with that id
        """
        try:
            detail = self.client.get(f"{self.collection}/{group_id}", route=f"{self.route_prefix}.detail")
        except ApiError as e:
            if e.status_code == 404:
                raise NotFoundError(self.kind, f"#{group_id}") from e
            raise
        if not detail:
            raise NotFoundError(self.kind, f"#{group_id}")
        detail.setdefault("members", [])
        return detail

    def get_group_detail(self, ref: Ref | str | int) -> dict:
        """Resolve a group and fetch its detail view.

        By-name references cost two round trips: the summary list to resolve
        name -> id, then the detail by id. The detail is never requested
        without a resolved id.

        Raises:
            NotFoundError: No group matches
            AmbiguousMatchError: Several groups share the name
        """
        ref = as_ref(ref)
        if isinstance(ref, Resolved) and "members" in ref.record:
            return ref.record
        if isinstance(ref, ById):
            group_id = ref.id
        else:
            group_id = self.get_group(ref)["id"]
        return self.fetch_detail(group_id)

    def get_members(self, ref: Ref | str | int) -> list[dict]:
        """Return a group's member list."""
        return self.get_group_detail(ref)["members"]

    def create_group(self, name: str, description: Optional[str] = None) -> dict:
        """Create a group and return the service's record.

        Args:
            name: Group name
            description: Optional description
        """
        payload = {"name": validate_name(name, f"{self.kind} name")}
        if description is not None:
            payload["description"] = description
        created = self.client.post(self.collection, body=payload, route=f"{self.route_prefix}.create")
        logger.info(f"[{self.route_prefix}] Created '{payload['name']}'")
        return created or payload

    def update_group(self, ref: Ref | str | int, name: Optional[str] = None, description: Optional[str] = None) -> dict:
        """Rename a group and/or change its description."""
        payload = {}
        if name is not None:
            payload["name"] = validate_name(name, f"{self.kind} name")
        if description is not None:
            payload["description"] = description
        if not payload:
            raise ValidationError("Nothing to update: pass name and/or description")

        group = self.get_group(ref)
        updated = self.client.put(f"{self.collection}/{group['id']}", body=payload, route=f"{self.route_prefix}.update")
        logger.info(f"[{self.route_prefix}] Updated '{group.get('name')}'")
        return updated or {**group, **payload}

    def delete_group(self, group_id: int) -> None:
        """Delete a group by id (single call, the service rejects non-empty groups).

        Use AccessProvisioner to evacuate members first.
        """
        self.client.delete(f"{self.collection}/{group_id}", route=f"{self.route_prefix}.delete")
        logger.info(f"[{self.route_prefix}] Deleted group #{group_id}")

    def add_member(self, group_id: int, member_id: int) -> None:
        """Add a member to a group by ids (single call, no lookups)."""
        self.client.put(f"{self.collection}/{group_id}/{self.member_segment}/{member_id}", route=f"{self.route_prefix}.member")

    def remove_member(self, group_id: int, member_id: int) -> None:
        """Remove a member from a group by ids (single call, no lookups)."""
        self.client.delete(f"{self.collection}/{group_id}/{self.member_segment}/{member_id}", route=f"{self.route_prefix}.member")


class TechnicianGroupService(GroupService):
    """Service for managing technician groups."""

    kind = "Technician group"
    member_kind = "Technician"
    collection = "api/techgroup"
    member_segment = "tech"
    route_prefix = "techgroup"


class AgentGroupService(GroupService):
    """Service for managing agent groups."""

    kind = "Agent group"
    member_kind = "Agent"
    collection = "api/domaingroup"
    member_segment = "agent"
    route_prefix = "agentgroup"
