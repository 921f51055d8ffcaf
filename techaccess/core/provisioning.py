"""Compound access-management operations.

Each operation is a short linear sequence:

1. resolve every referenced record to exactly one match (abort on 0 or >1)
2. resolve secondary records; only leaf assignment may create one (the leaf)
3. short-circuit when the desired end state already holds
4. issue the mutating call(s) with resolved ids, never names

Any failure aborts the remaining steps. Nothing is rolled back: the service
has no multi-resource transaction, so a leaf created in step 2 stays when the
assignment in step 4 fails.
"""
from __future__ import annotations
import logging
from datetime import datetime
from typing import Any, Callable, Optional, Union

from techaccess import audit
from .api.agents import AgentService
from .api.client import ApiClient
from .api.exceptions import AmbiguousMatchError, PartialCompletionError, TechAccessError
from .api.filters import exact_matches
from .api.groups import AgentGroupService, GroupService, TechnicianGroupService
from .api.leafs import LeafService
from .api.refs import Ref
from .api.technicians import TechnicianService
from .api.triplets import RightsGroupService, TripletService
from .validators import validate_leaf_path

logger = logging.getLogger(__name__)

RefLike = Union[Ref, str, int]


def _leaf_path(value: Any) -> Optional[str]:
    """Agent records carry the leaf either as a path string or as a leaf record."""
    if isinstance(value, dict):
        return value.get("path")
    return value or None


def _is_member(detail: dict, member_id: Any) -> bool:
    return any(str(member.get("id")) == str(member_id) for member in detail.get("members") or [])


class AccessProvisioner:
    """Orchestrates multi-step mutations over the resource services.

    Usage:
        provisioner = AccessProvisioner(client, operator="helpdesk")
        provisioner.assign_agent_to_leaf(ByGuid(guid), "Company.Customer.Site")
        provisioner.delete_agent_group("Decommissioned")
    """

    def __init__(self, client: ApiClient, operator: str = "automation"):
        """Initialize provisioner.

        Args:
            client: Authenticated API client
            operator: Operator identifier written to the audit trail
        """
        self.client = client
        self.operator = operator
        self.technicians = TechnicianService(client)
        self.agents = AgentService(client)
        self.technician_groups = TechnicianGroupService(client)
        self.agent_groups = AgentGroupService(client)
        self.leafs = LeafService(client)
        self.triplets = TripletService(client)
        self.rights_groups = RightsGroupService(client)

    def _audited(self, event_type: audit.EventType, target: str, details: dict, action: Callable[[], Any]) -> Any:
        """Run one mutating call and record its outcome in the audit trail."""
        try:
            result = action()
        except TechAccessError as e:
            audit.safe_log_access_event(
                event_type, target, operator=self.operator,
                details={**details, "error": str(e)}, success=False,
            )
            raise
        audit.safe_log_access_event(event_type, target, operator=self.operator, details=details, success=True)
        return result

    # ─────────────────────────────────────────────────────────────────────
    # Leaf assignment
    # ─────────────────────────────────────────────────────────────────────
    def assign_agent_to_leaf(self, agent: RefLike, path: str) -> bool:
        """Assign an agent to an account leaf, creating the leaf if it does not exist.

        Args:
            agent: Agent reference (ByName, ById, ByGuid, Resolved, or bare name/id)
            path: Dot-separated leaf path

        Returns:
            True if the agent was (re)assigned, False if it already sat on that leaf

        Raises:
            NotFoundError / AmbiguousMatchError: Agent did not resolve to one record
            AmbiguousMatchError: Several leafs share the path
        """
        path = validate_leaf_path(path)
        agent_rec = self.agents.get_agent(agent)

        leafs = exact_matches(
            self.leafs.list_leafs(), "path", path,
            case_sensitive=self.client.config.case_sensitive_match,
        )
        if len(leafs) > 1:
            raise AmbiguousMatchError("Leaf", path, len(leafs))
        if not leafs:
            self._audited("leaf_create", path, {"path": path}, lambda: self.leafs.create_leaf(path))

        if _leaf_path(agent_rec.get("accountLeaf")) == path:
            logger.info(f"[leaf] Agent '{agent_rec.get('name')}' already on '{path}'")
            return False

        self._audited(
            "leaf_assign",
            str(agent_rec.get("name")),
            {"agent_id": agent_rec["id"], "guid": agent_rec.get("guid"), "path": path},
            lambda: self.agents.set_account_leaf(agent_rec["id"], path),
        )
        return True

    # ─────────────────────────────────────────────────────────────────────
    # Group membership
    # ─────────────────────────────────────────────────────────────────────
    def _add_member(self, groups: GroupService, member: dict, group: RefLike) -> bool:
        detail = groups.get_group_detail(group)
        if _is_member(detail, member["id"]):
            logger.info(f"[{groups.route_prefix}] '{member.get('name')}' already in '{detail.get('name')}'")
            return False
        self._audited(
            "group_member_add",
            str(detail.get("name")),
            {"group_id": detail["id"], "member_id": member["id"], "member": member.get("name")},
            lambda: groups.add_member(detail["id"], member["id"]),
        )
        logger.info(f"[{groups.route_prefix}] Added '{member.get('name')}' to '{detail.get('name')}'")
        return True

    def _remove_member(self, groups: GroupService, member: dict, group: RefLike) -> bool:
        detail = groups.get_group_detail(group)
        if not _is_member(detail, member["id"]):
            logger.info(f"[{groups.route_prefix}] '{member.get('name')}' not in '{detail.get('name')}'")
            return False
        self._audited(
            "group_member_remove",
            str(detail.get("name")),
            {"group_id": detail["id"], "member_id": member["id"], "member": member.get("name")},
            lambda: groups.remove_member(detail["id"], member["id"]),
        )
        logger.info(f"[{groups.route_prefix}] Removed '{member.get('name')}' from '{detail.get('name')}'")
        return True

    def add_technician_to_group(self, technician: RefLike, group: RefLike) -> bool:
        """Add a technician to a technician group (idempotent).

        Returns:
            True if added, False if already a member
        """
        return self._add_member(self.technician_groups, self.technicians.get_technician(technician), group)

    def remove_technician_from_group(self, technician: RefLike, group: RefLike) -> bool:
        """Remove a technician from a technician group (idempotent).

        Returns:
            True if removed, False if not a member
        """
        return self._remove_member(self.technician_groups, self.technicians.get_technician(technician), group)

    def add_agent_to_group(self, agent: RefLike, group: RefLike) -> bool:
        """Add an agent to an agent group (idempotent)."""
        return self._add_member(self.agent_groups, self.agents.get_agent(agent), group)

    def remove_agent_from_group(self, agent: RefLike, group: RefLike) -> bool:
        """Remove an agent from an agent group (idempotent)."""
        return self._remove_member(self.agent_groups, self.agents.get_agent(agent), group)

    # ─────────────────────────────────────────────────────────────────────
    # Group deletion
    # ─────────────────────────────────────────────────────────────────────
    def _delete_group(self, groups: GroupService, group: RefLike) -> int:
        detail = groups.get_group_detail(group)
        group_name = str(detail.get("name"))
        members = list(detail["members"])
        removed: list[str] = []

        # The service refuses to delete a group that still has members.
        for member in members:
            member_label = str(member.get("name") or member.get("id"))
            try:
                self._audited(
                    "group_member_remove",
                    group_name,
                    {"group_id": detail["id"], "member_id": member["id"], "member": member.get("name")},
                    lambda: groups.remove_member(detail["id"], member["id"]),
                )
            except TechAccessError as e:
                raise PartialCompletionError(
                    f"{groups.kind} '{group_name}' member removal ('{member_label}')",
                    removed,
                    len(members),
                    e,
                    outcome=f"{len(removed)} of {len(members)} members evacuated; group not deleted",
                ) from e
            removed.append(member_label)

        try:
            self._audited(
                "group_delete",
                group_name,
                {"group_id": detail["id"], "evacuated": removed},
                lambda: groups.delete_group(detail["id"]),
            )
        except TechAccessError as e:
            if not removed:
                raise
            raise PartialCompletionError(
                f"{groups.kind} '{group_name}' deletion",
                removed,
                len(members) + 1,
                e,
                outcome=f"all {len(removed)} members evacuated; group not deleted",
            ) from e

        logger.info(f"[{groups.route_prefix}] Deleted '{group_name}' after evacuating {len(removed)} member(s)")
        return len(removed)

    def delete_technician_group(self, group: RefLike) -> int:
        """Delete a technician group, removing its members first.

        Returns:
            Number of members evacuated

        Raises:
            PartialCompletionError: A removal (or the final delete) failed after earlier steps applied
        """
        return self._delete_group(self.technician_groups, group)

    def delete_agent_group(self, group: RefLike) -> int:
        """Delete an agent group, removing its members first."""
        return self._delete_group(self.agent_groups, group)

    # ─────────────────────────────────────────────────────────────────────
    # Triplets
    # ─────────────────────────────────────────────────────────────────────
    def grant_access(
        self,
        technician_group: RefLike,
        rights_group: RefLike,
        agent_group: RefLike,
        expires_at: Optional[datetime] = None,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> dict:
        """Create a triplet from group references; none of the groups is auto-created.

        Args:
            technician_group: Technician group reference
            rights_group: Rights group reference
            agent_group: Agent group reference
            expires_at: Expiration (None for no expiration)
            name: Optional triplet name
            description: Optional description
        """
        tech_group = self.technician_groups.get_group(technician_group)
        rights = self.rights_groups.get_rights_group(rights_group)
        agent_group_rec = self.agent_groups.get_group(agent_group)

        details = {
            "technician_group": tech_group.get("name"),
            "rights_group": rights.get("name"),
            "agent_group": agent_group_rec.get("name"),
            "expires_at": expires_at.isoformat() if expires_at else None,
        }
        return self._audited(
            "triplet_create",
            name or f"{tech_group.get('name')}/{rights.get('name')}/{agent_group_rec.get('name')}",
            details,
            lambda: self.triplets.create_triplet(
                tech_group["id"], rights["id"], agent_group_rec["id"],
                expires_at=expires_at, name=name, description=description,
            ),
        )

    def revoke_access(self, triplet_id: int) -> dict:
        """Delete a triplet after confirming it exists. Returns the deleted record."""
        triplet = self.triplets.get_triplet(triplet_id)
        self._audited(
            "triplet_delete",
            str(triplet.get("name") or f"#{triplet_id}"),
            {"triplet_id": triplet_id},
            lambda: self.triplets.delete_triplet(triplet_id),
        )
        return triplet
