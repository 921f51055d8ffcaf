"""Agent (domain account) operations.

An agent has two identifiers: the numeric id used as the target of mutating
calls, and a GUID that stays stable across renames. Names are frequently in
HOST\\Account form and are not guaranteed unique.
"""
from __future__ import annotations
import logging
from typing import Any, Mapping, Optional
from urllib.parse import quote

from .client import ApiClient
from .exceptions import ApiError, NotFoundError, ValidationError
from .filters import filter_records
from .refs import Ref, as_ref, resolve_ref
from ..validators import validate_leaf_path, validate_options

logger = logging.getLogger(__name__)


class AgentService:
    """Service for managing agents."""

    def __init__(self, client: ApiClient):
        """Initialize agent service.

        Args:
            client: Authenticated API client
        """
        self.client = client

    def list_agents(self, name: Optional[str] = None) -> list[dict]:
        """Return all agents, optionally filtered by a name glob (* and ?)."""
        records = self.client.get("api/domain", route="agent.list") or []
        return filter_records(records, name, case_sensitive=self.client.config.case_sensitive_match)

    def get_agent(self, ref: Ref | str | int) -> dict:
        """Resolve an agent by name, id or GUID to exactly one record.

        Raises:
            NotFoundError: No agent matches
            AmbiguousMatchError: Several agents match (typical for duplicated HOST\\Account names)
        """
        return resolve_ref(
            as_ref(ref),
            self.list_agents,
            "Agent",
            case_sensitive=self.client.config.case_sensitive_match,
            allow_guid=True,
        )

    def get_agent_info(self, guid: str) -> dict:
        """Fetch the detail-info view of an agent by GUID.

        Raises:
            NotFoundError: The service knows no agent with that GUID
        """
        if not guid or not guid.strip():
            raise ValidationError("Agent GUID is required")
        try:
            info = self.client.get("api/domain/info", params={"guid": guid.strip()}, route="agent.info")
        except ApiError as e:
            if e.status_code == 404:
                raise NotFoundError("Agent", guid) from e
            raise
        if not info:
            raise NotFoundError("Agent", guid)
        return info

    def set_agent_options(self, ref: Ref | str | int, options: Mapping[str, Any]) -> dict:
        """Apply an option-set to an agent.

        Options are validated against AGENT_OPTIONS before any request is sent.

        Returns:
            The normalized options that were sent
        """
        normalized = validate_options("agent", options)
        agent = self.get_agent(ref)
        self.client.put(f"api/domain/{agent['id']}/options", body=normalized, route="agent.options")
        logger.info(f"[agent] Options set on '{agent.get('name')}': {', '.join(sorted(normalized))}")
        return normalized

    def set_account_leaf(self, agent_id: int, path: str) -> None:
        """Assign an agent (by id) to an account leaf path.

        Single call, no lookups. Use AccessProvisioner.assign_agent_to_leaf to
        resolve the agent and create the leaf when needed.
        """
        path = validate_leaf_path(path)
        encoded = quote(path, safe="")
        self.client.put(f"api/domain/{agent_id}/accountleaf/{encoded}", route="agent.accountleaf")
        logger.info(f"[agent] Agent #{agent_id} assigned to leaf '{path}'")

    def delete_agent(self, ref: Ref | str | int) -> dict:
        """Delete an agent. Returns the record that was deleted."""
        agent = self.get_agent(ref)
        self.client.delete(f"api/domain/{agent['id']}")
        logger.info(f"[agent] Deleted '{agent.get('name')}' ({agent.get('guid')})")
        return agent
