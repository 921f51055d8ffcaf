"""Account-leaf operations.

A leaf is addressed by its dot-separated path (Company.Customer.Site). The
service does not enforce unique paths; this client treats a duplicated path
as an error rather than picking one.
"""
from __future__ import annotations
import logging
from typing import Optional

from .client import ApiClient
from .filters import filter_records
from .refs import Ref, as_ref, resolve_ref
from ..validators import validate_leaf_path

logger = logging.getLogger(__name__)


class LeafService:
    """Service for managing account leafs."""

    def __init__(self, client: ApiClient):
        self.client = client

    def list_leafs(self, path: Optional[str] = None) -> list[dict]:
        """Return all leafs, optionally filtered by a path glob (* and ?)."""
        records = self.client.get("api/accountleaf", route="leaf.list") or []
        return filter_records(records, path, key="path", case_sensitive=self.client.config.case_sensitive_match)

    def get_leaf(self, ref: Ref | str | int) -> dict:
        """Resolve a leaf by path (ByName) or id."""
        return resolve_ref(
            as_ref(ref),
            self.list_leafs,
            "Leaf",
            name_key="path",
            case_sensitive=self.client.config.case_sensitive_match,
        )

    def get_leaf_detail(self, leaf_id: int) -> dict:
        return self.client.get(f"api/accountleaf/{leaf_id}", route="leaf.detail")

    def create_leaf(self, path: str) -> dict:
        """Create a leaf and return the service's record."""
        path = validate_leaf_path(path)
        created = self.client.post("api/accountleaf", body={"path": path}, route="leaf.create")
        logger.info(f"[leaf] Created '{path}'")
        return created or {"path": path}

    def delete_leaf(self, ref: Ref | str | int) -> dict:
        """Delete a leaf. Returns the record that was deleted."""
        leaf = self.get_leaf(ref)
        self.client.delete(f"api/accountleaf/{leaf['id']}", route="leaf.delete")
        logger.info(f"[leaf] Deleted '{leaf.get('path')}'")
        return leaf
