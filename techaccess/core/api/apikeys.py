"""API-key listing (read-only)."""
from __future__ import annotations
from typing import Optional

from .client import ApiClient
from .filters import filter_records


class ApiKeyService:
    """Service for listing the tenant's API keys."""

    def __init__(self, client: ApiClient):
        self.client = client

    def list_api_keys(self, name: Optional[str] = None) -> list[dict]:
        """Return API key records (never the key material), optionally filtered by a name glob."""
        records = self.client.get("api/apikey", route="apikey.list") or []
        return filter_records(records, name, case_sensitive=self.client.config.case_sensitive_match)
