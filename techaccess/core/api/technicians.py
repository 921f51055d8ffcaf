"""Technician operations."""
from __future__ import annotations
import logging
from typing import Any, Mapping, Optional

from .client import ApiClient
from .exceptions import ValidationError
from .filters import filter_records
from .refs import Ref, as_ref, resolve_ref
from ..validators import validate_email, validate_name, validate_options, validate_status

logger = logging.getLogger(__name__)

# Fields a caller may change with update_technician
UPDATABLE_FIELDS = {"name": "name", "first_name": "firstName", "last_name": "lastName", "email": "email", "phone": "phone"}


class TechnicianService:
    """Service for managing technicians."""

    def __init__(self, client: ApiClient):
        """Initialize technician service.

        Args:
            client: Authenticated API client
        """
        self.client = client

    def list_technicians(self, name: Optional[str] = None) -> list[dict]:
        """Return all technicians, optionally filtered by a name glob (* and ?)."""
        records = self.client.get("api/technician", route="technician.list") or []
        return filter_records(records, name, case_sensitive=self.client.config.case_sensitive_match)

    def get_technician(self, ref: Ref | str | int) -> dict:
        """Resolve a technician to exactly one record.

        Raises:
            NotFoundError: No technician matches
            AmbiguousMatchError: Several technicians share the name
        """
        return resolve_ref(
            as_ref(ref),
            self.list_technicians,
            "Technician",
            case_sensitive=self.client.config.case_sensitive_match,
        )

    def create_technician(
        self,
        name: str,
        email: str,
        first_name: str = "",
        last_name: str = "",
        phone: str = "",
        status: Any = "Enabled",
    ) -> dict:
        """Create a technician and return the service's record.

        Args:
            name: Unique technician login name
            email: Contact email
            first_name: First name
            last_name: Last name
            phone: Phone number
            status: Initial status (Enabled, Disabled, Locked)
        """
        payload = {
            "name": validate_name(name, "Technician name"),
            "firstName": first_name.strip(),
            "lastName": last_name.strip(),
            "email": validate_email(email),
            "phone": phone.strip(),
            "status": validate_status(status).value,
        }
        created = self.client.post("api/technician", body=payload)
        logger.info(f"[technician] Created '{payload['name']}'")
        return created or payload

    def update_technician(self, ref: Ref | str | int, **fields: Any) -> dict:
        """Update profile fields (name, first_name, last_name, email, phone)."""
        unknown = sorted(set(fields) - set(UPDATABLE_FIELDS))
        if unknown:
            raise ValidationError(f"Unknown technician field(s): {', '.join(unknown)}")
        if "name" in fields:
            fields["name"] = validate_name(fields["name"], "Technician name")
        if "email" in fields:
            fields["email"] = validate_email(fields["email"])

        technician = self.get_technician(ref)
        payload = {UPDATABLE_FIELDS[key]: value for key, value in fields.items()}
        updated = self.client.put(f"api/technician/{technician['id']}", body=payload)
        logger.info(f"[technician] Updated '{technician.get('name')}' ({', '.join(sorted(payload))})")
        return updated or {**technician, **payload}

    def delete_technician(self, ref: Ref | str | int) -> dict:
        """Delete a technician. Returns the record that was deleted."""
        technician = self.get_technician(ref)
        self.client.delete(f"api/technician/{technician['id']}")
        logger.info(f"[technician] Deleted '{technician.get('name')}'")
        return technician

    def set_technician_status(self, ref: Ref | str | int, status: Any) -> None:
        """Set a technician's status (Enabled, Disabled, Locked)."""
        status = validate_status(status)
        technician = self.get_technician(ref)
        self.client.put("api/technician/status", body={"id": technician["id"], "status": status.value})
        logger.info(f"[technician] Status of '{technician.get('name')}' set to {status.value}")

    def set_technician_options(self, ref: Ref | str | int, options: Mapping[str, Any]) -> dict:
        """Apply an option-set to a technician.

        Options are validated against TECHNICIAN_OPTIONS before any request is sent.

        Returns:
            The normalized options that were sent
        """
        normalized = validate_options("technician", options)
        technician = self.get_technician(ref)
        self.client.put(
            "api/technician/options",
            body=normalized,
            params={"technicianId": technician["id"]},
        )
        logger.info(f"[technician] Options set on '{technician.get('name')}': {', '.join(sorted(normalized))}")
        return normalized
