"""Input validation helpers.

Everything here runs before a request is built; a rejected value never
reaches the network.
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from .api.exceptions import ValidationError


class TechnicianStatus(str, Enum):
    ENABLED = "Enabled"
    DISABLED = "Disabled"
    LOCKED = "Locked"


@dataclass(frozen=True)
class OptionSpec:
    """Declared value domain of one option.

    kind is "enum" (choices), "int" (minimum..maximum) or "text" (max_length).
    """
    kind: str
    choices: tuple[str, ...] = ()
    minimum: Optional[int] = None
    maximum: Optional[int] = None
    max_length: int = 256

    def validate(self, key: str, value: Any) -> Any:
        if self.kind == "enum":
            if isinstance(value, bool):
                value = "Yes" if value else "No"
            if not isinstance(value, str):
                raise ValidationError(f"Option '{key}' expects one of {', '.join(self.choices)}")
            for choice in self.choices:
                if choice.lower() == value.strip().lower():
                    return choice
            raise ValidationError(f"Option '{key}' must be one of {', '.join(self.choices)}, got '{value}'")

        if self.kind == "int":
            if isinstance(value, bool):
                raise ValidationError(f"Option '{key}' expects an integer")
            try:
                number = int(value)
            except (TypeError, ValueError):
                raise ValidationError(f"Option '{key}' expects an integer, got '{value}'")
            if isinstance(value, float) and value != number:
                raise ValidationError(f"Option '{key}' expects an integer, got '{value}'")
            if self.minimum is not None and number < self.minimum:
                raise ValidationError(f"Option '{key}' must be >= {self.minimum}, got {number}")
            if self.maximum is not None and number > self.maximum:
                raise ValidationError(f"Option '{key}' must be <= {self.maximum}, got {number}")
            return number

        if self.kind == "text":
            if not isinstance(value, str):
                raise ValidationError(f"Option '{key}' expects text")
            if len(value) > self.max_length:
                raise ValidationError(f"Option '{key}' exceeds {self.max_length} characters")
            return value

        raise ValueError(f"Unknown option kind '{self.kind}'")


YES_NO = ("Yes", "No")

TECHNICIAN_OPTIONS: dict[str, OptionSpec] = {
    "Language": OptionSpec("enum", choices=("English", "French", "German", "Spanish", "Dutch")),
    "SessionRecording": OptionSpec("enum", choices=YES_NO),
    "ElevatedSessions": OptionSpec("enum", choices=YES_NO),
    "MaxConcurrentSessions": OptionSpec("int", minimum=1, maximum=50),
    "IdleTimeoutMinutes": OptionSpec("int", minimum=0, maximum=1440),
    "Notes": OptionSpec("text", max_length=1024),
}

AGENT_OPTIONS: dict[str, OptionSpec] = {
    "ConnectionMode": OptionSpec("enum", choices=("Attended", "Unattended", "Both")),
    "SessionRecording": OptionSpec("enum", choices=YES_NO),
    "PromptUser": OptionSpec("enum", choices=YES_NO),
    "PromptTimeoutSeconds": OptionSpec("int", minimum=5, maximum=600),
    "MaxSessions": OptionSpec("int", minimum=1, maximum=100),
    "Comment": OptionSpec("text", max_length=512),
}

OPTION_TABLES: dict[str, dict[str, OptionSpec]] = {
    "technician": TECHNICIAN_OPTIONS,
    "agent": AGENT_OPTIONS,
}


def validate_options(kind: str, options: Mapping[str, Any]) -> dict[str, Any]:
    """Validate an option-set against the closed table for a resource kind.

    Args:
        kind: "technician" or "agent"
        options: Option name -> value

    Returns:
        Normalized option dictionary (canonical enum spelling, ints coerced)

    Raises:
        ValidationError: Unknown option name or out-of-domain value
    """
    table = OPTION_TABLES.get(kind)
    if table is None:
        raise ValidationError(f"No option-set is defined for '{kind}'")
    if not options:
        raise ValidationError("At least one option is required")

    unknown = sorted(set(options) - set(table))
    if unknown:
        raise ValidationError(
            f"Unknown {kind} option(s): {', '.join(unknown)}; accepted: {', '.join(sorted(table))}"
        )
    return {key: table[key].validate(key, value) for key, value in options.items()}


def validate_status(status: Any) -> TechnicianStatus:
    """Normalize a technician status value."""
    if isinstance(status, TechnicianStatus):
        return status
    if isinstance(status, str):
        for member in TechnicianStatus:
            if member.value.lower() == status.strip().lower():
                return member
    accepted = ", ".join(member.value for member in TechnicianStatus)
    raise ValidationError(f"Invalid technician status '{status}': expected one of {accepted}")


def validate_name(name: Any, field: str) -> str:
    """Validate a display name (technician, group, triplet).

    Args:
        name: Name to validate
        field: Field name for error messages (e.g., "Group name")

    Returns:
        Trimmed name

    Raises:
        ValidationError: If name is invalid
    """
    if not isinstance(name, str) or not name.strip():
        raise ValidationError(f"{field} is required")
    name = name.strip()
    if len(name) > 128:
        raise ValidationError(f"{field} exceeds maximum length")
    if any(char in name for char in "*?"):
        raise ValidationError(f"{field} cannot contain wildcard characters")
    return name


def validate_email(email: Any) -> str:
    """Validate email address.

    Returns:
        Normalized email address

    Raises:
        ValidationError: If email is invalid
    """
    if not isinstance(email, str):
        raise ValidationError("Invalid email format")
    email = email.strip().lower()
    if not email or "@" not in email:
        raise ValidationError("Invalid email format")

    local, domain = email.rsplit("@", 1)
    if not local or not domain or "." not in domain:
        raise ValidationError("Invalid email format")
    if len(email) > 254:
        raise ValidationError("Email exceeds maximum length")

    return email


def validate_leaf_path(path: Any) -> str:
    """Validate a dot-separated account-leaf path (e.g. Company.Customer.Site).

    Raises:
        ValidationError: Empty path, empty segment or wildcard characters
    """
    if not isinstance(path, str) or not path.strip():
        raise ValidationError("Leaf path is required")
    path = path.strip()
    segments = path.split(".")
    if any(not segment.strip() for segment in segments):
        raise ValidationError(f"Invalid leaf path '{path}': segments must not be empty")
    if any(char in path for char in "*?/"):
        raise ValidationError(f"Invalid leaf path '{path}': wildcard and slash characters are not allowed")
    return ".".join(segment.strip() for segment in segments)
