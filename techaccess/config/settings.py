"""Settings loader with environment variable and YAML config file integration."""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "techaccess"
DEFAULT_REQUEST_TIMEOUT = 30


class TransportMode(str, Enum):
    """How credentials travel on a request.

    STANDARD: auth parameters in the query string, JSON body when present.
    FORM_BODY: GET whose auth parameters travel as a form-encoded body.
    """

    STANDARD = "standard"
    FORM_BODY = "form_body"


# Listing routes the service only answers when credentials are sent in a form body.
DEFAULT_TRANSPORT_MODES: dict[str, TransportMode] = {
    "technician.list": TransportMode.FORM_BODY,
    "agent.list": TransportMode.FORM_BODY,
    "techgroup.list": TransportMode.FORM_BODY,
    "techgroup.detail": TransportMode.FORM_BODY,
    "agentgroup.list": TransportMode.FORM_BODY,
    "agentgroup.detail": TransportMode.FORM_BODY,
    "leaf.list": TransportMode.FORM_BODY,
    "apikey.list": TransportMode.FORM_BODY,
}


@dataclass
class ClientConfig:
    """Client configuration container."""
    host: str = ""
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    # Glob filters and by-name lookups
    case_sensitive_match: bool = True

    # Per-route transport override; routes not listed use STANDARD
    transport_modes: dict[str, TransportMode] = field(default_factory=lambda: dict(DEFAULT_TRANSPORT_MODES))

    # Persisted local state
    config_path: Path = field(default_factory=lambda: DEFAULT_CONFIG_DIR / "config.yaml")
    credential_path: Path = field(default_factory=lambda: DEFAULT_CONFIG_DIR / "credentials.enc")

    @property
    def base_url(self) -> str:
        return self.host.rstrip("/")

    def transport_mode(self, route: Optional[str]) -> TransportMode:
        """Return the transport mode configured for a route name."""
        if route is None:
            return TransportMode.STANDARD
        return self.transport_modes.get(route, TransportMode.STANDARD)


def _read_config_file(path: Path) -> dict:
    """Read the persisted YAML config record, returning {} when absent."""
    if not path.exists() or not path.is_file():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"[settings] Failed to read {path}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"[settings] Ignoring {path}: expected a mapping")
        return {}
    return data


def _env_bool(var_name: str, default: bool) -> bool:
    value = os.environ.get(var_name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def save_host(host: str, path: Optional[Path] = None) -> Path:
    """Persist the chosen host in the YAML config record.

    Args:
        host: Service base URL (e.g. https://tenant.example.com)
        path: Config file path (defaults to ~/.config/techaccess/config.yaml)

    Returns:
        Path that was written
    """
    host = host.strip()
    if not host.startswith(("http://", "https://")):
        raise ValueError(f"Invalid host '{host}': must start with http:// or https://")

    target = path or ClientConfig().config_path
    data = _read_config_file(target)
    data["host"] = host.rstrip("/")
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(yaml.safe_dump(data, default_flow_style=False), encoding="utf-8")
    logger.info(f"[settings] Host saved to {target}")
    return target


def load_settings(config_path: Optional[Path] = None) -> ClientConfig:
    """Load client settings from environment, falling back to the YAML config record.

    Priority for each value:
    1. Environment variable (TECHACCESS_HOST, TECHACCESS_TIMEOUT, TECHACCESS_CASE_SENSITIVE)
    2. Config file (TECHACCESS_CONFIG or ~/.config/techaccess/config.yaml)
    3. Built-in default
    """
    if config_path is None and os.environ.get("TECHACCESS_CONFIG"):
        config_path = Path(os.environ["TECHACCESS_CONFIG"])
    config = ClientConfig()
    if config_path is not None:
        config.config_path = config_path
        config.credential_path = config_path.parent / "credentials.enc"

    file_values = _read_config_file(config.config_path)

    config.host = (os.environ.get("TECHACCESS_HOST") or file_values.get("host") or "").rstrip("/")

    timeout = os.environ.get("TECHACCESS_TIMEOUT", file_values.get("request_timeout"))
    if timeout is not None:
        try:
            config.request_timeout = float(timeout)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid request timeout '{timeout}'")

    config.case_sensitive_match = _env_bool(
        "TECHACCESS_CASE_SENSITIVE",
        bool(file_values.get("case_sensitive_match", True)),
    )

    for route, mode in (file_values.get("transport_modes") or {}).items():
        try:
            config.transport_modes[route] = TransportMode(mode)
        except ValueError:
            raise ValueError(f"Invalid transport mode '{mode}' for route '{route}'")

    logger.debug(f"[settings] host={config.host or '<unset>'}; timeout={config.request_timeout}")
    return config
