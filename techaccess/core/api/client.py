"""Low-level HTTP client for the remote-access management API.

Handles authentication parameters, transport modes and error mapping.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional
from urllib.parse import urlencode

import requests

from techaccess.config.settings import ClientConfig, TransportMode
from .exceptions import ApiError

if TYPE_CHECKING:
    from ..credentials import Credential

logger = logging.getLogger(__name__)

AUTH_METHOD = "local"
REDACTED = "********"
BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


@dataclass
class RequestTrace:
    """Redacted view of a request, handed to observers before dispatch."""
    method: str
    url: str
    headers: Dict[str, str]
    body: Any = None
    mode: TransportMode = TransportMode.STANDARD
    route: Optional[str] = None


RequestObserver = Callable[[RequestTrace], None]


@dataclass
class _PreparedCall:
    method: str
    url: str
    headers: Dict[str, str]
    params: Dict[str, Any]
    json_body: Any = None
    form_body: Optional[Dict[str, str]] = None
    mode: TransportMode = TransportMode.STANDARD


class ApiClient:
    """HTTP client for the service's REST API.

    Features:
    - APIKey authorization header and Email/authenticationmethod parameters on every call
    - Per-route transport mode (standard query-string auth or legacy GET with form body)
    - Centralized error handling
    - Optional observer hook receiving a redacted trace of each request

    Usage:
        client = ApiClient(credential)
        technicians = client.get("api/technician", route="technician.list")
    """

    def __init__(
        self,
        credential: Credential,
        config: Optional[ClientConfig] = None,
        observer: Optional[RequestObserver] = None,
    ):
        """Initialize API client.

        Args:
            credential: Resolved credential (principal, API key, host)
            config: Client configuration (defaults to ClientConfig with the credential's host)
            observer: Optional callable receiving a RequestTrace before each dispatch
        """
        self.credential = credential
        self.config = config or ClientConfig(host=credential.host)
        self.base_url = credential.host.rstrip("/")
        self.observer = observer

    def _auth_params(self) -> Dict[str, str]:
        return {"Email": self.credential.principal, "authenticationmethod": AUTH_METHOD}

    def _prepare(
        self,
        method: str,
        endpoint: str,
        body: Any,
        params: Optional[Dict[str, Any]],
        mode: TransportMode,
    ) -> _PreparedCall:
        method = method.upper()
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        headers = {
            "Authorization": f"APIKey {self.credential.secret}",
            "Accept": "application/json",
        }

        if mode is TransportMode.FORM_BODY:
            # Legacy listing endpoints: GET with credentials in a form-encoded body
            return _PreparedCall(
                method="GET",
                url=url,
                headers=headers,
                params=dict(params or {}),
                form_body=self._auth_params(),
                mode=mode,
            )

        query = self._auth_params()
        query.update(params or {})
        call = _PreparedCall(method=method, url=url, headers=headers, params=query, mode=mode)
        if method in BODY_METHODS:
            call.json_body = body if body is not None else {}
        return call

    def _trace(self, call: _PreparedCall, route: Optional[str]) -> RequestTrace:
        headers = dict(call.headers)
        headers["Authorization"] = f"APIKey {REDACTED}"
        url = f"{call.url}?{urlencode(call.params)}" if call.params else call.url
        body = call.form_body if call.mode is TransportMode.FORM_BODY else call.json_body
        return RequestTrace(method=call.method, url=url, headers=headers, body=body, mode=call.mode, route=route)

    def request(
        self,
        method: str,
        endpoint: str,
        body: Any = None,
        params: Optional[Dict[str, Any]] = None,
        route: Optional[str] = None,
    ) -> Any:
        """Execute a request and return the parsed JSON response.

        Args:
            method: HTTP method
            endpoint: API path relative to the host (e.g., "api/technician")
            body: JSON payload for body-bearing methods
            params: Extra query parameters, merged with the auth parameters
            route: Route name used to pick the transport mode (see ClientConfig.transport_modes)

        Returns:
            Parsed JSON, or None for an empty response body

        Raises:
            ApiError: On non-2xx status or transport failure
        """
        mode = self.config.transport_mode(route)
        call = self._prepare(method, endpoint, body, params, mode)

        trace = self._trace(call, route)
        logger.debug(f"[api] {trace.method} {trace.url} mode={trace.mode.value} headers={trace.headers}")
        if self.observer is not None:
            self.observer(trace)

        kwargs: Dict[str, Any] = {
            "params": call.params,
            "headers": call.headers,
            "timeout": self.config.request_timeout,
        }
        if call.form_body is not None:
            kwargs["data"] = call.form_body
        elif call.json_body is not None:
            kwargs["json"] = call.json_body

        try:
            resp = requests.request(call.method, call.url, **kwargs)
        except requests.RequestException as e:
            raise ApiError(None, f"{type(e).__name__}: {e}", endpoint) from e

        self._handle_error(resp, endpoint)
        return self._parse(resp, endpoint)

    def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None, route: Optional[str] = None) -> Any:
        """Execute GET request."""
        return self.request("GET", endpoint, params=params, route=route)

    def post(self, endpoint: str, body: Any = None, params: Optional[Dict[str, Any]] = None, route: Optional[str] = None) -> Any:
        """Execute POST request with a JSON body."""
        return self.request("POST", endpoint, body=body, params=params, route=route)

    def put(self, endpoint: str, body: Any = None, params: Optional[Dict[str, Any]] = None, route: Optional[str] = None) -> Any:
        """Execute PUT request with a JSON body."""
        return self.request("PUT", endpoint, body=body, params=params, route=route)

    def delete(self, endpoint: str, params: Optional[Dict[str, Any]] = None, route: Optional[str] = None) -> Any:
        """Execute DELETE request."""
        return self.request("DELETE", endpoint, params=params, route=route)

    def _handle_error(self, resp: requests.Response, endpoint: str) -> None:
        """Centralized error handling for HTTP responses.

        Args:
            resp: Response object to check
            endpoint: Endpoint path used in the error (the URL is not used, it may carry parameters)

        Raises:
            ApiError: If response status indicates error
        """
        if not 200 <= resp.status_code < 300:
            message = (resp.text or "").strip() or resp.reason or "request failed"
            message = message.replace(self.credential.secret, REDACTED)
            raise ApiError(resp.status_code, message, endpoint)

    @staticmethod
    def _parse(resp: requests.Response, endpoint: str) -> Any:
        if not resp.content or not resp.content.strip():
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise ApiError(resp.status_code, f"Invalid JSON in response: {e}", endpoint) from e
