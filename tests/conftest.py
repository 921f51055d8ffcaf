"""Pytest shared fixtures: an in-memory stand-in for the service's REST API."""
import itertools
import json
import pathlib
import re
import sys
from types import SimpleNamespace
from urllib.parse import unquote, urlparse

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
import requests

from techaccess import audit
from techaccess.config.settings import ClientConfig
from techaccess.core.api.client import ApiClient
from techaccess.core.credentials import Credential

HOST = "https://tenant.example.test"
PRINCIPAL = "ops@example.com"
API_KEY = "k3y-s3cret-value"


class _StubResponse:
    def __init__(self, payload=None, status_code: int = 200, text: str = None):
        self.status_code = status_code
        if text is None:
            text = "" if payload is None else json.dumps(payload)
        self.text = text
        self.content = text.encode("utf-8")
        self.reason = "OK" if status_code < 400 else "Error"

    def json(self):
        return json.loads(self.text)


class FakeService:
    """Stateful fake of the service.

    - Records every call in `calls` (method, path, params, form, json, headers)
    - Enforces the APIKey header and the Email/authenticationmethod parameters
    - Rejects listing routes that do not carry credentials in a form body,
      the way the real backend does
    - `fail(method, path)` makes a given call return an error
    """

    def __init__(self):
        self.calls = []
        self.technicians = []
        self.agents = []
        self.techgroups = []
        self.agentgroups = []
        self.leafs = []
        self.triplets = []
        self.rightsgroups = []
        self.apikeys = []
        self._ids = itertools.count(1)
        self._failures = {}
        self._routes = [
            ("GET", r"api/technician", self._list_technicians, True),
            ("POST", r"api/technician", self._create_technician, False),
            ("PUT", r"api/technician/status", self._technician_status, False),
            ("PUT", r"api/technician/options", self._technician_options, False),
            ("PUT", r"api/technician/(\d+)", self._update_technician, False),
            ("DELETE", r"api/technician/(\d+)", self._delete_technician, False),
            ("GET", r"api/(techgroup|domaingroup)", self._list_groups, True),
            ("GET", r"api/(techgroup|domaingroup)/(\d+)", self._group_detail, True),
            ("POST", r"api/(techgroup|domaingroup)", self._create_group, False),
            ("PUT", r"api/(techgroup|domaingroup)/(\d+)", self._update_group, False),
            ("DELETE", r"api/(techgroup|domaingroup)/(\d+)", self._delete_group, False),
            ("PUT", r"api/(techgroup)/(\d+)/tech/(\d+)", self._add_member, False),
            ("DELETE", r"api/(techgroup)/(\d+)/tech/(\d+)", self._remove_member, False),
            ("PUT", r"api/(domaingroup)/(\d+)/agent/(\d+)", self._add_member, False),
            ("DELETE", r"api/(domaingroup)/(\d+)/agent/(\d+)", self._remove_member, False),
            ("GET", r"api/domain", self._list_agents, True),
            ("GET", r"api/domain/info", self._agent_info, False),
            ("PUT", r"api/domain/(\d+)/options", self._agent_options, False),
            ("PUT", r"api/domain/(\d+)/accountleaf/([^/]+)", self._assign_leaf, False),
            ("DELETE", r"api/domain/(\d+)", self._delete_agent, False),
            ("GET", r"api/accountleaf", self._list_leafs, True),
            ("GET", r"api/accountleaf/(\d+)", self._leaf_detail, False),
            ("POST", r"api/accountleaf", self._create_leaf, False),
            ("DELETE", r"api/accountleaf/(\d+)", self._delete_leaf, False),
            ("GET", r"api/triplet", self._list_triplets, False),
            ("GET", r"api/triplet/(\d+)", self._get_triplet, False),
            ("POST", r"api/triplet", self._create_triplet, False),
            ("PUT", r"api/triplet/(\d+)", self._update_triplet, False),
            ("DELETE", r"api/triplet/(\d+)", self._delete_triplet, False),
            ("GET", r"api/rightsgroup", lambda call: self.rightsgroups, False),
            ("GET", r"api/apikey", lambda call: self.apikeys, True),
        ]

    # ─────────────────────────────────────────────────────────────────────
    # Seeding
    # ─────────────────────────────────────────────────────────────────────
    def _new_id(self):
        return next(self._ids)

    def add_technician(self, name, **fields):
        record = {"id": self._new_id(), "name": name, "firstName": "", "lastName": "",
                  "email": f"{name.lower()}@example.com", "phone": "", "status": "Enabled", "options": {}}
        record.update(fields)
        self.technicians.append(record)
        return record

    def add_agent(self, name, guid=None, leaf=None):
        agent_id = self._new_id()
        record = {"id": agent_id, "guid": guid or f"00000000-0000-0000-0000-{agent_id:012d}",
                  "name": name, "accountLeaf": leaf, "options": {}}
        self.agents.append(record)
        return record

    def _add_group(self, store, name, members):
        record = {"id": self._new_id(), "name": name, "description": "",
                  "members": [{"id": m["id"], "name": m["name"]} for m in members or []]}
        store.append(record)
        return record

    def add_techgroup(self, name, members=None):
        return self._add_group(self.techgroups, name, members)

    def add_agentgroup(self, name, members=None):
        return self._add_group(self.agentgroups, name, members)

    def add_leaf(self, path):
        record = {"id": self._new_id(), "path": path}
        self.leafs.append(record)
        return record

    def add_rightsgroup(self, name):
        record = {"id": self._new_id(), "name": name, "rights": ["View", "Control"]}
        self.rightsgroups.append(record)
        return record

    def add_triplet(self, tech_group, rights_group, agent_group, name=None):
        record = {"id": self._new_id(), "name": name, "description": None,
                  "technicianGroupId": tech_group["id"], "rightsGroupId": rights_group["id"],
                  "agentGroupId": agent_group["id"], "expiration": None, "noExpiration": True}
        self.triplets.append(record)
        return record

    def add_apikey(self, name):
        record = {"id": self._new_id(), "name": name, "created": "2026-01-01T00:00:00Z", "expires": None}
        self.apikeys.append(record)
        return record

    def fail(self, method, path, status=500, message="internal error"):
        self._failures[(method, path)] = (status, message)

    # ─────────────────────────────────────────────────────────────────────
    # Call inspection
    # ─────────────────────────────────────────────────────────────────────
    def mutating_calls(self):
        return [c for c in self.calls if c.method != "GET"]

    def calls_to(self, method, pattern):
        return [c for c in self.calls if c.method == method and re.fullmatch(pattern, c.path)]

    # ─────────────────────────────────────────────────────────────────────
    # Dispatch (installed over requests.request)
    # ─────────────────────────────────────────────────────────────────────
    def __call__(self, method, url, params=None, data=None, headers=None, timeout=None, **kwargs):
        path = urlparse(url).path.lstrip("/")
        form = data if isinstance(data, dict) else None
        body = kwargs.get("json")
        call = SimpleNamespace(method=method, url=url, path=path, params=dict(params or {}),
                               form=form, json=body, raw_data=data, headers=dict(headers or {}), timeout=timeout)
        self.calls.append(call)

        if call.headers.get("Authorization") != f"APIKey {API_KEY}":
            return _StubResponse({"error": "invalid api key"}, 401)

        if (method, path) in self._failures:
            status, message = self._failures[(method, path)]
            return _StubResponse(text=message, status_code=status)

        for route_method, pattern, handler, form_only in self._routes:
            if route_method != method:
                continue
            match = re.fullmatch(pattern, path)
            if not match:
                continue
            credentials = form if form_only else call.params
            if form_only and call.params.get("Email"):
                return _StubResponse({"error": "credentials must be sent in the request body"}, 400)
            if not credentials or credentials.get("Email") != PRINCIPAL \
                    or credentials.get("authenticationmethod") != "local":
                return _StubResponse({"error": "missing authentication parameters"}, 401)
            call.args = [unquote(g) for g in match.groups()]
            result = handler(call)
            if isinstance(result, _StubResponse):
                return result
            return _StubResponse(result, 200 if result is not None else 204)

        return _StubResponse({"error": f"no route for {method} {path}"}, 404)

    # ─────────────────────────────────────────────────────────────────────
    # Handlers
    # ─────────────────────────────────────────────────────────────────────
    @staticmethod
    def _find(store, record_id):
        for record in store:
            if record["id"] == int(record_id):
                return record
        return None

    def _group_store(self, kind):
        return self.techgroups if kind == "techgroup" else self.agentgroups

    def _list_technicians(self, call):
        return self.technicians

    def _create_technician(self, call):
        return self.add_technician(**call.json)

    def _technician_status(self, call):
        record = self._find(self.technicians, call.json["id"])
        if record is None:
            return _StubResponse({"error": "not found"}, 404)
        record["status"] = call.json["status"]
        return None

    def _technician_options(self, call):
        record = self._find(self.technicians, call.params["technicianId"])
        if record is None:
            return _StubResponse({"error": "not found"}, 404)
        record["options"].update(call.json)
        return None

    def _update_technician(self, call):
        record = self._find(self.technicians, call.args[0])
        if record is None:
            return _StubResponse({"error": "not found"}, 404)
        record.update(call.json)
        return record

    def _delete_technician(self, call):
        record = self._find(self.technicians, call.args[0])
        if record is None:
            return _StubResponse({"error": "not found"}, 404)
        self.technicians.remove(record)
        return None

    def _list_groups(self, call):
        return [
            {"id": g["id"], "name": g["name"], "description": g["description"], "memberCount": len(g["members"])}
            for g in self._group_store(call.args[0])
        ]

    def _group_detail(self, call):
        record = self._find(self._group_store(call.args[0]), call.args[1])
        if record is None:
            return _StubResponse({"error": "not found"}, 404)
        return json.loads(json.dumps(record))

    def _create_group(self, call):
        return self._add_group(self._group_store(call.args[0]), call.json["name"], [])

    def _update_group(self, call):
        record = self._find(self._group_store(call.args[0]), call.args[1])
        if record is None:
            return _StubResponse({"error": "not found"}, 404)
        record.update(call.json)
        return record

    def _delete_group(self, call):
        store = self._group_store(call.args[0])
        record = self._find(store, call.args[1])
        if record is None:
            return _StubResponse({"error": "not found"}, 404)
        if record["members"]:
            return _StubResponse({"error": "group is not empty"}, 409)
        store.remove(record)
        return None

    def _add_member(self, call):
        kind, group_id, member_id = call.args
        group = self._find(self._group_store(kind), group_id)
        member_store = self.technicians if kind == "techgroup" else self.agents
        member = self._find(member_store, member_id)
        if group is None or member is None:
            return _StubResponse({"error": "not found"}, 404)
        if any(m["id"] == member["id"] for m in group["members"]):
            return _StubResponse({"error": "already a member"}, 409)
        group["members"].append({"id": member["id"], "name": member["name"]})
        return None

    def _remove_member(self, call):
        kind, group_id, member_id = call.args
        group = self._find(self._group_store(kind), group_id)
        if group is None:
            return _StubResponse({"error": "not found"}, 404)
        remaining = [m for m in group["members"] if m["id"] != int(member_id)]
        if len(remaining) == len(group["members"]):
            return _StubResponse({"error": "not a member"}, 404)
        group["members"] = remaining
        return None

    def _list_agents(self, call):
        return self.agents

    def _agent_info(self, call):
        guid = call.params.get("guid", "").lower()
        for agent in self.agents:
            if agent["guid"].lower() == guid:
                return {**agent, "os": "Windows Server 2022", "online": True}
        return _StubResponse({"error": "not found"}, 404)

    def _agent_options(self, call):
        record = self._find(self.agents, call.args[0])
        if record is None:
            return _StubResponse({"error": "not found"}, 404)
        record["options"].update(call.json)
        return None

    def _assign_leaf(self, call):
        agent_id, path = call.args
        record = self._find(self.agents, agent_id)
        if record is None or not any(leaf["path"] == path for leaf in self.leafs):
            return _StubResponse({"error": "not found"}, 404)
        record["accountLeaf"] = path
        return None

    def _delete_agent(self, call):
        record = self._find(self.agents, call.args[0])
        if record is None:
            return _StubResponse({"error": "not found"}, 404)
        self.agents.remove(record)
        return None

    def _list_leafs(self, call):
        return self.leafs

    def _leaf_detail(self, call):
        record = self._find(self.leafs, call.args[0])
        return record if record is not None else _StubResponse({"error": "not found"}, 404)

    def _create_leaf(self, call):
        return self.add_leaf(call.json["path"])

    def _delete_leaf(self, call):
        record = self._find(self.leafs, call.args[0])
        if record is None:
            return _StubResponse({"error": "not found"}, 404)
        self.leafs.remove(record)
        return None

    def _list_triplets(self, call):
        return self.triplets

    def _get_triplet(self, call):
        record = self._find(self.triplets, call.args[0])
        return record if record is not None else _StubResponse({"error": "not found"}, 404)

    def _create_triplet(self, call):
        record = {"id": self._new_id(), "name": None, "description": None}
        record.update(call.json)
        self.triplets.append(record)
        return record

    def _update_triplet(self, call):
        record = self._find(self.triplets, call.args[0])
        if record is None:
            return _StubResponse({"error": "not found"}, 404)
        record.update(call.json)
        return record

    def _delete_triplet(self, call):
        record = self._find(self.triplets, call.args[0])
        if record is None:
            return _StubResponse({"error": "not found"}, 404)
        self.triplets.remove(record)
        return None


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _no_network(monkeypatch, request):
    """Prevent unit tests from reaching a live service.

    Integration tests are explicitly marked with @pytest.mark.integration.
    """
    if request.node.get_closest_marker("integration"):
        return

    def _refuse(method, url, *args, **kwargs):
        raise RuntimeError(f"Unexpected HTTP {method} in unit test: {url}")

    monkeypatch.setattr(requests, "request", _refuse)


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch, tmp_path):
    """Clear client environment variables and send audit events to a temp dir."""
    for var in ("TECHACCESS_HOST", "TECHACCESS_EMAIL", "TECHACCESS_API_KEY", "TECHACCESS_TIMEOUT",
                "TECHACCESS_CASE_SENSITIVE", "TECHACCESS_CONFIG", "TECHACCESS_CREDENTIAL_KEY",
                "TECHACCESS_AUDIT_KEY_FILE"):
        monkeypatch.delenv(var, raising=False)

    audit_dir = tmp_path / "audit"
    monkeypatch.setattr(audit, "AUDIT_LOG_DIR", audit_dir)
    monkeypatch.setattr(audit, "AUDIT_LOG_FILE", audit_dir / "access-events.jsonl")
    monkeypatch.setenv("TECHACCESS_AUDIT_SIGNING_KEY", "test-signing-key-for-audit-trail")
    yield audit_dir


# ─────────────────────────────────────────────────────────────────────────────
# Client fixtures
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def fake_service(monkeypatch):
    """Install a fresh FakeService over requests.request."""
    service = FakeService()
    monkeypatch.setattr(requests, "request", service)
    return service


@pytest.fixture()
def credential():
    return Credential(PRINCIPAL, API_KEY, HOST)


@pytest.fixture()
def client(fake_service, credential):
    """API client wired to the fake service."""
    return ApiClient(credential, ClientConfig(host=HOST))
