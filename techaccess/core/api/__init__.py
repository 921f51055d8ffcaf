"""Remote-access management API client library.

Architecture:
- client.py: HTTP client with auth parameters, transport modes and error mapping
- refs.py: ByName / ById / ByGuid / Resolved record references
- filters.py: Client-side glob filtering and single-match resolution
- technicians.py, agents.py, groups.py, leafs.py, triplets.py, apikeys.py: Resource services
- exceptions.py: Typed exceptions for error handling

Usage:
    from techaccess.core.api import ApiClient, AgentService, ByGuid

    client = ApiClient(credential)
    agent = AgentService(client).get_agent(ByGuid("6f1c..."))
"""
from .client import (
    ApiClient,
    RequestTrace,
    RequestObserver,
)
from .exceptions import (
    TechAccessError,
    AuthResolutionError,
    ApiError,
    NotFoundError,
    AmbiguousMatchError,
    ValidationError,
    PartialCompletionError,
)
from .refs import (
    ByName,
    ById,
    ByGuid,
    Resolved,
    Ref,
)
from .filters import (
    glob_match,
    filter_records,
)
from .technicians import TechnicianService
from .agents import AgentService
from .groups import (
    GroupService,
    TechnicianGroupService,
    AgentGroupService,
)
from .leafs import LeafService
from .triplets import (
    TripletService,
    RightsGroupService,
)
from .apikeys import ApiKeyService

__all__ = [
    # Client
    "ApiClient",
    "RequestTrace",
    "RequestObserver",

    # Exceptions
    "TechAccessError",
    "AuthResolutionError",
    "ApiError",
    "NotFoundError",
    "AmbiguousMatchError",
    "ValidationError",
    "PartialCompletionError",

    # References
    "ByName",
    "ById",
    "ByGuid",
    "Resolved",
    "Ref",

    # Filtering
    "glob_match",
    "filter_records",

    # Services
    "TechnicianService",
    "AgentService",
    "GroupService",
    "TechnicianGroupService",
    "AgentGroupService",
    "LeafService",
    "TripletService",
    "RightsGroupService",
    "ApiKeyService",
]
