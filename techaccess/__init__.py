"""Client library for the remote-access management service.

To call the API:
    from techaccess.config import load_settings
    from techaccess.core.credentials import resolve_credential
    from techaccess.core.api import ApiClient, TechnicianService

To run compound operations:
    from techaccess.core.provisioning import AccessProvisioner

To answer "which groups contain X":
    from techaccess.core.membership import MembershipResolver
"""
