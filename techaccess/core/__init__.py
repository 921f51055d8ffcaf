"""Core client logic.

Module Structure:
    - api/              : HTTP client, typed errors, one service per resource kind
    - credentials.py    : Credential resolution and the encrypted local store
    - membership.py     : Reverse group-membership lookup (cached or live)
    - provisioning.py   : Multi-step mutations (leaf assignment, group evacuation, grants)
    - validators.py     : Closed option-sets and input validation

Modules are imported explicitly; nothing here is auto-imported.
"""
