"""Storefront E2E -- Authentication module.

Loads the test-user catalogue, logs users in through the UI, persists and
reuses per-role storage state, and opens authenticated browser and API
contexts.

Public API
----------
.. autoclass:: TestUser
.. autoclass:: StorageState
.. autoclass:: AuthSetupReport
.. autofunction:: create_auth_states
.. autofunction:: open_authenticated_context
.. autofunction:: open_authenticated_request
"""

from .context import open_authenticated_context, open_authenticated_request
from .setup import AuthSetupReport, create_auth_states, login_and_save_state
from .state import (
    StorageState,
    StorageStateError,
    auth_state_path,
    cleanup_auth_states,
    load_storage_state,
)
from .users import (
    DEFAULT_ROLE,
    LOCKED_OUT_ROLE,
    AuthError,
    TestUser,
    UnknownRoleError,
    UsersFileError,
    find_user,
    load_test_users,
)

__all__ = [
    # Users
    "TestUser",
    "load_test_users",
    "find_user",
    "DEFAULT_ROLE",
    "LOCKED_OUT_ROLE",
    "AuthError",
    "UsersFileError",
    "UnknownRoleError",
    # Storage state
    "StorageState",
    "StorageStateError",
    "auth_state_path",
    "load_storage_state",
    "cleanup_auth_states",
    # Setup and contexts
    "AuthSetupReport",
    "create_auth_states",
    "login_and_save_state",
    "open_authenticated_context",
    "open_authenticated_request",
]
