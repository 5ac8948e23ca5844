"""
Fadetrack Backend: API Client Helpers
=====================================

Caller-side helpers for the Fadetrack HTTP API. `RoleResolver` mirrors
what the browser does on sign-in: show the cached role at once, then
confirm it with the server.
"""

from fadetrack.client.roles import RoleCache, RoleResolver, RoleState

__all__ = ["RoleCache", "RoleResolver", "RoleState"]
