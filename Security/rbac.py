"""
ROLE-BASED ACCESS CONTROL (RBAC)
================================
Restricts routes to a set of permitted roles.
"""

# FLOW:
# - RequireRole reads the identity attached by Authenticate.
# - Role outside the permitted set: 403, wrapped handler never runs.
# HOW:
# - Compose after Authenticate; a missing identity is a wiring bug and
#   raises IdentityNotPresent (500), not a client error.

from __future__ import annotations

import logging
from functools import partial
from typing import Iterable

from starlette.requests import Request
from starlette.responses import Response

from Security.audit_trail import audit
from Security.errors import AccessDenied, IdentityNotPresent
from Security.middleware import Handler, Layer
from Security.session_store import RequestIdentity

logger = logging.getLogger(__name__)


def current_identity(request: Request) -> RequestIdentity:
    """Return the identity attached by Authenticate."""
    identity = getattr(request.state, "identity", None)
    if not isinstance(identity, RequestIdentity):
        raise IdentityNotPresent()
    return identity


class RequireRole:
    def __init__(self, next_handler: Handler, roles: Iterable[str]):
        self.next_handler = next_handler
        self.roles = frozenset(roles)
        if not self.roles:
            raise ValueError("RequireRole needs at least one permitted role")

    async def __call__(self, request: Request) -> Response:
        try:
            identity = current_identity(request)
        except IdentityNotPresent:
            logger.error("Role check on %s without authentication layer", request.url.path)
            raise

        if identity.role not in self.roles:
            audit("auth_role_denied", user_id=identity.user_id, details=f"role={identity.role}")
            raise AccessDenied()
        return await self.next_handler(request)


def require_roles(*roles: str) -> Layer:
    return partial(RequireRole, roles=roles)


admin_only = require_roles("admin")
farmer_or_admin = require_roles("farmer", "admin")
buyer_only = require_roles("buyer")
