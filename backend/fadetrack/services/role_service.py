"""
Fadetrack Backend: Role Service
===============================

Resolves whether a user is a `customer` or a `professional` and which
navigation tabs that role may see.

Resolution rules:
    - No `user_roles` row  → role "customer", has_record False
    - Row present          → stored role, has_record True
    - Writes are upserts keyed by user email; the caller learns whether a
      row was inserted (201) or updated (200)

Navigation:
    customer      reviews · myreviews · directory · aisearch   (default reviews)
    professional  dashboard · directory · aisearch             (default dashboard)

    A requested tab, or the tab implied by the request's subdomain
    (e.g. `my.fadetrack.app` → myreviews), wins when the role may see it;
    otherwise the role's default tab is active.
"""

import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fadetrack.exceptions import DatabaseError
from fadetrack.models.account import UserRole
from fadetrack.schemas.account import NavigationResponse, RoleResponse

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "customer"

ROLE_TABS: Dict[str, List[str]] = {
    "customer": ["reviews", "myreviews", "directory", "aisearch"],
    "professional": ["dashboard", "directory", "aisearch"],
}

DEFAULT_TAB: Dict[str, str] = {
    "customer": "reviews",
    "professional": "dashboard",
}

SUBDOMAIN_TABS: Dict[str, str] = {
    "my": "myreviews",
    "ai": "aisearch",
    "write": "reviews",
    "browse": "directory",
    "pro": "dashboard",
}


def tab_for_host(host: Optional[str]) -> Optional[str]:
    """Map the left-most label of a host name to a tab, if it names one."""
    if not host:
        return None
    hostname = host.split(":", 1)[0].lower()
    labels = hostname.split(".")
    if labels[-1].isdigit():
        return None
    # bare domains carry no subdomain; "ai.localhost" does
    if len(labels) < 3 and labels[-1] != "localhost":
        return None
    return SUBDOMAIN_TABS.get(labels[0])


def choose_tab(role: str, requested: Optional[str], host: Optional[str]) -> str:
    allowed = ROLE_TABS[role]
    for candidate in (requested, tab_for_host(host)):
        if candidate and candidate in allowed:
            return candidate
    return DEFAULT_TAB[role]


class RoleService:

    async def get_role(self, db: AsyncSession, email: str) -> RoleResponse:
        try:
            result = await db.execute(select(UserRole).where(UserRole.user_email == email))
            record = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Role lookup failed for %s: %s", email, e)
            raise DatabaseError(message=f"Failed to fetch user role: {e}")

        if record is None:
            return RoleResponse(role=DEFAULT_ROLE, has_record=False)
        return RoleResponse(role=record.role, has_record=True)

    async def set_role(self, db: AsyncSession, email: str, role: str) -> Tuple[RoleResponse, bool]:
        """
        Insert or update the role for `email`.

        Returns:
            (role response, created) where `created` is True on insert
        """
        try:
            result = await db.execute(select(UserRole).where(UserRole.user_email == email))
            record = result.scalar_one_or_none()
            created = record is None
            if created:
                record = UserRole(user_email=email, role=role)
                db.add(record)
            else:
                record.role = role
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Role update failed for %s: %s", email, e)
            raise DatabaseError(message=f"Failed to update user role: {e}")

        logger.info("Role for %s %s as '%s'", email, "created" if created else "updated", role)
        return RoleResponse(role=record.role, has_record=True), created

    async def navigation(
        self,
        db: AsyncSession,
        email: Optional[str],
        requested_tab: Optional[str] = None,
        host: Optional[str] = None,
    ) -> NavigationResponse:
        """Tabs and active tab for a (possibly anonymous) visitor."""
        if email:
            role = await self.get_role(db, email)
        else:
            role = RoleResponse(role=DEFAULT_ROLE, has_record=False)

        return NavigationResponse(
            role=role.role,
            has_record=role.has_record,
            tabs=list(ROLE_TABS[role.role]),
            active_tab=choose_tab(role.role, requested_tab, host),
        )


role_service = RoleService()
