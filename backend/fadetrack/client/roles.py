"""
Fadetrack Backend: Role Resolver
================================

What:  Resolves a signed-in user's role against /api/userRoleSimple with a
       persistent local cache in front of it.
How:   The cache is a small JSON file `{email: role}` read and written with
       aiofiles. The server is authoritative: a successful fetch overwrites
       the cached entry. A failed fetch or update leaves the cache alone and
       reports `customer` with the error; nothing is retried.

Flow:
    cached_role(email)  → instant answer for first paint (customer if unknown)
    resolve(email)      → server answer, cache reconciled
    update(email, role) → POST, then cache refreshed on success
    forget(email)       → sign-out
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple

import aiofiles
import aiofiles.os
import httpx

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "customer"
ROLES = ("customer", "professional")


@dataclass(frozen=True)
class RoleState:
    role: str
    has_record: bool
    error: Optional[str] = None
    from_cache: bool = False


class RoleCache:
    """JSON-file mapping of email → role, safe for concurrent coroutines."""

    def __init__(self, path):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    async def _load(self) -> Dict[str, str]:
        try:
            async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
                data = json.loads(await f.read() or "{}")
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError:
            logger.warning("Role cache %s is corrupt; starting empty", self.path)
            return {}
        return {k: v for k, v in data.items() if v in ROLES} if isinstance(data, dict) else {}

    async def _store(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(data, indent=2, sort_keys=True))
        await aiofiles.os.replace(tmp_path, self.path)

    async def get(self, email: str) -> Optional[str]:
        async with self._lock:
            return (await self._load()).get(email)

    async def set(self, email: str, role: str) -> None:
        async with self._lock:
            data = await self._load()
            if data.get(email) == role:
                return
            data[email] = role
            await self._store(data)

    async def delete(self, email: str) -> None:
        async with self._lock:
            data = await self._load()
            if data.pop(email, None) is not None:
                await self._store(data)


class RoleResolver:
    """
    Resolve and change roles through the HTTP API.

    `transport` lets tests substitute an `httpx.MockTransport`.
    """

    def __init__(
        self,
        base_url: str,
        cache: RoleCache,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.cache = cache
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self._transport)

    @staticmethod
    def _json_object(response: httpx.Response) -> Optional[dict]:
        """Response body as a dict, or None when it is not a JSON object."""
        try:
            body = response.json()
        except ValueError:
            return None
        return body if isinstance(body, dict) else None

    @classmethod
    def _error_message(cls, response: httpx.Response, fallback: str) -> str:
        body = cls._json_object(response)
        if body is None:
            return f"{fallback} (HTTP {response.status_code})"
        return body.get("message") or body.get("error") or fallback

    async def cached_role(self, email: str) -> str:
        return await self.cache.get(email) or DEFAULT_ROLE

    async def resolve(self, email: str, prefer_cache: bool = False) -> RoleState:
        """
        The user's role.

        With `prefer_cache`, a cached entry is returned without a request.
        Otherwise the server is asked and the cache updated to match.
        """
        if prefer_cache:
            cached = await self.cache.get(email)
            if cached is not None:
                return RoleState(role=cached, has_record=True, from_cache=True)

        try:
            async with self._client() as client:
                response = await client.get("/api/userRoleSimple", params={"email": email})
        except httpx.HTTPError as e:
            logger.warning("Role lookup for %s failed: %s", email, e)
            return RoleState(role=DEFAULT_ROLE, has_record=False, error="Failed to fetch user role")

        if response.is_error:
            message = self._error_message(response, "Failed to fetch user role")
            logger.warning("Role lookup for %s rejected: %s", email, message)
            return RoleState(role=DEFAULT_ROLE, has_record=False, error=message)

        data = self._json_object(response)
        if data is None:
            logger.warning("Role lookup for %s returned a non-JSON body", email)
            return RoleState(role=DEFAULT_ROLE, has_record=False, error="Invalid role response")

        role = data.get("role") if data.get("role") in ROLES else DEFAULT_ROLE
        has_record = bool(data.get("hasRecord"))
        if has_record:
            await self.cache.set(email, role)
        else:
            await self.cache.delete(email)
        return RoleState(role=role, has_record=has_record)

    async def update(self, email: str, role: str) -> Tuple[bool, Optional[str]]:
        """
        Change the user's role.

        Returns:
            (True, None) on success, (False, error message) otherwise
        """
        if not email:
            return False, "No signed-in user"
        try:
            async with self._client() as client:
                response = await client.post(
                    "/api/userRoleSimple", json={"user_email": email, "role": role}
                )
        except httpx.HTTPError as e:
            logger.warning("Role update for %s failed: %s", email, e)
            return False, f"Network error: {e}"

        if response.is_error:
            return False, self._error_message(response, "Failed to update user role")

        await self.cache.set(email, role)
        return True, None

    async def forget(self, email: str) -> None:
        await self.cache.delete(email)
