"""Role-based, multi-tenant authorization backed by a SQLite policy store."""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections import deque
from typing import List, Set, Tuple

from conflux.errors import AuthError

log = logging.getLogger(__name__)

Policy = Tuple[str, str, str, str]
Grouping = Tuple[str, str, str]


def key_match(key: str, pattern: str) -> bool:
    """Match a path against a pattern where ``*`` matches any remainder."""
    star = pattern.find("*")
    if star == -1:
        return key == pattern
    if len(key) > star:
        return key[:star] == pattern[:star]
    return key == pattern[:star]


class AuthzService:
    """Check and manage permissions of users and roles within tenants.

    Policies are ``(role, tenant, resource_pattern, action)`` rules; users are
    linked to roles within a tenant. A request is allowed when the user, or any
    role it reaches in that tenant, holds a policy for the tenant whose pattern
    matches the resource and whose action equals the requested one.
    """

    def __init__(self, database_path) -> None:
        log.info("Initializing AuthzService")
        self._lock = threading.RLock()
        self._policies: List[Policy] = []
        self._groupings: List[Grouping] = []
        try:
            self._conn = sqlite3.connect(str(database_path), check_same_thread=False)
            with self._conn:
                self._conn.execute(
                    "CREATE TABLE IF NOT EXISTS casbin_rule ("
                    " id INTEGER PRIMARY KEY AUTOINCREMENT,"
                    " ptype TEXT NOT NULL,"
                    " v0 TEXT NOT NULL, v1 TEXT NOT NULL,"
                    " v2 TEXT NOT NULL DEFAULT '', v3 TEXT NOT NULL DEFAULT '',"
                    " v4 TEXT NOT NULL DEFAULT '', v5 TEXT NOT NULL DEFAULT '')"
                )
            self._load()
        except sqlite3.Error as exc:
            log.error("Failed to open policy store: %s", exc)
            raise AuthError(f"Failed to open policy store: {exc}") from exc
        log.info("AuthzService initialized successfully")

    def __enter__(self) -> "AuthzService":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _load(self) -> None:
        rows = self._conn.execute(
            "SELECT ptype, v0, v1, v2, v3 FROM casbin_rule ORDER BY id"
        ).fetchall()
        policies: List[Policy] = []
        groupings: List[Grouping] = []
        for ptype, v0, v1, v2, v3 in rows:
            if ptype == "p":
                rule = (v0, v1, v2, v3)
                if rule not in policies:
                    policies.append(rule)
            elif ptype == "g":
                link = (v0, v1, v2)
                if link not in groupings:
                    groupings.append(link)
        self._policies = policies
        self._groupings = groupings

    def _subjects(self, user_id: str, tenant: str) -> Set[str]:
        reached = {user_id}
        queue = deque([user_id])
        while queue:
            name = queue.popleft()
            for member, role, domain in self._groupings:
                if member == name and domain == tenant and role not in reached:
                    reached.add(role)
                    queue.append(role)
        return reached

    def check(self, user_id: str, tenant: str, resource: str, action: str) -> bool:
        """Return whether the user may perform the action on the resource."""
        action = str(action)
        with self._lock:
            subjects = self._subjects(user_id, tenant)
            allowed = any(
                sub in subjects and dom == tenant and act == action and key_match(resource, obj)
                for sub, dom, obj, act in self._policies
            )
        log.debug(
            "Permission check: user=%s tenant=%s resource=%s action=%s allowed=%s",
            user_id, tenant, resource, action, allowed,
        )
        return allowed

    def add_permission_for_role(self, role: str, tenant: str, resource: str, action: str) -> bool:
        """Grant a permission to a role; False if it was already granted."""
        rule = (str(role), tenant, resource, str(action))
        with self._lock:
            if rule in self._policies:
                return False
            try:
                with self._conn:
                    self._conn.execute(
                        "INSERT INTO casbin_rule (ptype, v0, v1, v2, v3) VALUES ('p', ?, ?, ?, ?)",
                        rule,
                    )
            except sqlite3.Error as exc:
                log.error("Failed to add permission: %s", exc)
                raise AuthError(f"Failed to add permission: {exc}") from exc
            self._policies.append(rule)
        log.info("Permission added: role=%s tenant=%s resource=%s action=%s", *rule)
        return True

    def remove_permission_for_role(self, role: str, tenant: str, resource: str, action: str) -> bool:
        """Withdraw a permission from a role; False if it was not granted."""
        rule = (str(role), tenant, resource, str(action))
        with self._lock:
            if rule not in self._policies:
                return False
            try:
                with self._conn:
                    self._conn.execute(
                        "DELETE FROM casbin_rule WHERE ptype = 'p' AND v0 = ? AND v1 = ? AND v2 = ? AND v3 = ?",
                        rule,
                    )
            except sqlite3.Error as exc:
                log.error("Failed to remove permission: %s", exc)
                raise AuthError(f"Failed to remove permission: {exc}") from exc
            self._policies.remove(rule)
        log.info("Permission removed: role=%s tenant=%s resource=%s action=%s", *rule)
        return True

    def assign_role_to_user(self, user_id: str, role: str, tenant: str) -> bool:
        """Give a user a role in a tenant; False if already assigned."""
        link = (user_id, str(role), tenant)
        with self._lock:
            if link in self._groupings:
                return False
            try:
                with self._conn:
                    self._conn.execute(
                        "INSERT INTO casbin_rule (ptype, v0, v1, v2) VALUES ('g', ?, ?, ?)",
                        link,
                    )
            except sqlite3.Error as exc:
                log.error("Failed to assign role: %s", exc)
                raise AuthError(f"Failed to assign role: {exc}") from exc
            self._groupings.append(link)
        log.info("Role assigned: user=%s role=%s tenant=%s", *link)
        return True

    def revoke_role_from_user(self, user_id: str, role: str, tenant: str) -> bool:
        """Take a role away from a user; False if it was not assigned."""
        link = (user_id, str(role), tenant)
        with self._lock:
            if link not in self._groupings:
                return False
            try:
                with self._conn:
                    self._conn.execute(
                        "DELETE FROM casbin_rule WHERE ptype = 'g' AND v0 = ? AND v1 = ? AND v2 = ?",
                        link,
                    )
            except sqlite3.Error as exc:
                log.error("Failed to revoke role: %s", exc)
                raise AuthError(f"Failed to revoke role: {exc}") from exc
            self._groupings.remove(link)
        log.info("Role revoked: user=%s role=%s tenant=%s", *link)
        return True

    def get_roles_for_user_in_tenant(self, user_id: str, tenant: str) -> List[str]:
        """Return the roles directly assigned to the user in the tenant."""
        with self._lock:
            return [role for member, role, domain in self._groupings
                    if member == user_id and domain == tenant]

    def reload_policy(self) -> None:
        """Reload all policies and role links from the store."""
        log.info("Reloading policies")
        with self._lock:
            try:
                self._load()
            except sqlite3.Error as exc:
                log.error("Failed to reload policy: %s", exc)
                raise AuthError(f"Failed to reload policy: {exc}") from exc

    def close(self) -> None:
        """Close the policy store."""
        with self._lock:
            self._conn.close()