"""Authentication context, permission results and resource path helpers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional


class Action(str, Enum):
    """Operations that can be granted on a resource."""

    READ = "read"
    WRITE = "write"
    DELETE = "delete"
    ADMIN = "admin"

    CLUSTER_ADD_NODE = "cluster:add_node"
    CLUSTER_REMOVE_NODE = "cluster:remove_node"
    CLUSTER_VIEW_METRICS = "cluster:view_metrics"
    CLUSTER_CHANGE_CONFIG = "cluster:change_config"
    CLUSTER_ADMIN = "cluster:admin"

    def __str__(self) -> str:
        return self.value

    def __format__(self, spec: str) -> str:
        return format(self.value, spec)


class Role(str, Enum):
    """Well-known role names."""

    SUPER_ADMIN = "super_admin"
    TENANT_ADMIN = "tenant_admin"
    DEVELOPER = "developer"
    VIEWER = "viewer"

    CLUSTER_ADMIN = "cluster_admin"
    CLUSTER_OPERATOR = "cluster_operator"
    CLUSTER_VIEWER = "cluster_viewer"

    def __str__(self) -> str:
        return self.value

    def __format__(self, spec: str) -> str:
        return format(self.value, spec)


@dataclass
class AuthContext:
    """Identity of the caller, as extracted from a token or session."""

    user_id: str
    tenant_id: str
    roles: Optional[List[str]] = None

    @classmethod
    def with_roles(cls, user_id: str, tenant_id: str, roles: List[str]) -> "AuthContext":
        """Build a context that carries a cached role list."""
        return cls(user_id, tenant_id, list(roles))


@dataclass
class PermissionResult:
    """Outcome of a permission check."""

    allowed: bool
    user_id: str
    tenant_id: str
    resource: str
    action: str

    @classmethod
    def grant(cls, user_id: str, tenant_id: str, resource: str, action: str) -> "PermissionResult":
        return cls(True, user_id, tenant_id, resource, str(action))

    @classmethod
    def deny(cls, user_id: str, tenant_id: str, resource: str, action: str) -> "PermissionResult":
        return cls(False, user_id, tenant_id, resource, str(action))


class ResourcePath:
    """Builders for the resource paths that policies refer to."""

    @staticmethod
    def config(tenant: str, app: str, env: str, config_name: str) -> str:
        return f"/tenants/{tenant}/apps/{app}/envs/{env}/configs/{config_name}"

    @staticmethod
    def app(tenant: str, app: str) -> str:
        return f"/tenants/{tenant}/apps/{app}"

    @staticmethod
    def env(tenant: str, app: str, env: str) -> str:
        return f"/tenants/{tenant}/apps/{app}/envs/{env}"

    @staticmethod
    def tenant(tenant: str) -> str:
        return f"/tenants/{tenant}"

    @staticmethod
    def admin(tenant: str, resource: str) -> str:
        return f"/tenants/{tenant}/admin/{resource}"

    @staticmethod
    def cluster(tenant: str) -> str:
        return f"/tenants/{tenant}/cluster"

    @staticmethod
    def cluster_node(tenant: str, node_id: int) -> str:
        return f"/tenants/{tenant}/cluster/nodes/{node_id}"

    @staticmethod
    def cluster_metrics(tenant: str) -> str:
        return f"/tenants/{tenant}/cluster/metrics"

    @staticmethod
    def cluster_config(tenant: str) -> str:
        return f"/tenants/{tenant}/cluster/config"