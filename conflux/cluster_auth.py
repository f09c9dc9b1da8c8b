"""Authorization checks for cluster membership and management operations."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from conflux.auth import Action, AuthContext, PermissionResult, ResourcePath, Role
from conflux.authz import AuthzService
from conflux.errors import AuthError

log = logging.getLogger(__name__)


class RaftAuthzService:
    """Permission checks for cluster operations on top of :class:`AuthzService`."""

    def __init__(self, authz_service: AuthzService, default_tenant: str) -> None:
        self.authz_service = authz_service
        self.default_tenant = default_tenant

    def _check(self, auth_ctx: AuthContext, resource: str, action: Action,
               operation: str) -> PermissionResult:
        tenant = auth_ctx.tenant_id
        log.debug("Checking %s permission: user=%s tenant=%s resource=%s",
                  operation, auth_ctx.user_id, tenant, resource)
        allowed = self.authz_service.check(auth_ctx.user_id, tenant, resource, action.value)
        if allowed:
            return PermissionResult.grant(auth_ctx.user_id, tenant, resource, action.value)
        log.warning("Permission denied for %s: user=%s tenant=%s resource=%s",
                    operation, auth_ctx.user_id, tenant, resource)
        return PermissionResult.deny(auth_ctx.user_id, tenant, resource, action.value)

    def check_add_node_permission(self, auth_ctx: AuthContext, node_id: int) -> PermissionResult:
        """Whether the caller may add the given node to the cluster."""
        resource = ResourcePath.cluster_node(auth_ctx.tenant_id, node_id)
        return self._check(auth_ctx, resource, Action.CLUSTER_ADD_NODE, "add_node")

    def check_remove_node_permission(self, auth_ctx: AuthContext, node_id: int) -> PermissionResult:
        """Whether the caller may remove the given node from the cluster."""
        resource = ResourcePath.cluster_node(auth_ctx.tenant_id, node_id)
        return self._check(auth_ctx, resource, Action.CLUSTER_REMOVE_NODE, "remove_node")

    def check_view_metrics_permission(self, auth_ctx: AuthContext) -> PermissionResult:
        """Whether the caller may view cluster metrics."""
        resource = ResourcePath.cluster_metrics(auth_ctx.tenant_id)
        return self._check(auth_ctx, resource, Action.CLUSTER_VIEW_METRICS, "view_metrics")

    def check_change_config_permission(self, auth_ctx: AuthContext) -> PermissionResult:
        """Whether the caller may change the cluster configuration."""
        resource = ResourcePath.cluster_config(auth_ctx.tenant_id)
        return self._check(auth_ctx, resource, Action.CLUSTER_CHANGE_CONFIG, "change_config")

    def check_cluster_admin_permission(self, auth_ctx: AuthContext) -> PermissionResult:
        """Whether the caller has administrative rights over the cluster."""
        resource = ResourcePath.cluster(auth_ctx.tenant_id)
        return self._check(auth_ctx, resource, Action.CLUSTER_ADMIN, "cluster_admin")

    def initialize_cluster_permissions(self, tenant: str) -> None:
        """Install the default role permissions for cluster operations."""
        log.info("Initializing cluster permissions for tenant: %s", tenant)
        cluster_resource = ResourcePath.cluster(tenant)
        metrics_resource = ResourcePath.cluster_metrics(tenant)
        config_resource = ResourcePath.cluster_config(tenant)
        node_resource = ResourcePath.cluster_node(tenant, 0)

        grants = [
            (Role.CLUSTER_ADMIN, cluster_resource, Action.CLUSTER_ADMIN),
            (Role.CLUSTER_OPERATOR, node_resource, Action.CLUSTER_ADD_NODE),
            (Role.CLUSTER_OPERATOR, node_resource, Action.CLUSTER_REMOVE_NODE),
            (Role.CLUSTER_OPERATOR, config_resource, Action.CLUSTER_CHANGE_CONFIG),
            (Role.CLUSTER_VIEWER, metrics_resource, Action.CLUSTER_VIEW_METRICS),
            (Role.SUPER_ADMIN, cluster_resource, Action.CLUSTER_ADMIN),
            (Role.TENANT_ADMIN, cluster_resource, Action.CLUSTER_ADMIN),
        ]
        for role, resource, action in grants:
            self.authz_service.add_permission_for_role(role.value, tenant, resource, action.value)
        log.info("Cluster permissions initialized for tenant: %s", tenant)

    def create_auth_context(self, user_id: str, tenant_id: Optional[str] = None) -> AuthContext:
        """Build a context for the user, falling back to the default tenant."""
        return AuthContext(user_id, tenant_id if tenant_id is not None else self.default_tenant)

    def verify_minimum_cluster_role(self, auth_ctx: AuthContext, required_role: str) -> bool:
        """Whether the user holds the required role or an administrative one."""
        user_roles = self.authz_service.get_roles_for_user_in_tenant(
            auth_ctx.user_id, auth_ctx.tenant_id
        )
        accepted = {str(required_role), Role.CLUSTER_ADMIN.value,
                    Role.SUPER_ADMIN.value, Role.TENANT_ADMIN.value}
        has_role = any(role in accepted for role in user_roles)
        log.debug("Role verification: user=%s tenant=%s required=%s has_role=%s roles=%s",
                  auth_ctx.user_id, auth_ctx.tenant_id, required_role, has_role, user_roles)
        return has_role


@dataclass
class AuthorizedRaftOperation:
    """A cluster operation paired with the outcome of its permission check."""

    auth_ctx: AuthContext
    permission_result: PermissionResult

    def is_authorized(self) -> bool:
        return self.permission_result.allowed

    def authorization_error(self) -> Optional[AuthError]:
        """The error describing a denial, or None when allowed."""
        if self.permission_result.allowed:
            return None
        result = self.permission_result
        return AuthError(
            f"Access denied: user '{result.user_id}' cannot perform '{result.action}' "
            f"on resource '{result.resource}' in tenant '{result.tenant_id}'"
        )

    def ensure_authorized(self) -> None:
        """Raise :class:`AuthError` unless the operation is allowed."""
        error = self.authorization_error()
        if error is not None:
            raise error