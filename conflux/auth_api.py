"""HTTP-style request handling for permission and role management."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields
from http import HTTPStatus
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple
from urllib.parse import parse_qsl, unquote

from conflux.authz import AuthzService
from conflux.errors import ConfluxError

log = logging.getLogger(__name__)

Response = Tuple[HTTPStatus, Optional[Dict[str, Any]]]


class _Reject(Exception):
    """Short-circuits a request with a bare status code."""

    def __init__(self, status: HTTPStatus) -> None:
        super().__init__(status.phrase)
        self.status = status


def _decode(cls, data: Any):
    """Build a request dataclass of string fields from decoded JSON."""
    if not isinstance(data, Mapping):
        raise _Reject(HTTPStatus.UNPROCESSABLE_ENTITY)
    values = {}
    for field in fields(cls):
        value = data.get(field.name)
        if not isinstance(value, str):
            raise _Reject(HTTPStatus.UNPROCESSABLE_ENTITY)
        values[field.name] = value
    return cls(**values)


@dataclass
class CheckPermissionRequest:
    """Body of a permission check."""

    user_id: str
    tenant: str
    resource: str
    action: str


@dataclass
class CheckPermissionResponse:
    """Result of a permission check, echoing the request."""

    allowed: bool
    user_id: str
    tenant: str
    resource: str
    action: str


@dataclass
class AddPermissionRequest:
    """Body of a request that grants a permission to a role."""

    resource: str
    action: str


@dataclass
class AssignRoleRequest:
    """Body of a request that assigns a role to a user."""

    role: str


@dataclass
class RolesResponse:
    """A list of role names."""

    roles: List[str]


@dataclass
class OperationResponse:
    """Outcome of a management operation."""

    success: bool
    message: str


_Handler = Callable[[Dict[str, str], Any, Mapping[str, str]], Any]


class AuthApi:
    """Routes authorization management requests to an :class:`AuthzService`."""

    def __init__(self, authz_service: AuthzService) -> None:
        self.authz_service = authz_service
        self._routes: List[Tuple[str, List[str], _Handler]] = [
            ("POST", ["_auth", "check"], self._check_permission),
            ("GET", ["tenants", "{tenant}", "roles"], self._list_tenant_roles),
            ("POST", ["tenants", "{tenant}", "roles", "{role}", "permissions"],
             self._add_role_permission),
            ("DELETE", ["tenants", "{tenant}", "roles", "{role}", "permissions"],
             self._remove_role_permission),
            ("GET", ["tenants", "{tenant}", "users", "{user_id}", "roles"], self._get_user_roles),
            ("POST", ["tenants", "{tenant}", "users", "{user_id}", "roles"], self._assign_user_role),
            ("DELETE", ["tenants", "{tenant}", "users", "{user_id}", "roles", "{role}"],
             self._revoke_user_role),
            ("POST", ["_auth", "reload"], self._reload_policies),
        ]

    @staticmethod
    def _match(pattern: List[str], segments: List[str]) -> Optional[Dict[str, str]]:
        if len(pattern) != len(segments):
            return None
        params: Dict[str, str] = {}
        for expected, actual in zip(pattern, segments):
            if expected.startswith("{") and expected.endswith("}"):
                if not actual:
                    return None
                params[expected[1:-1]] = unquote(actual)
            elif expected != actual:
                return None
        return params

    def handle(self, method: str, path: str, body: Any = None,
               query: Optional[Mapping[str, str]] = None) -> Response:
        """Serve one request and return its status and JSON-ready body."""
        path, _, query_string = path.partition("?")
        params_query: Dict[str, str] = dict(parse_qsl(query_string))
        if query:
            params_query.update(query)
        segments = path.strip("/").split("/")
        method = method.upper()

        path_matched = False
        for route_method, pattern, handler in self._routes:
            params = self._match(pattern, segments)
            if params is None:
                continue
            path_matched = True
            if route_method != method:
                continue
            try:
                result = handler(params, body, params_query)
            except _Reject as rejection:
                return rejection.status, None
            except ConfluxError as exc:
                log.error("Authorization request failed: %s", exc)
                return HTTPStatus.INTERNAL_SERVER_ERROR, None
            return HTTPStatus.OK, asdict(result)

        if path_matched:
            return HTTPStatus.METHOD_NOT_ALLOWED, None
        return HTTPStatus.NOT_FOUND, None

    @staticmethod
    def _json(body: Any) -> Any:
        if body is None:
            raise _Reject(HTTPStatus.BAD_REQUEST)
        if isinstance(body, (str, bytes, bytearray)):
            try:
                return json.loads(body)
            except ValueError:
                raise _Reject(HTTPStatus.BAD_REQUEST) from None
        return body

    def _check_permission(self, params, body, query) -> CheckPermissionResponse:
        request = _decode(CheckPermissionRequest, self._json(body))
        log.debug("Checking permission: %s", request)
        allowed = self.authz_service.check(
            request.user_id, request.tenant, request.resource, request.action
        )
        return CheckPermissionResponse(
            allowed=allowed,
            user_id=request.user_id,
            tenant=request.tenant,
            resource=request.resource,
            action=request.action,
        )

    def _list_tenant_roles(self, params, body, query) -> RolesResponse:
        log.debug("Listing roles for tenant: %s", params["tenant"])
        return RolesResponse(roles=["admin", "developer", "viewer"])

    def _add_role_permission(self, params, body, query) -> OperationResponse:
        request = _decode(AddPermissionRequest, self._json(body))
        tenant, role = params["tenant"], params["role"]
        log.info("Adding permission to role: tenant=%s role=%s resource=%s action=%s",
                 tenant, role, request.resource, request.action)
        success = self.authz_service.add_permission_for_role(
            role, tenant, request.resource, request.action
        )
        message = "Permission added successfully" if success else "Permission already exists"
        return OperationResponse(success, message)

    def _remove_role_permission(self, params, body, query) -> OperationResponse:
        resource = query.get("resource")
        action = query.get("action")
        if resource is None or action is None:
            raise _Reject(HTTPStatus.BAD_REQUEST)
        tenant, role = params["tenant"], params["role"]
        log.info("Removing permission from role: tenant=%s role=%s resource=%s action=%s",
                 tenant, role, resource, action)
        success = self.authz_service.remove_permission_for_role(role, tenant, resource, action)
        message = "Permission removed successfully" if success else "Permission not found"
        return OperationResponse(success, message)

    def _get_user_roles(self, params, body, query) -> RolesResponse:
        roles = self.authz_service.get_roles_for_user_in_tenant(params["user_id"], params["tenant"])
        return RolesResponse(roles=roles)

    def _assign_user_role(self, params, body, query) -> OperationResponse:
        request = _decode(AssignRoleRequest, self._json(body))
        tenant, user_id = params["tenant"], params["user_id"]
        log.info("Assigning role to user: tenant=%s user_id=%s role=%s", tenant, user_id, request.role)
        success = self.authz_service.assign_role_to_user(user_id, request.role, tenant)
        message = "Role assigned successfully" if success else "Role already assigned"
        return OperationResponse(success, message)

    def _revoke_user_role(self, params, body, query) -> OperationResponse:
        tenant, user_id, role = params["tenant"], params["user_id"], params["role"]
        log.info("Revoking role from user: tenant=%s user_id=%s role=%s", tenant, user_id, role)
        success = self.authz_service.revoke_role_from_user(user_id, role, tenant)
        message = "Role revoked successfully" if success else "Role assignment not found"
        return OperationResponse(success, message)

    def _reload_policies(self, params, body, query) -> OperationResponse:
        log.info("Reloading policies")
        self.authz_service.reload_policy()
        return OperationResponse(True, "Policies reloaded successfully")


def create_auth_routes(authz_service: AuthzService) -> AuthApi:
    """Return the request router for authorization management."""
    return AuthApi(authz_service)