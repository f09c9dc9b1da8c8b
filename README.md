# conflux

Building blocks for a multi-tenant distributed configuration center. The package uses only
the Python standard library and needs Python 3.10 or later.

## What is included

- `conflux.authz`: `AuthzService` provides role-based access control per tenant. It keeps
  role permissions and user-to-role assignments in a SQLite database. You can pass a file
  path or `":memory:"`. `key_match` matches a resource against a pattern. A `*` in the
  pattern matches any remainder.
- `conflux.auth`: `ResourcePath` builds canonical resource paths. `AuthContext` and
  `PermissionResult` describe a caller and the outcome of a check. `Action` and `Role` are
  enumerations of the common action and role names.
- `conflux.cluster_auth`: `RaftAuthzService` checks permissions for cluster operations:
  adding and removing nodes, viewing metrics, changing configuration and cluster
  administration. It can install a default set of cluster permissions for a tenant.
  `AuthorizedRaftOperation` turns a denied check into an `AuthError`.
- `conflux.auth_api`: `AuthApi` (also returned by `create_auth_routes`) dispatches requests
  for the permission and role management endpoints:
  - `POST /_auth/check`
  - `GET /tenants/{tenant}/roles`
  - `POST` and `DELETE` `/tenants/{tenant}/roles/{role}/permissions`
  - `GET` and `POST` `/tenants/{tenant}/users/{user_id}/roles`
  - `DELETE /tenants/{tenant}/users/{user_id}/roles/{role}`
  - `POST /_auth/reload`

  `AuthApi.handle(method, path, body, query)` returns an `HTTPStatus` and a JSON-ready
  dictionary.
- `conflux.http_middleware`:
  - `extract_client_ip` reads the client address from the usual proxy headers.
  - `is_public_endpoint` tells whether a path may be accessed without authentication.
  - `generate_request_id` returns a unique request id.
  - `check_authentication` returns the bearer credential. It raises `Unauthorized` for a
    protected path that carries no bearer credential.
- `conflux.schemas`: the reply envelope `ApiResponse`, the paging types `PaginationParams`
  and `PaginatedResponse`, and the `HealthResponse`, `NodeInfo`, `AddNodeRequest` and
  `RemoveNodeRequest` shapes.
- `conflux.protocol`: `ProtocolPlugin` is an abstract base for protocol front ends.
  `ProtocolManager` registers plugins, keeps a `ProtocolConfig` for each one and starts
  each plugin in its own asyncio task.
- `conflux.benchmarks`: `run_performance_test`, `run_latency_test` and `run_memory_test`
  measure an operation that you supply. The operation may be a plain function or a
  coroutine function. Results are reported as `BenchmarkResults` and `MemoryStats`.
  Memory is sampled with `ps`; the reading is 0.0 where `ps` is not available.
- `conflux.errors`: errors are raised as subclasses of `ConfluxError`. These include
  `AuthError`, `AuthzError`, `ValidationError`, `RaftError`, `StorageError`,
  `NetworkError` and `InternalError`.

## Installation

```
pip install .
```

## Resource paths

```python
from conflux.auth import ResourcePath

ResourcePath.config("tenant1", "app1", "prod", "db.toml")
# '/tenants/tenant1/apps/app1/envs/prod/configs/db.toml'

ResourcePath.app("tenant1", "app1")       # '/tenants/tenant1/apps/app1'
ResourcePath.admin("tenant1", "users")    # '/tenants/tenant1/admin/users'
ResourcePath.cluster_node("tenant1", 3)   # '/tenants/tenant1/cluster/nodes/3'
```

## Authorization model

A permission is a rule `(subject, tenant, resource_pattern, action)`, and users are linked
to roles within a tenant. A check is allowed when both of these hold:

1. the user holds a matching rule, either directly or through a role it reaches in that
   tenant (role links are followed transitively);
2. the rule is in the same tenant, its pattern matches the resource, and its action equals
   the requested action.

```python
from conflux.authz import AuthzService

with AuthzService(":memory:") as authz:
    authz.add_permission_for_role("developer", "t1", "/tenants/t1/apps/*", "read")
    authz.assign_role_to_user("bob", "developer", "t1")
    authz.check("bob", "t1", "/tenants/t1/apps/app1", "read")   # True
    authz.check("bob", "t1", "/tenants/t1/apps/app1", "write")  # False
```

The management methods return `False` when there is nothing to change, for example a rule
that already exists or an assignment that is not there.
`get_roles_for_user_in_tenant` lists the roles assigned directly to the user.

## Demo

`conflux-demo` runs a short walkthrough in a demo tenant. It sets up roles, assigns users,
runs a series of permission checks and prints the results:

```
conflux-demo
conflux-demo --database policies.db --verbose
```

By default, `--database` keeps the policies in memory.

## What it does not do

This package does not contain:

- a consensus node or cluster membership;
- configuration storage or versioning;
- a network server.

`AuthApi` dispatches requests that you hand to it, but it does not listen on a socket.
`ProtocolPlugin` has no concrete implementation here, and the cluster checks only decide
whether an operation is permitted.

## Running the tests

```
pip install ".[test]"
pytest
```