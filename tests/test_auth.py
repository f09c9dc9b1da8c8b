from conflux.auth import Action, AuthContext, PermissionResult, ResourcePath, Role


def test_auth_context():
    ctx = AuthContext("user1", "tenant1")
    assert ctx.user_id == "user1"
    assert ctx.tenant_id == "tenant1"
    assert ctx.roles is None


def test_auth_context_with_roles():
    ctx = AuthContext.with_roles("user1", "tenant1", ["admin"])
    assert ctx.roles == ["admin"]
    assert ctx.user_id == "user1"


def test_with_roles_copies_list():
    roles = ["admin"]
    ctx = AuthContext.with_roles("user1", "tenant1", roles)
    roles.append("viewer")
    assert ctx.roles == ["admin"]


def test_permission_result_allowed():
    allowed = PermissionResult.grant("user1", "tenant1", "/resource", "read")
    assert allowed.allowed is True
    assert allowed.user_id == "user1"
    assert allowed.tenant_id == "tenant1"
    assert allowed.resource == "/resource"
    assert allowed.action == "read"


def test_permission_result_denied():
    denied = PermissionResult.deny("user1", "tenant1", "/resource", "write")
    assert denied.allowed is False
    assert denied.action == "write"


def test_permission_result_accepts_action_enum():
    result = PermissionResult.grant("u", "t", "/r", Action.CLUSTER_ADMIN)
    assert result.action == "cluster:admin"


def test_resource_path_builder():
    assert (
        ResourcePath.config("tenant1", "app1", "prod", "db.toml")
        == "/tenants/tenant1/apps/app1/envs/prod/configs/db.toml"
    )
    assert ResourcePath.app("tenant1", "app1") == "/tenants/tenant1/apps/app1"
    assert ResourcePath.tenant("tenant1") == "/tenants/tenant1"
    assert ResourcePath.admin("tenant1", "users") == "/tenants/tenant1/admin/users"


def test_resource_path_env_and_cluster():
    assert ResourcePath.env("t", "a", "prod") == "/tenants/t/apps/a/envs/prod"
    assert ResourcePath.cluster("t") == "/tenants/t/cluster"
    assert ResourcePath.cluster_node("t", 7) == "/tenants/t/cluster/nodes/7"
    assert ResourcePath.cluster_metrics("t") == "/tenants/t/cluster/metrics"
    assert ResourcePath.cluster_config("t") == "/tenants/t/cluster/config"


def test_paths_nest_under_tenant():
    base = ResourcePath.tenant("acme")
    assert ResourcePath.app("acme", "x").startswith(base + "/")
    assert ResourcePath.config("acme", "x", "dev", "c").startswith(ResourcePath.env("acme", "x", "dev"))


def test_action_and_role_values_round_trip():
    assert Action("read") is Action.READ
    assert f"{Action.WRITE}" == "write"
    assert str(Action.DELETE) == "delete"
    assert Action.ADMIN == "admin"
    assert Role("tenant_admin") is Role.TENANT_ADMIN
    assert f"{Role.SUPER_ADMIN}" == "super_admin"
    assert str(Role.DEVELOPER) == "developer"
    assert Role.VIEWER == "viewer"