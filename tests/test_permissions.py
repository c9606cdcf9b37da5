"""
Tests for permission resolution, the authorization gate and the
system-record guard.
"""

import pytest

from rbacd.auth.permissions import (
    ALL_PERMISSIONS,
    NO_PERMISSIONS,
    EffectivePermissions,
    PermissionResolver,
    authorize,
    protect_system_record,
    require_permissions,
)
from rbacd.auth.principal import Principal
from rbacd.errors import (
    AuthenticationError,
    ImmutableRecordError,
    NotFoundError,
    PermissionDeniedError,
)
from rbacd.storage.database import ROLE, USER
from conftest import make_role, make_user


@pytest.fixture
def resolver(db):
    return PermissionResolver(db)


def principal(user):
    return Principal(user_id=user.id, claims={"user_id": user.id})


class TestEffectivePermissions:
    """Test the any-of decision."""

    def test_all_permissions_allows_anything(self):
        assert ALL_PERMISSIONS.allows_any(["anything:at-all"])

    def test_empty_denies_everything(self):
        assert NO_PERMISSIONS.is_empty
        assert not NO_PERMISSIONS.allows_any(["user:read"])

    def test_any_of_semantics(self):
        effective = EffectivePermissions(codes=frozenset({"doc:read"}))

        assert effective.allows_any(["doc:write", "doc:read"])
        assert not effective.allows_any(["doc:write"])
        assert not effective.allows_any([])


class TestPermissionResolver:
    """Test resolution from role codes to permission codes."""

    def test_unknown_user(self, resolver):
        with pytest.raises(NotFoundError):
            resolver.resolve("missing-user-id")

    @pytest.mark.parametrize("role_codes", [None, []])
    def test_no_roles_resolves_to_empty(self, db, resolver, role_codes):
        user = make_user(db, "nobody", role_codes=role_codes)

        assert resolver.resolve(user.id) == NO_PERMISSIONS

    def test_super_admin_bypasses_role_table(self, db, resolver):
        user = make_user(db, "root", role_codes=["guest", "super_admin"])
        # Even with the super_admin role record gone
        db.delete(ROLE, db.find_one(ROLE, "code", "super_admin").id)

        assert resolver.resolve(user.id) is ALL_PERMISSIONS

    def test_union_of_roles(self, db, resolver):
        make_role(db, "writer", ["doc:write", "doc:read"])
        make_role(db, "reviewer", ["doc:read", "doc:approve"])
        user = make_user(db, "ann", role_codes=["writer", "reviewer"])

        effective = resolver.resolve(user.id)

        assert effective.codes == {"doc:write", "doc:read", "doc:approve"}
        assert not effective.all_permissions
        assert effective.unresolved_roles == frozenset()

    def test_missing_roles_are_skipped(self, db, resolver):
        make_role(db, "writer", ["doc:write"])
        user = make_user(db, "ben", role_codes=["writer", "deleted_role"])

        effective = resolver.resolve(user.id)

        assert effective.codes == {"doc:write"}
        assert effective.unresolved_roles == {"deleted_role"}

    def test_only_missing_roles(self, db, resolver):
        user = make_user(db, "cat", role_codes=["ghost"])

        effective = resolver.resolve(user.id)

        assert effective.is_empty

    def test_idempotent(self, db, resolver):
        make_role(db, "writer", ["doc:write"])
        user = make_user(db, "dan", role_codes=["writer", "user"])

        assert resolver.resolve(user.id) == resolver.resolve(user.id)

    def test_role_changes_are_visible_immediately(self, db, resolver):
        role = make_role(db, "writer", ["doc:write"])
        user = make_user(db, "eve", role_codes=["writer"])
        assert "doc:publish" not in resolver.resolve(user.id).codes

        db.replace_data(ROLE, role.id, {**role.data, "permission_codes": ["doc:publish"]})

        assert resolver.resolve(user.id).codes == {"doc:publish"}


class TestAuthorize:
    """Test the gate algorithm."""

    def test_anonymous(self, resolver):
        with pytest.raises(AuthenticationError):
            authorize(resolver, None, ["user:read"])

    def test_deleted_user(self, db, resolver):
        user = make_user(db, "gone", role_codes=["user"])
        db.delete(USER, user.id)

        with pytest.raises(NotFoundError) as exc:
            authorize(resolver, principal(user), ["user:read"])

        assert exc.value.code == 404

    def test_no_roles_is_forbidden(self, db, resolver):
        user = make_user(db, "empty", role_codes=[])

        with pytest.raises(PermissionDeniedError) as exc:
            authorize(resolver, principal(user), ["user:read"])

        assert exc.value.code == 403
        assert exc.value.required == ["user:read"]

    def test_allowed_with_any_code(self, db, resolver):
        user = make_user(db, "reader", role_codes=["user"])

        effective = authorize(resolver, principal(user), ["user:delete", "user:read"])

        assert "user:read" in effective.codes

    def test_denied_without_intersection(self, db, resolver):
        user = make_user(db, "reader", role_codes=["user"])

        with pytest.raises(PermissionDeniedError):
            authorize(resolver, principal(user), ["role:create"])

    def test_super_admin_allowed(self, db, resolver, admin):
        assert authorize(resolver, principal(admin), ["whatever:code"]) is ALL_PERMISSIONS


def test_require_permissions_needs_codes():
    with pytest.raises(ValueError):
        require_permissions()


def test_require_permissions_records_codes():
    @require_permissions("a:b", "c:d")
    async def handler(request):
        return None

    assert handler.required_permissions == ("a:b", "c:d")


class TestProtectSystemRecord:
    """Test the system-record guard."""

    def test_system_role_refused(self, db):
        role = db.find_one(ROLE, "code", "admin")

        with pytest.raises(ImmutableRecordError) as exc:
            protect_system_record(role, "role", "deleted")

        assert exc.value.code == 403
        assert exc.value.msg == "system role cannot be deleted"

    def test_custom_role_allowed(self, db):
        role = make_role(db, "editor")

        protect_system_record(role, "role", "modified")
