"""AuthContext, password hashing and token store tests."""
from datetime import datetime, timedelta

import pytest

from auth.context import AuthContext
from auth.passwords import hash_password, verify_password
from auth.tokens import TokenStore
from errors import PermissionDeniedError


class TestAuthContext:

    def test_from_profile(self):
        ctx = AuthContext.from_profile({"id": 3, "role": None, "email": "a@b.c"})
        assert ctx.role == "user"
        assert ctx.email == "a@b.c"

    def test_user_scope(self):
        ctx = AuthContext(profile_id=3)
        assert not ctx.is_admin
        assert ctx.scope_user_id == 3
        assert ctx.can_modify(3)
        assert not ctx.can_modify(4)
        assert not ctx.can_modify(None)
        with pytest.raises(PermissionDeniedError):
            ctx.require_admin()
        with pytest.raises(PermissionDeniedError):
            ctx.require_owner(4)

    def test_admin_scope(self):
        ctx = AuthContext(profile_id=1, role="admin")
        assert ctx.is_admin
        assert ctx.scope_user_id is None
        assert ctx.can_modify(99)
        ctx.require_admin()
        ctx.require_owner(None)


class TestPasswords:

    def test_round_trip(self):
        encoded = hash_password("Workshop#2024", iterations=1000)
        assert encoded.startswith("pbkdf2_sha256$1000$")
        assert verify_password("Workshop#2024", encoded)
        assert not verify_password("workshop#2024", encoded)

    def test_salted(self):
        assert hash_password("same", iterations=1000) != hash_password("same", iterations=1000)

    @pytest.mark.parametrize("encoded", ["", "plain", "md5$1$salt$abc"])
    def test_bad_encodings(self, encoded):
        assert not verify_password("whatever", encoded)


class TestTokenStore:

    def test_issue_resolve_revoke(self):
        store = TokenStore(ttl_hours=1)
        token = store.issue(7)
        assert len(token) == 64
        assert store.resolve(token) == 7
        store.revoke(token)
        assert store.resolve(token) is None

    def test_unknown(self):
        assert TokenStore().resolve("nope") is None

    def test_expired_token_dropped(self):
        store = TokenStore(ttl_hours=1)
        token = store.issue(7)
        store._tokens[token] = (7, datetime.now() - timedelta(seconds=1))
        assert store.resolve(token) is None
        assert token not in store._tokens

    def test_issue_purges_expired(self):
        store = TokenStore(ttl_hours=1)
        stale = store.issue(7)
        live = store.issue(8)
        store._tokens[stale] = (7, datetime.now() - timedelta(seconds=1))
        fresh = store.issue(9)
        assert set(store._tokens) == {live, fresh}
