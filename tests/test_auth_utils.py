"""Tests for login and role handling."""

import pytest

from models import User, UserRole
from utils import auth_utils


@pytest.fixture
def staff_user(db):
    return auth_utils.create_user(db, "Clerk@Example.com", "s3cret")


class TestRoleFromMetadata:
    @pytest.mark.parametrize("metadata, expected", [
        ({"role": "admin"}, UserRole.ADMIN),
        ({"role": "staff"}, UserRole.STAFF),
        ({"role": "owner"}, UserRole.STAFF),
        ({}, UserRole.STAFF),
        (None, UserRole.STAFF),
    ])
    def test_role(self, metadata, expected):
        assert auth_utils.role_from_metadata(metadata) == expected


class TestAuthenticate:
    def test_good_password(self, db, staff_user):
        user = auth_utils.authenticate(db, "clerk@example.com", "s3cret")
        assert user.email == "clerk@example.com"
        assert user.role == UserRole.STAFF
        assert not user.is_admin

    def test_email_is_case_insensitive(self, db, staff_user):
        assert auth_utils.authenticate(db, "  CLERK@example.com ", "s3cret") is not None

    def test_wrong_password(self, db, staff_user):
        assert auth_utils.authenticate(db, "clerk@example.com", "nope") is None

    def test_unknown_user(self, db):
        assert auth_utils.authenticate(db, "ghost@example.com", "s3cret") is None

    def test_blank_credentials(self, db, staff_user):
        assert auth_utils.authenticate(db, "", "") is None

    def test_password_is_salted(self, db, staff_user):
        other = auth_utils.create_user(db, "other@example.com", "s3cret")
        assert other.hashed_password != staff_user.hashed_password

    def test_corrupt_salt_fails_closed(self):
        user = User(email="x@example.com", hashed_password="00", salt="not-hex")
        assert not user.verify_password("anything")


class TestSetUserRole:
    def test_promote_to_admin(self, db, staff_user):
        auth_utils.set_user_role(db, "clerk@example.com", UserRole.ADMIN)
        assert auth_utils.authenticate(db, "clerk@example.com", "s3cret").is_admin

    def test_other_metadata_kept(self, db):
        user = auth_utils.create_user(db, "a@example.com", "pw")
        user.user_metadata = {"role": "staff", "name": "Asha"}
        db.commit()
        updated = auth_utils.set_user_role(db, "a@example.com", UserRole.ADMIN)
        assert updated.user_metadata == {"role": "admin", "name": "Asha"}

    def test_unknown_user_returns_none(self, db):
        assert auth_utils.set_user_role(db, "ghost@example.com", UserRole.ADMIN) is None

    def test_invalid_role(self, db, staff_user):
        with pytest.raises(ValueError):
            auth_utils.set_user_role(db, "clerk@example.com", "owner")
