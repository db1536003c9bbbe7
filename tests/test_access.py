"""Unit tests for the relationship authorization checks."""

import pytest
from bson import ObjectId

from common.utils.exceptions import BadRequestException, ForbiddenException
from train.services.relationships.access import (
    is_owner,
    is_private,
    is_public,
    require_account_private,
    require_account_public,
    require_distinct_users,
    require_group_private,
    require_group_public,
    require_owner,
)


def _group(owner_id, access="public"):
    return {"_id": ObjectId(), "owners": [owner_id], "members": [], "requests": [], "accountType": access}


class TestPredicates:
    def test_missing_account_type_counts_as_public(self):
        assert is_public({})
        assert not is_private({})

    def test_private_record(self):
        assert is_private({"accountType": "private"})
        assert not is_public({"accountType": "private"})

    def test_is_owner(self, owner_id, user_id):
        group = _group(owner_id)
        assert is_owner(group, owner_id)
        assert not is_owner(group, user_id)


class TestGroupChecks:
    def test_public_group_passes_join_check(self, owner_id):
        require_group_public(_group(owner_id))

    def test_private_group_rejects_direct_join(self, owner_id):
        with pytest.raises(BadRequestException) as exc:
            require_group_public(_group(owner_id, "private"))
        assert exc.value.code == "GROUP_NOT_PUBLIC"
        assert exc.value.status_code == 400

    def test_public_group_rejects_join_request(self, owner_id):
        with pytest.raises(BadRequestException) as exc:
            require_group_private(_group(owner_id))
        assert exc.value.code == "GROUP_NOT_PRIVATE"

    def test_non_owner_is_forbidden(self, owner_id, user_id):
        with pytest.raises(ForbiddenException) as exc:
            require_owner(_group(owner_id), user_id)
        assert exc.value.code == "NOT_GROUP_OWNER"
        assert exc.value.message == "Only group owners can perform this action"

    def test_owner_passes(self, owner_id):
        require_owner(_group(owner_id), owner_id)


class TestAccountChecks:
    def test_private_account_rejects_direct_follow(self):
        with pytest.raises(BadRequestException) as exc:
            require_account_public({"accountType": "private"})
        assert exc.value.code == "PRIVATE_ACCOUNT_FOLLOW_REQUEST"

    def test_public_account_rejects_follow_request(self):
        with pytest.raises(BadRequestException) as exc:
            require_account_private({"accountType": "public"})
        assert exc.value.code == "ACCOUNT_NOT_PRIVATE"

    def test_same_user_is_rejected(self, user_id):
        with pytest.raises(BadRequestException) as exc:
            require_distinct_users(user_id, user_id)
        assert exc.value.code == "CANNOT_FOLLOW_SELF"

    def test_distinct_users_pass(self, user_id, other_user_id):
        require_distinct_users(user_id, other_user_id)
