"""Tests for FollowService and UserProfileService against an in-memory collection fake."""

import asyncio

import pytest
from unittest.mock import AsyncMock
from bson import ObjectId

from common.utils.exceptions import (
    BadRequestException,
    ConflictException,
    DatabaseException,
    NotFoundException,
)
from train.models.enums import ProfileAccess
from train.services.follows.follow_service import FollowService
from train.services.follows.profile_service import UserProfileService


@pytest.fixture
def profiles(fake_db):
    return UserProfileService(fake_db)


@pytest.fixture
def service(fake_db, profiles):
    return FollowService(fake_db, profile_service=profiles)


@pytest.fixture
def alice():
    return ObjectId()


@pytest.fixture
def bob():
    return ObjectId()


def _profile(user_id, access="public"):
    return {"_id": ObjectId(), "userId": user_id, "accountType": access}


@pytest.fixture
def public_pair(fake_db, alice, bob):
    fake_db["userprofiles"].docs.extend([_profile(alice), _profile(bob)])
    return alice, bob


@pytest.fixture
def private_pair(fake_db, alice, bob):
    fake_db["userprofiles"].docs.extend([_profile(alice), _profile(bob, "private")])
    return alice, bob


def _graph(fake_db, user_id):
    doc = next((d for d in fake_db["follows"].docs if d["userId"] == user_id), None)
    return doc or {"following": [], "followers": [], "requests": []}


def _assert_symmetric(fake_db):
    for doc in fake_db["follows"].docs:
        for follower in doc.get("followers", []):
            assert doc["userId"] in _graph(fake_db, follower)["following"]
        for followee in doc.get("following", []):
            assert doc["userId"] in _graph(fake_db, followee)["followers"]
        assert not set(doc.get("followers", [])) & set(doc.get("requests", []))


# ─────────────────────────────────────────────────────────────────
# follow / request
# ─────────────────────────────────────────────────────────────────


class TestFollowUser:
    @pytest.mark.asyncio
    async def test_follow_public_account(self, service, fake_db, public_pair):
        alice, bob = public_pair

        await service.follow_user(str(alice), str(bob))

        assert _graph(fake_db, bob)["followers"] == [alice]
        assert _graph(fake_db, alice)["following"] == [bob]
        _assert_symmetric(fake_db)

    @pytest.mark.asyncio
    async def test_follow_private_account_is_rejected(self, service, fake_db, private_pair):
        alice, bob = private_pair

        with pytest.raises(BadRequestException) as exc:
            await service.follow_user(str(alice), str(bob))

        assert exc.value.code == "PRIVATE_ACCOUNT_FOLLOW_REQUEST"
        assert _graph(fake_db, bob)["followers"] == []

    @pytest.mark.asyncio
    async def test_follow_self_is_rejected_before_lookup(self, service, alice):
        with pytest.raises(BadRequestException) as exc:
            await service.follow_user(str(alice), str(alice))
        assert exc.value.code == "CANNOT_FOLLOW_SELF"

    @pytest.mark.asyncio
    async def test_follow_twice_conflicts(self, service, fake_db, public_pair):
        alice, bob = public_pair
        await service.follow_user(str(alice), str(bob))

        with pytest.raises(ConflictException) as exc:
            await service.follow_user(str(alice), str(bob))

        assert exc.value.code == "ALREADY_FOLLOWING"
        assert _graph(fake_db, bob)["followers"] == [alice]

    @pytest.mark.asyncio
    async def test_users_without_profiles_follow_each_other(self, service, profiles, fake_db, alice, bob):
        await service.follow_user(str(alice), str(bob))
        await service.follow_user(str(bob), str(alice))

        assert _graph(fake_db, bob)["followers"] == [alice]
        assert _graph(fake_db, alice)["followers"] == [bob]
        _assert_symmetric(fake_db)
        for uid in (alice, bob):
            assert (await profiles.find_profile(uid))["accountType"] == "public"

    @pytest.mark.asyncio
    async def test_stored_private_profile_is_kept(self, service, profiles, fake_db, alice, bob):
        await profiles.update_account_type(str(bob), ProfileAccess.PRIVATE)

        with pytest.raises(BadRequestException):
            await service.follow_user(str(alice), str(bob))

        await service.request_to_follow_user(str(alice), str(bob))
        assert _graph(fake_db, bob)["requests"] == [alice]

    @pytest.mark.asyncio
    async def test_conflict_writes_nothing(self, service, public_pair):
        alice, bob = public_pair
        await service.follow_user(str(alice), str(bob))
        service._graphs.ensure = AsyncMock()
        service._graphs.admit = AsyncMock()

        with pytest.raises(ConflictException):
            await service.follow_user(str(alice), str(bob))

        service._graphs.ensure.assert_not_awaited()
        service._graphs.admit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_first_follow_creates_graph_record(self, service, fake_db, public_pair):
        alice, bob = public_pair
        assert fake_db["follows"].docs == []

        await service.follow_user(str(alice), str(bob))

        assert _graph(fake_db, bob)["requests"] == []
        assert _graph(fake_db, bob)["followers"] == [alice]

    @pytest.mark.asyncio
    async def test_mirror_failure_keeps_edge_for_reconciliation(self, service, fake_db, public_pair):
        alice, bob = public_pair
        service._graphs.add_following = AsyncMock(side_effect=DatabaseException())

        await service.follow_user(str(alice), str(bob))

        assert _graph(fake_db, bob)["followers"] == [alice]
        assert _graph(fake_db, alice)["following"] == []


class TestRequestToFollow:
    @pytest.mark.asyncio
    async def test_request_private_account(self, service, fake_db, private_pair):
        alice, bob = private_pair

        await service.request_to_follow_user(str(alice), str(bob))

        assert _graph(fake_db, bob)["requests"] == [alice]
        assert _graph(fake_db, bob)["followers"] == []
        assert _graph(fake_db, alice)["following"] == []

    @pytest.mark.asyncio
    async def test_request_public_account_is_rejected(self, service, public_pair):
        alice, bob = public_pair

        with pytest.raises(BadRequestException) as exc:
            await service.request_to_follow_user(str(alice), str(bob))
        assert exc.value.code == "ACCOUNT_NOT_PRIVATE"

    @pytest.mark.asyncio
    async def test_duplicate_request_conflicts(self, service, fake_db, private_pair):
        alice, bob = private_pair
        await service.request_to_follow_user(str(alice), str(bob))

        with pytest.raises(ConflictException) as exc:
            await service.request_to_follow_user(str(alice), str(bob))

        assert exc.value.code == "FOLLOW_REQUEST_ALREADY_SENT"
        assert _graph(fake_db, bob)["requests"] == [alice]

    @pytest.mark.asyncio
    async def test_request_while_following_conflicts(self, service, profiles, private_pair):
        alice, bob = private_pair
        await service.request_to_follow_user(str(alice), str(bob))
        await service.accept_follow_request(str(bob), str(alice))

        with pytest.raises(ConflictException) as exc:
            await service.request_to_follow_user(str(alice), str(bob))
        assert exc.value.code == "ALREADY_FOLLOWING"


# ─────────────────────────────────────────────────────────────────
# accept / reject
# ─────────────────────────────────────────────────────────────────


class TestAcceptReject:
    @pytest.mark.asyncio
    async def test_accept_creates_edge_on_both_sides(self, service, fake_db, private_pair):
        alice, bob = private_pair
        await service.request_to_follow_user(str(alice), str(bob))

        await service.accept_follow_request(str(bob), str(alice))

        assert _graph(fake_db, bob)["followers"] == [alice]
        assert _graph(fake_db, bob)["requests"] == []
        assert _graph(fake_db, alice)["following"] == [bob]
        _assert_symmetric(fake_db)

    @pytest.mark.asyncio
    async def test_accept_without_request(self, service, private_pair):
        alice, bob = private_pair

        with pytest.raises(NotFoundException) as exc:
            await service.accept_follow_request(str(bob), str(alice))
        assert exc.value.code == "FOLLOW_REQUEST_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_reject_leaves_following_untouched(self, service, fake_db, private_pair):
        alice, bob = private_pair
        await service.request_to_follow_user(str(alice), str(bob))

        await service.reject_follow_request(str(bob), str(alice))

        assert _graph(fake_db, bob)["requests"] == []
        assert _graph(fake_db, bob)["followers"] == []
        assert _graph(fake_db, alice)["following"] == []

    @pytest.mark.asyncio
    async def test_concurrent_accept_and_reject_apply_once(self, service, fake_db, private_pair):
        alice, bob = private_pair
        await service.request_to_follow_user(str(alice), str(bob))

        results = await asyncio.gather(
            service.accept_follow_request(str(bob), str(alice)),
            service.reject_follow_request(str(bob), str(alice)),
            return_exceptions=True,
        )

        assert sum(isinstance(r, Exception) for r in results) == 1
        assert _graph(fake_db, bob)["requests"] == []
        _assert_symmetric(fake_db)


# ─────────────────────────────────────────────────────────────────
# unfollow / remove follower
# ─────────────────────────────────────────────────────────────────


class TestUnfollow:
    @pytest.mark.asyncio
    async def test_unfollow_removes_both_sides(self, service, fake_db, public_pair):
        alice, bob = public_pair
        await service.follow_user(str(alice), str(bob))

        await service.unfollow_user(str(alice), str(bob))

        assert _graph(fake_db, bob)["followers"] == []
        assert _graph(fake_db, alice)["following"] == []

    @pytest.mark.asyncio
    async def test_unfollow_without_edge(self, service, public_pair):
        alice, bob = public_pair

        with pytest.raises(BadRequestException) as exc:
            await service.unfollow_user(str(alice), str(bob))
        assert exc.value.code == "NOT_CURRENTLY_FOLLOWING"

    @pytest.mark.asyncio
    async def test_unfollow_after_profile_removed(self, service, fake_db, public_pair):
        alice, bob = public_pair
        await service.follow_user(str(alice), str(bob))
        fake_db["userprofiles"].docs.clear()

        await service.unfollow_user(str(alice), str(bob))

        assert _graph(fake_db, bob)["followers"] == []

    @pytest.mark.asyncio
    async def test_remove_follower(self, service, fake_db, public_pair):
        alice, bob = public_pair
        await service.follow_user(str(alice), str(bob))

        await service.remove_follower(str(bob), str(alice))

        assert _graph(fake_db, bob)["followers"] == []
        assert _graph(fake_db, alice)["following"] == []

    @pytest.mark.asyncio
    async def test_remove_non_follower(self, service, public_pair):
        alice, bob = public_pair

        with pytest.raises(BadRequestException) as exc:
            await service.remove_follower(str(bob), str(alice))
        assert exc.value.code == "FOLLOWER_NOT_CURRENTLY_FOLLOWING"


# ─────────────────────────────────────────────────────────────────
# reads and reconciliation
# ─────────────────────────────────────────────────────────────────


class TestFollowGraph:
    @pytest.mark.asyncio
    async def test_unknown_user_has_empty_graph(self, service, alice):
        graph = await service.get_follow_graph(str(alice))

        assert graph == {"userId": alice, "following": [], "followers": [], "requests": []}

    @pytest.mark.asyncio
    async def test_reconcile_following_repairs_mirror(self, service, fake_db, public_pair):
        alice, bob = public_pair
        await service.follow_user(str(alice), str(bob))
        stale = ObjectId()
        _graph(fake_db, alice)["following"] = [stale]

        outcome = await service.reconcile_following(alice)

        assert outcome == {"added": 1, "removed": 1}
        assert _graph(fake_db, alice)["following"] == [bob]

    @pytest.mark.asyncio
    async def test_reconcile_keeps_follow_that_lands_between_reads(self, service, fake_db, public_pair):
        alice, bob = public_pair
        find_followees = service._graphs.find_followees_of

        async def follow_after_read(user_id):
            followees = await find_followees(user_id)
            await service.follow_user(str(alice), str(bob))
            return followees

        service._graphs.find_followees_of = follow_after_read

        outcome = await service.reconcile_following(alice)

        assert outcome == {"added": 0, "removed": 0}
        assert _graph(fake_db, alice)["following"] == [bob]
        _assert_symmetric(fake_db)

    @pytest.mark.asyncio
    async def test_reconcile_all_following(self, service, fake_db, public_pair):
        alice, bob = public_pair
        await service.follow_user(str(alice), str(bob))
        _graph(fake_db, alice)["following"].clear()

        results = await service.reconcile_all_following()

        assert results["entriesAdded"] == 1
        assert results["entriesRemoved"] == 0
        assert results["usersChecked"] == 2
        assert _graph(fake_db, alice)["following"] == [bob]


class TestUserProfileService:
    @pytest.mark.asyncio
    async def test_missing_profile_defaults_to_public(self, profiles, alice):
        profile = await profiles.get_profile(str(alice))

        assert profile["accountType"] == "public"

    @pytest.mark.asyncio
    async def test_create_does_not_overwrite(self, profiles, alice):
        await profiles.create_profile(str(alice), ProfileAccess.PRIVATE)

        profile = await profiles.create_profile(str(alice))

        assert profile["accountType"] == "private"

    @pytest.mark.asyncio
    async def test_update_account_type_keeps_requests(self, service, profiles, fake_db, private_pair):
        alice, bob = private_pair
        await service.request_to_follow_user(str(alice), str(bob))

        profile = await profiles.update_account_type(str(bob), ProfileAccess.PUBLIC)

        assert profile["accountType"] == "public"
        assert _graph(fake_db, bob)["requests"] == [alice]
