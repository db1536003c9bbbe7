"""Shared test fixtures for Train backend tests."""

import pytest
from unittest.mock import AsyncMock, MagicMock
from bson import ObjectId

from tests.fakes import FakeDatabase


@pytest.fixture
def owner_id():
    return ObjectId()


@pytest.fixture
def user_id():
    return ObjectId()


@pytest.fixture
def other_user_id():
    return ObjectId()


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def mock_collection():
    collection = AsyncMock()
    # Motor's find() returns a cursor synchronously (not a coroutine),
    # so use MagicMock for it. Async methods like find_one, update_one,
    # distinct etc. stay as AsyncMock.
    collection.find = MagicMock()
    return collection


@pytest.fixture
def mock_db(mock_collection):
    db = MagicMock()
    db.__getitem__ = MagicMock(return_value=mock_collection)
    return db
