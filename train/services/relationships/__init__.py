"""Relationship storage and authorization shared by groups and follows."""

from train.services.relationships.store import (
    Relation,
    RelationshipSchema,
    RelationshipStore,
    GroupStore,
    FollowGraphStore,
    to_object_id,
)

__all__ = [
    "Relation",
    "RelationshipSchema",
    "RelationshipStore",
    "GroupStore",
    "FollowGraphStore",
    "to_object_id",
]
