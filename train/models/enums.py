"""Enumerations shared by documents, schemas and services."""

from enum import Enum


class ProfileAccess(str, Enum):
    """Visibility of a group or a user account; selects the legal join path."""

    PUBLIC = "public"
    PRIVATE = "private"
