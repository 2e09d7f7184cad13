"""Role enum for RBAC."""

import enum


class Role(str, enum.Enum):
    """System role; each role signs its tokens with its own secrets."""

    USER = "user"
    ADMIN = "admin"
