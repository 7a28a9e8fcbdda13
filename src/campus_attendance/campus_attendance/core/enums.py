from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Caller role supplied by the identity layer."""

    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


class SessionStatus(str, Enum):
    """Mark for a single session; every session is exactly one of these."""

    PRESENT = "present"
    ABSENT = "absent"


class RosterStatus(str, Enum):
    """Membership state of a roster entry. Entries are never removed."""

    ACTIVE = "active"
    WITHDRAWN = "withdrawn"
    TRANSFERRED = "transferred"


class SessionPatchMode(str, Enum):
    """How attendance replacements treat session numbers unknown to the record."""

    STRICT = "strict"
    LENIENT = "lenient"
