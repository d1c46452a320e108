"""Layer, category, variant, role and relation constants.

Provides:
- ``Layers`` — static layer ids plus builders for concrete instance ids.
- ``Category`` — viewer classification used as the key into a rule set.
- ``Variant`` — visibility regime selecting a rule set on a layer.
- ``Roles`` — user roles stored on user blocks.
- ``Relations`` — relation names used between blocks.
"""

from __future__ import annotations


class Layers:
    """Static layer ids of the protected-resource tree.

    Concrete instances hang below their static layer::

        Layers.school("7")     → "board.school.7"
        Layers.classroom("42") → "board.school.class.42"
    """

    BOARD = "board"
    SCHOOL = "board.school"
    CLASSROOM = "board.school.class"
    STUDENT = "board.school.class.student"
    USER = "board.user"

    @staticmethod
    def instance(layer: str, entity_id: str) -> str:
        """Build the id of a concrete instance below a static layer."""
        return f"{layer}.{entity_id}"

    @staticmethod
    def school(school_id: str) -> str:
        return f"{Layers.SCHOOL}.{school_id}"

    @staticmethod
    def classroom(classroom_id: str) -> str:
        return f"{Layers.CLASSROOM}.{classroom_id}"

    @staticmethod
    def student(student_id: str) -> str:
        return f"{Layers.STUDENT}.{student_id}"

    @staticmethod
    def user(user_id: str) -> str:
        return f"{Layers.USER}.{user_id}"


class Category:
    """Viewer classification.

    - ``ANYONE`` — unauthenticated or any role
    - ``OWNER`` — creator of the specific instance
    - ``ADMIN`` — resource-scoped administrator (e.g. admin of that school)
    - ``SUPER_ADMIN`` — system-wide administrator
    """

    ANYONE = "anyone"
    OWNER = "owner"
    ADMIN = "admin"
    SUPER_ADMIN = "superAdmin"

    ALL = frozenset({"anyone", "owner", "admin", "superAdmin"})

    # Spellings used by older layer configuration files.
    ALIASES = {
        "anyoneCan": "anyone",
        "ownerCan": "owner",
        "adminCan": "admin",
        "superAdminCan": "superAdmin",
    }


class Variant:
    """Rule-set variant on a layer. ``DEFAULT`` when the caller has no opinion."""

    DEFAULT = "default"
    PUBLIC = "public"
    PRIVATE = "private"
    STORE = "store"

    ALL = frozenset({"default", "public", "private", "store"})


class Roles:
    """Roles stored on user blocks."""

    USER = "user"
    SCHOOL_ADMIN = "schoolAdmin"
    SUPER_ADMIN = "superadmin"

    ALL = frozenset({"user", "schoolAdmin", "superadmin"})


class Relations:
    """Relation names between blocks."""

    ADMINS = "_admins"  # school → user
    CLASSROOMS = "_classrooms"  # school → classroom
    STUDENTS = "_students"  # school/classroom → student
    MEMBERS = "_members"  # generic membership


__all__ = [
    "Category",
    "Layers",
    "Relations",
    "Roles",
    "Variant",
]
