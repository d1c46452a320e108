"""Wiring of the engine, stores and managers from a ``CoreConfig``.

Usage::

    from schoolcore import create_core, load_config_from_env

    core = create_core(load_config_from_env())
    school = await core.schools.create_school("root", name="Northside")
    ...
    await core.close()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from .config import CoreConfig, load_config_from_env
from .managers import ClassroomManager, SchoolManager, StudentManager, UserManager
from .permissions.engine import AuthorizationEngine
from .permissions.grants import GrantStore
from .permissions.layers import LayerTree
from .permissions.profiles import DEFAULT_LAYERS
from .store import create_grant_store, create_store
from .store.base import EntityStore

logger = logging.getLogger(__name__)


def create_engine(
    config: Optional[CoreConfig] = None,
    grants: Optional[GrantStore] = None,
) -> AuthorizationEngine:
    """Build an engine over ``config.layers_path`` (or the built-in tree).

    Raises:
        ConfigurationError: the layers file is malformed.
    """
    config = config or load_config_from_env()
    if config.layers_path:
        tree = LayerTree.from_file(config.layers_path)
        logger.info("Loaded layer tree from %s", config.layers_path)
    else:
        tree = LayerTree.from_mapping(DEFAULT_LAYERS)
    return AuthorizationEngine(tree, grants or create_grant_store(config))


@dataclass
class SchoolCore:
    """Engine, entity store and the managers sharing them."""

    engine: AuthorizationEngine
    store: EntityStore
    users: UserManager = field(init=False)
    schools: SchoolManager = field(init=False)
    classrooms: ClassroomManager = field(init=False)
    students: StudentManager = field(init=False)

    def __post_init__(self) -> None:
        self.users = UserManager(self.engine, self.store)
        self.schools = SchoolManager(self.engine, self.store)
        self.classrooms = ClassroomManager(self.engine, self.store)
        self.students = StudentManager(self.engine, self.store)

    async def close(self) -> None:
        await self.store.close()
        await self.engine.grants.close()


def create_core(config: Optional[CoreConfig] = None) -> SchoolCore:
    config = config or load_config_from_env()
    return SchoolCore(engine=create_engine(config), store=create_store(config))


__all__ = ["SchoolCore", "create_core", "create_engine"]
