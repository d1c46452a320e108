from .config import CoreConfig, LogLevel, StoreBackend, load_config_from_env
from .exceptions import (
    AlreadyExistsError,
    ConfigurationError,
    ConflictError,
    InvalidGrantError,
    MembersRemainError,
    NotFoundError,
    PermissionDeniedError,
    SchoolCoreError,
    StorageError,
    StoreUnavailableError,
)
from .factory import SchoolCore, create_core, create_engine
from .logging import (
    AccessLoggerAdapter,
    SchoolCoreFormatter,
    get_access_logger,
    redact_secrets,
    safe_log_value,
    safe_preview,
    setup_logging,
)
from .permissions import Action, AuthorizationEngine, Category, Layers, LayerTree, Variant
from .store import Block, EntityStore, MemoryEntityStore, RedisEntityStore, create_store

__all__ = [
    'CoreConfig',
    'LogLevel',
    'StoreBackend',
    'load_config_from_env',
    'SchoolCoreError',
    'ConfigurationError',
    'PermissionDeniedError',
    'NotFoundError',
    'ConflictError',
    'AlreadyExistsError',
    'MembersRemainError',
    'InvalidGrantError',
    'StorageError',
    'StoreUnavailableError',
    'SchoolCore',
    'create_core',
    'create_engine',
    'safe_preview',
    'redact_secrets',
    'safe_log_value',
    'SchoolCoreFormatter',
    'AccessLoggerAdapter',
    'setup_logging',
    'get_access_logger',
    'Action',
    'AuthorizationEngine',
    'Category',
    'Layers',
    'LayerTree',
    'Variant',
    'Block',
    'EntityStore',
    'MemoryEntityStore',
    'RedisEntityStore',
    'create_store',
]
