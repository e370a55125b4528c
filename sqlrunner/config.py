"""Connection and execution settings."""

from dataclasses import dataclass, fields, replace
from typing import Any, Final, Optional, TypedDict

from typing_extensions import NotRequired

from sqlrunner.exceptions import ImproperConfigurationError

__all__ = ("ConnectionConfig", "DatabaseConfig", "ExecutionConfig")

DEFAULT_HOST: Final = "localhost"
DEFAULT_CACHE_TIMEOUT: Final = 24 * 3600
DEFAULT_CACHE_MAX_SIZE: Final = 1000
DEFAULT_TRACE_HISTORY: Final = 100
DEFAULT_FETCH_BATCH_SIZE: Final = 500

DATABASE_CONFIG_SLOTS: Final = ("charset", "database", "host", "password", "port", "user")


class ConnectionConfig(TypedDict, total=False):
    """Connection parameters accepted by :meth:`DatabaseConfig.from_dict`."""

    host: NotRequired[str]
    """Host where the database server is located."""

    user: NotRequired[str]
    """The username used to authenticate with the database."""

    password: NotRequired[str]
    """The password used to authenticate with the database."""

    database: NotRequired[str]
    """The database (catalog) to select after connecting."""

    charset: NotRequired[str]
    """The character set to use for the connection."""

    port: NotRequired[int]
    """The TCP/IP port of the database server."""


class DatabaseConfig:
    """Fallback connection settings.

    Every empty argument passed to ``connect``/``select`` is replaced by the
    matching value held here. A successful ``select`` stores the selected
    database name back into this object.
    """

    __slots__ = DATABASE_CONFIG_SLOTS

    def __init__(
        self,
        user: str = "",
        password: str = "",
        database: str = "",
        host: str = DEFAULT_HOST,
        charset: str = "",
        port: "Optional[int]" = None,
    ) -> None:
        self.user = user
        self.password = password
        self.database = database
        self.host = host or DEFAULT_HOST
        self.charset = charset
        self.port = port

    @classmethod
    def from_dict(cls, config: "ConnectionConfig | dict[str, Any]") -> "DatabaseConfig":
        """Build a config from a plain mapping.

        Raises:
            ImproperConfigurationError: If the mapping holds unknown keys.
        """
        unknown = set(config) - set(DATABASE_CONFIG_SLOTS)
        if unknown:
            msg = f"Unknown connection settings: {', '.join(sorted(unknown))}"
            raise ImproperConfigurationError(msg)
        return cls(**config)

    def replace(self, **kwargs: Any) -> "DatabaseConfig":
        """Return a copy with the given attributes replaced.

        Raises:
            TypeError: If a keyword is not a field of the config.
        """
        for key in kwargs:
            if key not in DATABASE_CONFIG_SLOTS:
                msg = f"{key!r} is not a field in {type(self).__name__}"
                raise TypeError(msg)
        current = {slot: getattr(self, slot) for slot in DATABASE_CONFIG_SLOTS}
        current.update(kwargs)
        return type(self)(**current)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, type(self)):
            return False
        return all(getattr(self, slot) == getattr(other, slot) for slot in DATABASE_CONFIG_SLOTS)

    def __hash__(self) -> int:
        return hash(tuple(getattr(self, slot) for slot in DATABASE_CONFIG_SLOTS))

    def __repr__(self) -> str:
        parts = []
        for slot in DATABASE_CONFIG_SLOTS:
            value = getattr(self, slot)
            parts.append(f"{slot}={'***' if slot == 'password' and value else value!r}")
        return f"{type(self).__name__}({', '.join(parts)})"


@dataclass(slots=True)
class ExecutionConfig:
    """Toggles for the query executor.

    Attributes:
        use_prepare: Route parameterized queries through prepared statements.
        cache_queries: Serve repeated row-returning queries from the cache.
        cache_inserts: Also store results of mutating statements.
        cache_timeout: Seconds a cached result stays valid (None disables expiry).
        cache_max_size: Entry limit for the in-memory cache.
        use_disk_cache: Persist cached results under ``cache_dir``.
        cache_dir: Directory for the disk cache.
        trace: Emit a debug snapshot after every query.
        debug_all: Alias kept for callers that toggle tracing per session.
        show_errors: Log every registered error at WARNING level.
        trace_history: Number of issued queries kept by the tracer.
        fetch_batch_size: Batch size for ``fetchmany`` on the direct path.
    """

    use_prepare: bool = True
    cache_queries: bool = False
    cache_inserts: bool = False
    cache_timeout: "Optional[int]" = DEFAULT_CACHE_TIMEOUT
    cache_max_size: int = DEFAULT_CACHE_MAX_SIZE
    use_disk_cache: bool = False
    cache_dir: "Optional[str]" = None
    trace: bool = False
    debug_all: bool = False
    show_errors: bool = True
    trace_history: int = DEFAULT_TRACE_HISTORY
    fetch_batch_size: int = DEFAULT_FETCH_BATCH_SIZE

    def __post_init__(self) -> None:
        if self.use_disk_cache and not self.cache_dir:
            msg = "use_disk_cache requires cache_dir to be set"
            raise ImproperConfigurationError(msg)
        if self.fetch_batch_size < 1:
            msg = "fetch_batch_size must be a positive integer"
            raise ImproperConfigurationError(msg)

    @property
    def tracing(self) -> bool:
        return self.trace or self.debug_all

    def copy(self, **changes: Any) -> "ExecutionConfig":
        """Return a copy, optionally with some fields changed."""
        valid = {f.name for f in fields(self)}
        for key in changes:
            if key not in valid:
                msg = f"{key!r} is not a field in {type(self).__name__}"
                raise TypeError(msg)
        return replace(self, **changes)
