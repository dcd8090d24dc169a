"""
Configuration module for CQLStore.

This module provides a centralized configuration mechanism for CQLStore,
including logging level configuration, result conversion defaults and the
connection settings handed to the cluster driver.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Mapping

# Module-level logger for CQLStore
_logger: Optional[logging.Logger] = None
_log_level: int = logging.WARNING
_log_format: str = "simple"  # "simple" or "verbose"

# CQLStore's own logger name
LOGGER_NAME = "cqlstore"

# Log format templates
LOG_FORMATS = {
    "simple": "%(levelname).1s %(message)s",  # e.g., "D [CQL] Prepared: ..."
    "verbose": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
}


def _get_formatter() -> logging.Formatter:
    """Get formatter based on current format setting."""
    fmt = LOG_FORMATS.get(_log_format, LOG_FORMATS["simple"])
    if _log_format == "verbose":
        return logging.Formatter(fmt, datefmt="%Y-%m-%d %H:%M:%S")
    return logging.Formatter(fmt)


def get_logger() -> logging.Logger:
    """
    Get the CQLStore logger.

    Returns:
        logging.Logger: The configured logger instance.
    """
    global _logger

    if _logger is None:
        _logger = logging.getLogger(LOGGER_NAME)
        _logger.setLevel(_log_level)

        # Add handler if none exists
        if not _logger.handlers:
            handler = logging.StreamHandler()
            handler.setLevel(_log_level)
            handler.setFormatter(_get_formatter())
            _logger.addHandler(handler)

    return _logger


def set_log_level(level: int) -> None:
    """
    Set the logging level for CQLStore.

    Args:
        level: Logging level (e.g., logging.DEBUG, logging.INFO, logging.WARNING)

    Example:
        >>> import logging
        >>> from cqlstore import config
        >>> config.log_level = logging.DEBUG  # Show every statement sent
        >>> config.log_level = logging.WARNING  # Only warnings and errors
    """
    global _log_level

    _log_level = level

    if _logger is not None:
        _logger.setLevel(level)
        for handler in _logger.handlers:
            handler.setLevel(level)


def enable_debug() -> None:
    """
    Enable debug logging (shortcut for set_log_level(logging.DEBUG)).

    Example:
        >>> from cqlstore import config
        >>> config.enable_debug()
    """
    set_log_level(logging.DEBUG)


def disable_debug() -> None:
    """
    Disable debug logging (set to WARNING level).
    """
    set_log_level(logging.WARNING)


def set_log_format(format_name: str) -> None:
    """
    Set the log output format.

    Args:
        format_name: "simple" (default) for minimal output, "verbose" for full timestamp/level

    Example:
        >>> from cqlstore import config
        >>> config.log_format = "simple"   # "D [CQL] Prepared: ..."
        >>> config.log_format = "verbose"  # "2026-10-18 12:51:27 - cqlstore - DEBUG - ..."
    """
    global _log_format

    if format_name not in LOG_FORMATS:
        raise ValueError(f"Unknown format: {format_name}. Use 'simple' or 'verbose'")

    _log_format = format_name

    if _logger is not None:
        for handler in _logger.handlers:
            handler.setFormatter(_get_formatter())


# =============================================================================
# RESULT CONVERSION CONFIGURATION
# =============================================================================

# Convert driver-native cells (UUID, Decimal, ...) to plain host values
_auto_convert: bool = True


def is_auto_convert_enabled() -> bool:
    """Check if result cells are converted to plain host values by default."""
    return _auto_convert


def set_auto_convert(enabled: bool) -> None:
    """
    Set the default for result conversion on newly created stores.

    When disabled, rows carry the values exactly as the driver returned them.

    Example:
        >>> from cqlstore import config
        >>> config.auto_convert = False
    """
    global _auto_convert
    _auto_convert = bool(enabled)


# =============================================================================
# CONNECTION SETTINGS
# =============================================================================

# Database types handled by this package
CQL_DATABASE_TYPES = {"cassandra", "scylla", "scylladb"}


@dataclass
class ConnectionSettings:
    """
    Parameters handed unchanged to the cluster driver on connect.

    Attributes:
        seeds: Contact points (host names or addresses)
        keyspace: Keyspace the session is bound to
        username: User name ('' means no authentication)
        password: Password ('' means no authentication)
        port: Native protocol port (None uses the driver default)
        dialect: Statement dialect name (see cqlstore.dialects)
    """

    seeds: List[str] = field(default_factory=list)
    keyspace: str = ""
    username: str = ""
    password: str = ""
    port: Optional[int] = None
    dialect: str = "cassandra"

    def __post_init__(self):
        if isinstance(self.seeds, str):
            self.seeds = [s.strip() for s in self.seeds.split(",") if s.strip()]
        else:
            self.seeds = [str(s) for s in self.seeds]
        if self.port in ("", None):
            self.port = None
        else:
            self.port = int(self.port)
        self.username = self.username or ""
        self.password = self.password or ""

    @property
    def has_credentials(self) -> bool:
        """Authentication is used only when both user name and password are set."""
        return self.username != "" and self.password != ""

    @classmethod
    def from_mapping(cls, entry: Mapping[str, Any]) -> "ConnectionSettings":
        """
        Build settings from a configuration entry.

        Accepts the application config shape::

            {'database.type': 'cassandra', 'database.seeds': ['10.0.0.1'],
             'database.port': 9042, 'database.keyspace': 'hr',
             'database.user': '', 'database.pass': ''}

        as well as the same keys without the ``database.`` prefix
        (``seeds``, ``port``, ``keyspace``, ``user``/``username``,
        ``pass``/``password``, ``dialect``/``type``).
        """
        flat = {}
        for key, value in entry.items():
            name = str(key)
            if name.startswith("database."):
                name = name[len("database."):]
            flat[name] = value

        dialect = flat.get("dialect") or flat.get("type") or "cassandra"
        return cls(
            seeds=flat.get("seeds", []),
            keyspace=flat.get("keyspace", ""),
            username=flat.get("username", flat.get("user", "")),
            password=flat.get("password", flat.get("pass", "")),
            port=flat.get("port"),
            dialect=str(dialect).lower(),
        )

    def __repr__(self):
        # Never print the password
        masked = "***" if self.password else ""
        return (
            f"ConnectionSettings(seeds={self.seeds!r}, keyspace={self.keyspace!r}, "
            f"username={self.username!r}, password={masked!r}, port={self.port!r}, "
            f"dialect={self.dialect!r})"
        )


def load_databases(databases: Mapping[str, Mapping[str, Any]]) -> Dict[str, ConnectionSettings]:
    """
    Read the ``database`` section of an application config.

    Every entry whose ``database.type`` is a CQL store becomes a
    ConnectionSettings under the same name. Other database types are skipped
    with a warning.

    Example:
        >>> settings = load_databases({
        ...     'cassandra': {'database.type': 'cassandra',
        ...                   'database.seeds': ['192.168.100.200'],
        ...                   'database.port': 9042,
        ...                   'database.keyspace': 'hrsystem'},
        ... })
        >>> settings['cassandra'].keyspace
        'hrsystem'
    """
    result = {}
    for name, entry in databases.items():
        db_type = str(entry.get("database.type", entry.get("type", ""))).lower()
        if db_type not in CQL_DATABASE_TYPES:
            get_logger().warning("Skipping database '%s': unsupported type '%s'", name, db_type)
            continue
        result[name] = ConnectionSettings.from_mapping(entry)
    return result


class CQLStoreConfig:
    """
    Configuration class for CQLStore.

    This class holds global configuration settings for CQLStore instances.

    Example:
        >>> from cqlstore import CQLStore
        >>> import logging
        >>>
        >>> # Enable debug logging
        >>> CQLStore.config.log_level = logging.DEBUG
        >>>
        >>> # Or use the convenience method
        >>> CQLStore.config.enable_debug()
    """

    @property
    def log_level(self) -> int:
        """Get current log level."""
        return _log_level

    @log_level.setter
    def log_level(self, level: int) -> None:
        """Set log level."""
        set_log_level(level)

    def enable_debug(self) -> None:
        """Enable debug logging."""
        enable_debug()

    def disable_debug(self) -> None:
        """Disable debug logging."""
        disable_debug()

    @property
    def log_format(self) -> str:
        """Get current log format."""
        return _log_format

    @log_format.setter
    def log_format(self, format_name: str) -> None:
        """Set log format."""
        set_log_format(format_name)

    @property
    def auto_convert(self) -> bool:
        """Default result conversion for new stores."""
        return is_auto_convert_enabled()

    @auto_convert.setter
    def auto_convert(self, enabled: bool) -> None:
        set_auto_convert(enabled)


# Global config instance
config = CQLStoreConfig()
