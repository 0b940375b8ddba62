"""Configuration management for linksnap.

This module provides dataclasses for configuration and functions for
parsing/formatting TOML configuration files.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional
import tomllib

if TYPE_CHECKING:
    from linksnap.engine import BackupPolicy


class ConfigurationError(Exception):
    """Raised when configuration file is missing or malformed."""
    pass


class ValidationError(Exception):
    """Raised when configuration values have invalid types."""
    pass


@dataclass
class PolicyConfig:
    """Options passed to the backup engine."""
    fail_if_no_baseline: bool = False
    disable_hard_links: bool = False
    exclude_paths: List[Path] = field(default_factory=list)
    remove_stale_in_progress: bool = False


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"  # "DEBUG", "INFO", "WARNING", "ERROR"
    log_file: Optional[Path] = None  # console only when unset
    log_max_size_mb: int = 10
    log_backup_count: int = 5

    @property
    def log_max_bytes(self) -> int:
        """Return max size in bytes for use with RotatingFileHandler."""
        return self.log_max_size_mb * 1024 * 1024


@dataclass
class Configuration:
    """Main configuration for linksnap."""
    source: Path
    destination: Path
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_policy(self) -> "BackupPolicy":
        """Build the engine policy, excluding the log files from the backup."""
        from linksnap.engine import BackupPolicy

        exclude_paths = set(self.policy.exclude_paths)
        log_file = self.logging.log_file
        if log_file is not None:
            exclude_paths.add(log_file)
            # Rotated copies: log_file.1 ... log_file.N
            for i in range(1, self.logging.log_backup_count + 1):
                exclude_paths.add(log_file.with_name(f"{log_file.name}.{i}"))
        return BackupPolicy(
            fail_if_no_baseline=self.policy.fail_if_no_baseline,
            disable_hard_links=self.policy.disable_hard_links,
            exclude_paths=exclude_paths,
            remove_stale_in_progress=self.policy.remove_stale_in_progress,
        )


# Default config file path
DEFAULT_CONFIG_PATH = Path.home() / ".config/linksnap/config.toml"

# Required keys in the [main] section
REQUIRED_KEYS = ["source", "destination"]


def _validate_type(value: Any, expected_type: type, key: str) -> None:
    """Validate that a value has the expected type."""
    if not isinstance(value, expected_type):
        raise ValidationError(
            f"Key '{key}' has invalid type: expected {expected_type.__name__}, "
            f"got {type(value).__name__}"
        )


def _expand(path_str: str) -> Path:
    return Path(path_str).expanduser()


def _parse_policy_config(data: Dict[str, Any]) -> PolicyConfig:
    """Parse policy configuration from dict."""
    policy_data = data.get("policy", {})
    _validate_type(policy_data, dict, "policy")

    fail_if_no_baseline = policy_data.get("fail_if_no_baseline", False)
    _validate_type(fail_if_no_baseline, bool, "policy.fail_if_no_baseline")

    disable_hard_links = policy_data.get("disable_hard_links", False)
    _validate_type(disable_hard_links, bool, "policy.disable_hard_links")

    exclude_paths = policy_data.get("exclude_paths", [])
    _validate_type(exclude_paths, list, "policy.exclude_paths")
    for i, path in enumerate(exclude_paths):
        _validate_type(path, str, f"policy.exclude_paths[{i}]")

    remove_stale = policy_data.get("remove_stale_in_progress", False)
    _validate_type(remove_stale, bool, "policy.remove_stale_in_progress")

    return PolicyConfig(
        fail_if_no_baseline=fail_if_no_baseline,
        disable_hard_links=disable_hard_links,
        exclude_paths=[_expand(p) for p in exclude_paths],
        remove_stale_in_progress=remove_stale,
    )


def _parse_logging_config(data: Dict[str, Any]) -> LoggingConfig:
    """Parse logging configuration from dict."""
    logging_data = data.get("logging", {})
    _validate_type(logging_data, dict, "logging")

    level = logging_data.get("level", "INFO")
    _validate_type(level, str, "logging.level")

    log_file = logging_data.get("log_file")
    if log_file is not None:
        _validate_type(log_file, str, "logging.log_file")

    log_max_size_mb = logging_data.get("log_max_size_mb", 10)
    _validate_type(log_max_size_mb, int, "logging.log_max_size_mb")

    log_backup_count = logging_data.get("log_backup_count", 5)
    _validate_type(log_backup_count, int, "logging.log_backup_count")

    return LoggingConfig(
        level=level,
        log_file=_expand(log_file) if log_file else None,
        log_max_size_mb=log_max_size_mb,
        log_backup_count=log_backup_count,
    )


def parse_config_string(toml_content: str) -> Configuration:
    """
    Parse TOML string into Configuration object.

    Args:
        toml_content: TOML formatted string

    Returns:
        Configuration object

    Raises:
        ConfigurationError: If required key is missing or TOML is invalid
        ValidationError: If value has wrong type
    """
    try:
        data = tomllib.loads(toml_content)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML format: {e}")

    # Main keys may be nested under [main] or at root
    main_data = data.get("main", data)

    for key in REQUIRED_KEYS:
        if key not in main_data:
            raise ConfigurationError(f"Missing required configuration key: '{key}'")

    source = main_data["source"]
    _validate_type(source, str, "source")

    destination = main_data["destination"]
    _validate_type(destination, str, "destination")

    return Configuration(
        source=_expand(source),
        destination=_expand(destination),
        policy=_parse_policy_config(data),
        logging=_parse_logging_config(data),
    )


def parse_config(config_path: Optional[Path] = None) -> Configuration:
    """
    Parse TOML configuration file into Configuration object.

    Args:
        config_path: Path to config file. Defaults to ~/.config/linksnap/config.toml

    Returns:
        Configuration object

    Raises:
        ConfigurationError: If file doesn't exist or required key missing
        ValidationError: If value has wrong type
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        content = config_path.read_text()
    except PermissionError:
        raise ConfigurationError(
            f"Permission denied reading configuration file: {config_path}"
        )
    except OSError as e:
        raise ConfigurationError(f"Error reading configuration file {config_path}: {e}")

    return parse_config_string(content)


def _escape_toml_string(s: str) -> str:
    """Escape a string for TOML basic string format."""
    return s.replace("\\", "\\\\").replace('"', '\\"')


def _toml_bool(value: bool) -> str:
    return "true" if value else "false"


def format_config(config: Configuration) -> str:
    """
    Format Configuration object back to TOML string.

    Args:
        config: Configuration object to format

    Returns:
        TOML formatted string
    """
    lines = []

    lines.append("[main]")
    lines.append(f'source = "{_escape_toml_string(str(config.source))}"')
    lines.append(f'destination = "{_escape_toml_string(str(config.destination))}"')
    lines.append("")

    lines.append("[policy]")
    lines.append(f"fail_if_no_baseline = {_toml_bool(config.policy.fail_if_no_baseline)}")
    lines.append(f"disable_hard_links = {_toml_bool(config.policy.disable_hard_links)}")
    if config.policy.exclude_paths:
        lines.append("exclude_paths = [")
        for path in config.policy.exclude_paths:
            lines.append(f'    "{_escape_toml_string(str(path))}",')
        lines.append("]")
    else:
        lines.append("exclude_paths = []")
    lines.append(
        f"remove_stale_in_progress = {_toml_bool(config.policy.remove_stale_in_progress)}"
    )
    lines.append("")

    lines.append("[logging]")
    lines.append(f'level = "{_escape_toml_string(config.logging.level)}"')
    if config.logging.log_file is not None:
        lines.append(f'log_file = "{_escape_toml_string(str(config.logging.log_file))}"')
    lines.append(f"log_max_size_mb = {config.logging.log_max_size_mb}")
    lines.append(f"log_backup_count = {config.logging.log_backup_count}")

    return "\n".join(lines) + "\n"


def create_default_config() -> str:
    """
    Generate default configuration TOML for `linksnap init`.

    Returns:
        TOML formatted string with default configuration
    """
    return '''# linksnap configuration file

[main]
# Directory tree to back up
source = "~/Documents"

# Folder that holds the timestamped snapshots
destination = "/mnt/backup/linksnap"

[policy]
# Refuse to run when there is no previous snapshot to link against
fail_if_no_baseline = false

# Copy every file even when it is unchanged since the last snapshot
disable_hard_links = false

# Paths inside the source to leave out of every snapshot
exclude_paths = []

# Delete leftover *.inprogress folders from interrupted runs before starting
remove_stale_in_progress = false

[logging]
# Log level: DEBUG, INFO, WARNING, ERROR
level = "INFO"
# Uncomment to also log to a file (it is excluded from the backup)
# log_file = "~/.local/log/linksnap.log"
log_max_size_mb = 10
log_backup_count = 5
'''
