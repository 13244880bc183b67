#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Client configuration for SendToRemote.

Configuration Loading Order:
1. Dataclass defaults
2. ``SENDTOREMOTE_*`` environment variables
3. Explicit keyword overrides (``create_config``) or CLI flags
4. Validation

Environment variables:
    SENDTOREMOTE_REMOTE_ROOT     remote directory that mirrors the search path
    SENDTOREMOTE_STATE_DIR       local directory for the descriptor and results
    SENDTOREMOTE_PYTHON          interpreter used on the remote host
    SENDTOREMOTE_SSH             ssh executable
    SENDTOREMOTE_RSYNC           rsync executable
    SENDTOREMOTE_SCREEN          screen executable on the remote host
    SENDTOREMOTE_COMPRESSION     none, zlib or gzip for execution records
    SENDTOREMOTE_MAX_PAYLOAD     maximum record size in bytes
    SENDTOREMOTE_LOG_LEVEL       debug, info, warning, error
    SENDTOREMOTE_USE_WSL         true/false; prefix local tools with ``wsl``
"""

import os
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .data.config import DEFAULT_MAX_PAYLOAD_BYTES, CompressionAlgorithm
from .utils.exceptions import ConfigurationError
from .utils.logger import resolve_level

DEFAULT_REMOTE_ROOT = "~/sendtoremote/remoteExecution"
DEFAULT_STATE_DIR = "~/.sendtoremote"
ENV_PREFIX = "SENDTOREMOTE_"

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


def _default_state_dir() -> str:
    return str(Path(DEFAULT_STATE_DIR).expanduser())


def _default_use_wsl() -> bool:
    return os.name == "nt"


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigurationError(
        "{0} must be a boolean (true/false), got '{1}'".format(name, value)
    )


@dataclass
class SendToRemoteConfig:
    """
    Client-side configuration.

    Attributes:
        remote_root: Remote directory hosting the mirrored search path. It is
            owned exclusively by SendToRemote: extraneous files below it are
            deleted on every push.
        state_dir: Local directory holding the last descriptor and pulled results.
        python: Interpreter command on the remote host; it must be able to
            import ``sendtoremote``.
        ssh_binary / rsync_binary / screen_binary: External tool commands.
        compression: Compression of execution records.
        max_payload_bytes: Largest record accepted by the serializer.
        log_level: Level for the ``sendtoremote`` loggers.
        use_wsl: Run local ssh/rsync through ``wsl`` (Windows hosts).
    """

    remote_root: str = DEFAULT_REMOTE_ROOT
    state_dir: str = field(default_factory=_default_state_dir)
    python: str = "python3"
    ssh_binary: str = "ssh"
    rsync_binary: str = "rsync"
    screen_binary: str = "screen"
    compression: CompressionAlgorithm = CompressionAlgorithm.NONE
    max_payload_bytes: int = DEFAULT_MAX_PAYLOAD_BYTES
    log_level: str = "info"
    use_wsl: bool = field(default_factory=_default_use_wsl)

    @property
    def local_prefix(self) -> Tuple[str, ...]:
        """Command prefix for local helper tools."""
        return ("wsl",) if self.use_wsl else ()

    @property
    def state_path(self) -> Path:
        return Path(self.state_dir).expanduser()

    def validate(self) -> None:
        """
        Validate configuration is complete and correct.

        Raises:
            ConfigurationError: If validation fails
        """
        if not self.remote_root or not self.remote_root.strip():
            raise ConfigurationError("remote_root cannot be empty")
        if self.remote_root.rstrip("/") in ("", "~"):
            raise ConfigurationError(
                "remote_root must be a dedicated directory, not the filesystem "
                "root or home directory, since extraneous files below it are deleted",
                remote_root=self.remote_root,
            )
        if not self.state_dir:
            raise ConfigurationError("state_dir cannot be empty")
        for name in ("python", "ssh_binary", "rsync_binary", "screen_binary"):
            if not getattr(self, name):
                raise ConfigurationError("{0} cannot be empty".format(name))
        if self.max_payload_bytes <= 0:
            raise ConfigurationError(
                "max_payload_bytes must be positive",
                max_payload_bytes=self.max_payload_bytes,
            )
        try:
            self.compression = CompressionAlgorithm.parse(self.compression)
            resolve_level(self.log_level)
        except ValueError as exc:
            raise ConfigurationError(str(exc), cause=exc) from exc

    @classmethod
    def from_env(
        cls,
        environ: Optional[Dict[str, str]] = None,
        validate: bool = True,
    ) -> "SendToRemoteConfig":
        """Load configuration from ``SENDTOREMOTE_*`` environment variables."""
        env = os.environ if environ is None else environ
        values: Dict[str, Any] = {}

        simple = {
            "REMOTE_ROOT": "remote_root",
            "STATE_DIR": "state_dir",
            "PYTHON": "python",
            "SSH": "ssh_binary",
            "RSYNC": "rsync_binary",
            "SCREEN": "screen_binary",
            "LOG_LEVEL": "log_level",
        }
        for suffix, attr in simple.items():
            raw = env.get(ENV_PREFIX + suffix)
            if raw:
                values[attr] = raw

        compression = env.get(ENV_PREFIX + "COMPRESSION")
        if compression:
            values["compression"] = compression

        max_payload = env.get(ENV_PREFIX + "MAX_PAYLOAD")
        if max_payload:
            try:
                values["max_payload_bytes"] = int(max_payload)
            except ValueError as exc:
                raise ConfigurationError(
                    "SENDTOREMOTE_MAX_PAYLOAD must be an integer, got '{0}'".format(max_payload),
                    cause=exc,
                ) from exc

        use_wsl = env.get(ENV_PREFIX + "USE_WSL")
        if use_wsl:
            values["use_wsl"] = _parse_bool(ENV_PREFIX + "USE_WSL", use_wsl)

        config = cls(**values)
        if validate:
            config.validate()
        return config

    def with_overrides(self, **overrides: Any) -> "SendToRemoteConfig":
        """Return a copy with the non-``None`` overrides applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["compression"] = CompressionAlgorithm.parse(self.compression).value
        return payload


_global_config: Optional[SendToRemoteConfig] = None


def get_config() -> SendToRemoteConfig:
    """Return the process-wide configuration, loading it from the environment once."""
    global _global_config
    if _global_config is None:
        _global_config = SendToRemoteConfig.from_env()
    return _global_config


def create_config(**overrides: Any) -> SendToRemoteConfig:
    """Build a validated configuration from the environment plus overrides."""
    config = SendToRemoteConfig.from_env(validate=False).with_overrides(**overrides)
    config.validate()
    return config


__all__ = [
    "DEFAULT_REMOTE_ROOT",
    "DEFAULT_STATE_DIR",
    "SendToRemoteConfig",
    "create_config",
    "get_config",
]
