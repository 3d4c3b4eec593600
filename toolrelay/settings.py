import logging
import os
import shlex
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from dotenv import load_dotenv

from toolrelay.errors import ConfigError
from toolrelay.widgets import UiRenderPolicy

log = logging.getLogger(__name__)

DEFAULT_COMMAND = ["codex", "app-server"]


@dataclass
class RelayConfig:
    """
    Everything needed to run a gateway against one worker process.

    Timeouts and intervals are in seconds.
    """

    command: List[str] = field(default_factory=lambda: list(DEFAULT_COMMAND))
    request_timeout: float = 20.0
    resource_read_timeout: float = 10.0
    status_refresh_interval: float = 60.0
    status_page_size: int = 100
    client_name: str = "toolrelay"
    client_title: str = "Tool Relay"
    client_version: str = "0.1.0"
    ui_policy: UiRenderPolicy = field(default_factory=UiRenderPolicy)


def _split_list(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [entry.strip().lower() for entry in value.split(",") if entry.strip()]


def create_ui_render_policy(env: Optional[Mapping[str, str]] = None) -> UiRenderPolicy:
    """
    Build the render policy from ``EMBEDDED_UI_*`` variables.

    An unset or empty allow-list allows every app; the block-list always wins.
    """
    if env is None:
        env = os.environ

    enabled = (env.get("EMBEDDED_UI_ENABLED") or "").strip().lower() != "false"
    allowed = _split_list(env.get("EMBEDDED_UI_ALLOWED_APPS"))
    blocked = _split_list(env.get("EMBEDDED_UI_BLOCKED_APPS"))

    return UiRenderPolicy.build(
        enabled=enabled,
        allowed_apps=allowed if allowed else None,
        blocked_apps=blocked,
    )


def _positive_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {raw!r}.") from None
    if value <= 0:
        raise ConfigError(f"{key} must be positive, got {raw!r}.")
    return value


def _positive_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got {raw!r}.") from None
    if value <= 0:
        raise ConfigError(f"{key} must be positive, got {raw!r}.")
    return value


def load_config(env: Optional[Mapping[str, str]] = None, dotenv_path: Optional[str] = None) -> RelayConfig:
    """
    Read the relay configuration.

    When ``env`` is None the ``.env`` file (``dotenv_path``, or the one in the
    current working directory) is loaded into the process environment first,
    and the process environment is read. Passing ``env`` reads only that mapping.

    Raises:
        ConfigError: A variable is present but not usable
    """
    if env is None:
        load_dotenv(dotenv_path=dotenv_path or os.path.join(os.getcwd(), ".env"))
        env = os.environ

    command = DEFAULT_COMMAND
    raw_command = env.get("TOOLRELAY_COMMAND")
    if raw_command is not None and raw_command.strip():
        try:
            command = shlex.split(raw_command)
        except ValueError as e:
            raise ConfigError(f"TOOLRELAY_COMMAND could not be parsed: {e}") from e

    config = RelayConfig(
        command=list(command),
        request_timeout=_positive_float(env, "TOOLRELAY_REQUEST_TIMEOUT", 20.0),
        resource_read_timeout=_positive_float(env, "TOOLRELAY_RESOURCE_READ_TIMEOUT", 10.0),
        status_refresh_interval=_positive_float(env, "TOOLRELAY_STATUS_REFRESH_INTERVAL", 60.0),
        status_page_size=_positive_int(env, "TOOLRELAY_STATUS_PAGE_SIZE", 100),
        ui_policy=create_ui_render_policy(env),
    )
    log.debug(f"[Settings] Loaded config: command={config.command}, ui_policy={config.ui_policy}")
    return config
