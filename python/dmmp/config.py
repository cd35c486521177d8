"""Context configuration loaded from YAML.

Recognized keys::

    log-priority: debug        # debug | info | warning | error
    socket-path: /org/kernel/linux/storage/multipathd
    ipc-timeout: 60000         # milliseconds

Unknown keys are ignored. Nothing is read implicitly; callers load a
document and pass the result to ``Context.from_config``.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

from .context import DEFAULT_IPC_TIMEOUT, DEFAULT_SOCKET_PATH
from .log import DEFAULT_LOG_PRIORITY, LogPriority, log_priority_from_str


@dataclass
class ContextConfig:
    log_priority: LogPriority = DEFAULT_LOG_PRIORITY
    socket_path: str = DEFAULT_SOCKET_PATH
    ipc_timeout: int = DEFAULT_IPC_TIMEOUT


def load_config(text: str) -> ContextConfig:
    """Parse a YAML document into a ContextConfig.

    Raises ValueError on malformed YAML or invalid values.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ValueError(f"Malformed dmmp config: {exc}") from exc

    if data is None:
        return ContextConfig()
    if not isinstance(data, dict):
        raise ValueError("dmmp config must be a mapping")

    config = ContextConfig()

    priority = data.get("log-priority")
    if priority is not None:
        config.log_priority = log_priority_from_str(str(priority))

    socket_path = data.get("socket-path")
    if socket_path is not None:
        if not isinstance(socket_path, str) or not socket_path:
            raise ValueError(f"Invalid socket-path: {socket_path!r}")
        config.socket_path = socket_path

    timeout = data.get("ipc-timeout")
    if timeout is not None:
        # bool is an int subclass; reject it explicitly
        if isinstance(timeout, bool) or not isinstance(timeout, int) or timeout <= 0:
            raise ValueError(f"Invalid ipc-timeout: {timeout!r}")
        config.ipc_timeout = timeout

    return config


def load_config_file(path: Path) -> ContextConfig:
    return load_config(Path(path).read_text())
