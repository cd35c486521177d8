"""dmmp -- read-only access to the multipathd device-mapper multipath topology."""

from .client import (
    mpath_array_free,
    mpath_array_get,
    mpath_get_by_blk_name,
    mpath_get_by_name,
    path_group_id_search,
)
from .config import ContextConfig, load_config, load_config_file
from .context import Context
from .errors import (
    BugError,
    DmmpError,
    ErrorCode,
    InconsistentDataError,
    IpcError,
    IpcTimeoutError,
    NoDaemonError,
    NoMemoryError,
    strerror,
)
from .log import LogPriority, log_priority_str
from .model import MultiPath, Path, PathGroup
from .status import PathGroupStatus, PathStatus, path_group_status_str, path_status_str

__version__ = "0.1.0"

# Module-level convenience context (created lazily)
_default_context: Context = None


def _get_context() -> Context:
    global _default_context
    if _default_context is None:
        _default_context = Context()
    return _default_context


def mpaths_get() -> list[MultiPath]:
    """Snapshot of every multipath, using the default context."""
    return mpath_array_get(_get_context())


__all__ = [
    'Context', 'ContextConfig', 'load_config', 'load_config_file',
    'LogPriority', 'log_priority_str',
    'ErrorCode', 'strerror', 'DmmpError', 'NoMemoryError', 'BugError',
    'IpcTimeoutError', 'IpcError', 'NoDaemonError', 'InconsistentDataError',
    'PathStatus', 'PathGroupStatus', 'path_status_str', 'path_group_status_str',
    'MultiPath', 'PathGroup', 'Path',
    'mpath_array_get', 'mpath_array_free', 'mpaths_get',
    'mpath_get_by_name', 'mpath_get_by_blk_name', 'path_group_id_search',
]
