"""Snapshot assembly -- typed access to the multipathd topology.

``mpath_array_get`` opens one session, issues the three raw listings, and
stitches the flat results into MultiPath -> PathGroup -> Path trees keyed by
wwid and path group id. Every level keeps the daemon's emission order.
"""

from __future__ import annotations

from typing import Callable, Optional, TypeVar

from .context import Context
from .errors import BugError, DmmpError, ErrorCode, InconsistentDataError, NoMemoryError, strerror
from .model import (
    SHOW_MPS_CMD,
    SHOW_PGS_CMD,
    SHOW_PS_CMD,
    PATH_GROUP_ID_UNKNOWN,
    MultiPath,
    MultiPathBuilder,
    Path,
    PathGroupBuilder,
)
from .parser import parse_listing
from .protocol import IpcConnection
from .status import path_status_str

T = TypeVar("T")


def _all_get(ctx: Context, conn: IpcConnection, cmd: str,
             build: Callable[[Context, list[str]], T]) -> list[T]:
    """Run one listing query and build a record per line."""
    reply = conn.exec(cmd)
    ctx.debug("Got multipathd output for '%s':\n%s\n", cmd, reply)
    return [build(ctx, fields) for fields in parse_listing(ctx, reply)]


def _attach_path_groups(ctx: Context, mps: list[MultiPathBuilder],
                        pgs: list[PathGroupBuilder]) -> None:
    ctx.debug("Saving path_group into mpath")
    by_wwid: dict[str, MultiPathBuilder] = {}
    for mp in mps:
        by_wwid.setdefault(mp.wwid, mp)

    for pg in pgs:
        if not pg.wwid:
            ctx.error("BUG: Got a path group with empty wwid")
            raise BugError("Got a path group with empty wwid")
        mp = by_wwid.get(pg.wwid)
        if mp is None:
            ctx.error("%s. Failed to find mpath for wwid %s",
                      strerror(ErrorCode.INCONSISTENT_DATA), pg.wwid)
            raise InconsistentDataError(f"Failed to find mpath for wwid {pg.wwid}")
        mp.add_path_group(pg)


def _attach_paths(ctx: Context, mps: list[MultiPathBuilder], paths: list[Path]) -> None:
    ctx.debug("Saving path into path_group")
    by_wwid: dict[str, MultiPathBuilder] = {}
    for mp in mps:
        by_wwid.setdefault(mp.wwid, mp)

    for path in paths:
        # faulty paths report no wwid
        if not path.wwid:
            ctx.warn("Got a path(%s) with empty wwid ID and status: %s(%d)",
                     path.blk_name, path_status_str(path.status), path.status)
            continue
        mp = by_wwid.get(path.wwid)
        pg = mp.find_path_group(path.pg_id) if mp is not None else None
        if pg is None:
            ctx.error("%s. Failed to find path group for wwid %s pg_id %d",
                      strerror(ErrorCode.INCONSISTENT_DATA), path.wwid, path.pg_id)
            raise InconsistentDataError(
                f"Failed to find path group for wwid {path.wwid} pg_id {path.pg_id}")
        pg.add_path(path)


def mpath_array_get(ctx: Context) -> list[MultiPath]:
    """Query multipathd and return the current multipath snapshot.

    Raises a DmmpError subclass on failure; no partial snapshot is ever
    returned. An empty list means the daemon manages no multipath device.
    """
    conn = IpcConnection(ctx)
    ctx._conn = conn
    try:
        try:
            conn.connect()
        except DmmpError as exc:
            ctx.debug("IPC initialization failed: %d, %s",
                      exc.code, strerror(exc.code))
            raise

        mps = _all_get(ctx, conn, SHOW_MPS_CMD, MultiPathBuilder.from_fields)
        pgs = _all_get(ctx, conn, SHOW_PGS_CMD, PathGroupBuilder.from_fields)
        paths = _all_get(ctx, conn, SHOW_PS_CMD, Path.from_fields)
        conn.close()

        _attach_path_groups(ctx, mps, pgs)
        _attach_paths(ctx, mps, paths)
        return [mp.finalize() for mp in mps]
    except MemoryError as exc:
        ctx.error(strerror(ErrorCode.NO_MEMORY))
        raise NoMemoryError() from exc
    finally:
        conn.close()
        ctx._conn = None


def mpath_array_free(mpaths: list[MultiPath]) -> None:
    """Release a snapshot returned by mpath_array_get.

    The list is emptied in place; records still referenced elsewhere stay
    valid, since they are immutable.
    """
    if mpaths is None:
        return
    del mpaths[:]


# ---------------------------------------------------------------------------
# Lookups on a snapshot
# ---------------------------------------------------------------------------

def mpath_get_by_name(mpaths: list[MultiPath], name: str) -> Optional[MultiPath]:
    """First multipath whose alias is ``name``."""
    for mp in mpaths:
        if mp.name == name:
            return mp
    return None


def path_group_id_search(mpath: MultiPath, blk_name: str) -> int:
    """Id of the path group of ``mpath`` holding ``blk_name``, else 0."""
    for pg in mpath.path_groups:
        for path in pg.paths:
            if path.blk_name == blk_name:
                return pg.id
    return PATH_GROUP_ID_UNKNOWN


def mpath_get_by_blk_name(mpaths: list[MultiPath], blk_path: str) -> Optional[MultiPath]:
    """Multipath containing a block device, given as ``sdb`` or ``/dev/sdb``."""
    blk_name = blk_path.rsplit("/", 1)[-1]
    if not blk_name:
        return None
    for mp in mpaths:
        if path_group_id_search(mp, blk_name) != PATH_GROUP_ID_UNKNOWN:
            return mp
    return None
