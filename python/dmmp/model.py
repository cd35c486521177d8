"""Multipath topology records.

A snapshot is a strict tree: MultiPath -> PathGroup -> Path. Records are
built in two phases. While the flat listings are being cross-referenced,
multipaths and path groups are held by builders whose child lists only
grow. ``finalize()`` turns a builder into a frozen record whose children are
a tuple; only finalized records are handed to callers.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from .errors import BugError
from .parser import field_at, str_to_uint32
from .status import (
    PATH_GROUP_STATUS_MAP,
    PATH_STATUS_MAP,
    PathGroupStatus,
    PathStatus,
    path_group_status_str,
    path_status_str,
)

if TYPE_CHECKING:
    from .context import Context


PATH_GROUP_ID_UNKNOWN = 0

SHOW_MPS_CMD = "show maps raw format %w|%n"
_MP_INDEX_WWID = 0
_MP_INDEX_ALIAS = 1

SHOW_PGS_CMD = "show groups raw format %w|%g|%p|%t|%s"
_PG_INDEX_WWID = 0
_PG_INDEX_PG_ID = 1
_PG_INDEX_PRI = 2
_PG_INDEX_STATUS = 3
_PG_INDEX_SELECTOR = 4

SHOW_PS_CMD = "show paths raw format %d|%T|%w|%g"
_P_INDEX_BLK_NAME = 0
_P_INDEX_STATUS = 1
_P_INDEX_WWID = 2
_P_INDEX_PG_ID = 3


# ---------------------------------------------------------------------------
# Finalized records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Path:
    blk_name: str
    status: PathStatus
    wwid: str
    pg_id: int

    @classmethod
    def from_fields(cls, ctx: Context, fields: list[str]) -> Path:
        """Build a path from a ``%d|%T|%w|%g`` line.

        A faulty path may carry an empty wwid; its group id is then
        allowed to be empty or 0. Such paths are dropped during assembly.
        """
        blk_name = field_at(ctx, fields, _P_INDEX_BLK_NAME, "blk_name")
        status_str = field_at(ctx, fields, _P_INDEX_STATUS, "status")
        wwid = field_at(ctx, fields, _P_INDEX_WWID, "wwid", allow_empty=True)
        pg_id_str = field_at(ctx, fields, _P_INDEX_PG_ID, "pg_id",
                             allow_empty=not wwid)

        pg_id = str_to_uint32(ctx, pg_id_str) if pg_id_str else PATH_GROUP_ID_UNKNOWN
        if wwid and pg_id == PATH_GROUP_ID_UNKNOWN:
            ctx.error("BUG: Got unknown(%d) path group ID from path '%s'",
                      PATH_GROUP_ID_UNKNOWN, blk_name)
            raise BugError(f"Got unknown path group ID from path '{blk_name}'")

        status = PATH_STATUS_MAP.from_string(status_str, ctx)

        ctx.debug("Got path blk_name: '%s'", blk_name)
        ctx.debug("Got path wwid: '%s'", wwid)
        ctx.debug("Got path status: %s(%d)", path_status_str(status), status)
        ctx.debug("Got path pg_id: %d", pg_id)
        return cls(blk_name=blk_name, status=status, wwid=wwid, pg_id=pg_id)

    def to_dict(self) -> dict:
        return {
            "blk_name": self.blk_name,
            "status": path_status_str(self.status),
            "wwid": self.wwid,
            "pg_id": self.pg_id,
        }


@dataclass(frozen=True)
class PathGroup:
    wwid: str
    id: int
    priority: int
    status: PathGroupStatus
    selector: str
    paths: tuple[Path, ...] = ()

    def to_dict(self) -> dict:
        return {
            "wwid": self.wwid,
            "id": self.id,
            "priority": self.priority,
            "status": path_group_status_str(self.status),
            "selector": self.selector,
            "paths": [p.to_dict() for p in self.paths],
        }


@dataclass(frozen=True)
class MultiPath:
    wwid: str
    name: str
    path_groups: tuple[PathGroup, ...] = ()

    @property
    def alias(self) -> str:
        return self.name

    def to_dict(self) -> dict:
        return {
            "wwid": self.wwid,
            "name": self.name,
            "path_groups": [pg.to_dict() for pg in self.path_groups],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))


# ---------------------------------------------------------------------------
# Growing-phase builders
# ---------------------------------------------------------------------------

class PathGroupBuilder:
    """A path group whose path list is still being filled."""

    def __init__(self, wwid: str, pg_id: int, priority: int,
                 status: PathGroupStatus, selector: str):
        self.wwid = wwid
        self.id = pg_id
        self.priority = priority
        self.status = status
        self.selector = selector
        self._paths: Optional[list[Path]] = []

    @classmethod
    def from_fields(cls, ctx: Context, fields: list[str]) -> PathGroupBuilder:
        """Build a path group from a ``%w|%g|%p|%t|%s`` line."""
        wwid = field_at(ctx, fields, _PG_INDEX_WWID, "wwid")
        pg_id_str = field_at(ctx, fields, _PG_INDEX_PG_ID, "pg_id")
        pri_str = field_at(ctx, fields, _PG_INDEX_PRI, "priority")
        status_str = field_at(ctx, fields, _PG_INDEX_STATUS, "status")
        selector = field_at(ctx, fields, _PG_INDEX_SELECTOR, "selector")

        pg_id = str_to_uint32(ctx, pg_id_str)
        if pg_id == PATH_GROUP_ID_UNKNOWN:
            ctx.error("BUG: Got unknown(%d) path group ID", PATH_GROUP_ID_UNKNOWN)
            raise BugError("Got unknown path group ID")
        priority = str_to_uint32(ctx, pri_str)
        status = PATH_GROUP_STATUS_MAP.from_string(status_str, ctx)

        ctx.debug("Got path group wwid: '%s'", wwid)
        ctx.debug("Got path group id: %d", pg_id)
        ctx.debug("Got path group priority: %d", priority)
        ctx.debug("Got path group status: %s(%d)",
                  path_group_status_str(status), status)
        ctx.debug("Got path group selector: '%s'", selector)
        return cls(wwid, pg_id, priority, status, selector)

    def add_path(self, path: Path) -> None:
        if self._paths is None:
            raise BugError("Path group already finalized")
        self._paths.append(path)

    def finalize(self) -> PathGroup:
        if self._paths is None:
            raise BugError("Path group already finalized")
        paths, self._paths = tuple(self._paths), None
        return PathGroup(
            wwid=self.wwid,
            id=self.id,
            priority=self.priority,
            status=self.status,
            selector=self.selector,
            paths=paths,
        )


class MultiPathBuilder:
    """A multipath whose path group list is still being filled."""

    def __init__(self, wwid: str, name: str):
        self.wwid = wwid
        self.name = name
        self._groups: Optional[list[PathGroupBuilder]] = []

    @classmethod
    def from_fields(cls, ctx: Context, fields: list[str]) -> MultiPathBuilder:
        """Build a multipath from a ``%w|%n`` line."""
        wwid = field_at(ctx, fields, _MP_INDEX_WWID, "wwid")
        alias = field_at(ctx, fields, _MP_INDEX_ALIAS, "alias")
        ctx.debug("Got mpath wwid: '%s', alias: '%s'", wwid, alias)
        return cls(wwid, alias)

    def add_path_group(self, pg: PathGroupBuilder) -> None:
        if self._groups is None:
            raise BugError("Multipath already finalized")
        self._groups.append(pg)

    def find_path_group(self, pg_id: int) -> Optional[PathGroupBuilder]:
        """First attached group with ``pg_id``."""
        for pg in self._groups or ():
            if pg.id == pg_id:
                return pg
        return None

    def finalize(self) -> MultiPath:
        """Finalize every group, then this multipath."""
        if self._groups is None:
            raise BugError("Multipath already finalized")
        groups, self._groups = self._groups, None
        return MultiPath(
            wwid=self.wwid,
            name=self.name,
            path_groups=tuple(pg.finalize() for pg in groups),
        )
