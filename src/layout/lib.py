"""Layout position algebra.

Every active instance sits in a bucket, the ``(position, column)`` pair it
is ranked in, and the orders within a bucket are always exactly ``1..N``.
Operations validate their whole input before touching the container and
then renumber each affected bucket from scratch, so a container saved after
any operation is dense even if it was loaded with gaps or ties.

Inactive instances keep their position and column but are unranked
(``order == 0``) and belong to no bucket.
"""

import logging
from collections.abc import Iterable

from src.config import get_max_columns
from src.instance import ComponentInstance, Container, parse_column_position

logger = logging.getLogger(__name__)

BucketKey = tuple[str, int | None]


# =============================================================================
# Errors
# =============================================================================


class LayoutError(Exception):
    """Base class for layout mutation errors. The container is unchanged."""


class ColumnOutOfRange(LayoutError):
    """Raised when a column does not exist in the container."""

    def __init__(self, column: int, columns: int, message: str | None = None):
        self.column = column
        self.columns = columns
        super().__init__(
            message or f"column {column} does not exist in a {columns}-column layout"
        )


class IncompleteReorder(LayoutError):
    """Raised when a bulk reorder does not list exactly the bucket members."""

    def __init__(
        self,
        bucket: BucketKey,
        missing: Iterable[str] = (),
        unexpected: Iterable[str] = (),
        duplicated: Iterable[str] = (),
    ):
        self.bucket = bucket
        self.missing = sorted(missing)
        self.unexpected = sorted(unexpected)
        self.duplicated = sorted(duplicated)
        details = []
        if self.missing:
            details.append(f"missing {', '.join(self.missing)}")
        if self.unexpected:
            details.append(f"not in bucket {', '.join(self.unexpected)}")
        if self.duplicated:
            details.append(f"listed twice {', '.join(self.duplicated)}")
        super().__init__(
            f"Reorder of '{bucket_label(bucket)}' must list every component "
            f"exactly once ({'; '.join(details)})"
        )


class InvalidPosition(LayoutError):
    """Raised when a position is not valid for the container."""


class InvalidMove(LayoutError):
    """Raised when a move targets another container."""


class InstanceNotFound(LayoutError):
    """Raised when an instance id is not in the container."""

    def __init__(self, instance_id: str, container_id: str):
        self.instance_id = instance_id
        super().__init__(f"Component '{instance_id}' not found in '{container_id}'")


class DuplicateInstance(LayoutError):
    """Raised when inserting an instance id that already exists."""

    def __init__(self, instance_id: str):
        self.instance_id = instance_id
        super().__init__(f"Component '{instance_id}' is already in this container")


# =============================================================================
# Read helpers
# =============================================================================


def bucket_label(bucket: BucketKey) -> str:
    """Human-readable bucket name: the position, plus a column if it adds one."""
    position, column = bucket
    if column is None or parse_column_position(position) is not None:
        return position
    return f"{position}:{column}"


def _sort_key(instance: ComponentInstance):
    return (instance.order, instance.created_at, instance.id)


def bucket_members(
    container: Container, position: str, column: int | None = None
) -> list[ComponentInstance]:
    """Active instances of a bucket, lowest order first.

    Equal orders fall back to creation time, then id.
    """
    if column is None:
        column = parse_column_position(position)
    members = [
        i
        for i in container.instances
        if i.is_active and i.position == position and i.column == column
    ]
    return sorted(members, key=_sort_key)


def bucket_keys(container: Container) -> list[BucketKey]:
    """Buckets holding active instances, in display order."""
    positions = container.valid_positions()
    keys = {i.bucket for i in container.instances if i.is_active}

    def rank(key: BucketKey):
        position, column = key
        index = positions.index(position) if position in positions else len(positions)
        return (index, position, column or 0)

    return sorted(keys, key=rank)


def layout_snapshot(container: Container) -> dict[str, list[str]]:
    """Instance ids per bucket, in order, keyed by bucket label."""
    return {
        bucket_label(key): [i.id for i in bucket_members(container, *key)]
        for key in bucket_keys(container)
    }


# =============================================================================
# Validation helpers
# =============================================================================


def _require(container: Container, instance_id: str) -> ComponentInstance:
    instance = container.get(instance_id)
    if instance is None:
        raise InstanceNotFound(instance_id, container.id)
    return instance


def resolve_target(
    container: Container, position: str, column: int | None = None
) -> BucketKey:
    """Validate a target position and return its bucket.

    ``column_<n>`` positions imply column ``n``; an explicit column must
    agree with it.

    Raises:
        InvalidPosition: If the position is foreign to the container kind, or
            the column disagrees with a column position.
        ColumnOutOfRange: If the column exceeds the container's columns.
    """
    if not container.accepts_region(position):
        raise InvalidPosition(
            f"'{position}' is not a position of a {container.kind.value} container "
            f"(expected one of: {', '.join(container.valid_positions())})"
        )
    encoded = parse_column_position(position)
    if encoded is not None:
        if column is not None and column != encoded:
            raise InvalidPosition(
                f"position '{position}' is column {encoded}, not column {column}"
            )
        column = encoded
    if column is not None and not 1 <= column <= container.columns:
        raise ColumnOutOfRange(column, container.columns)
    return position, column


def _slot(index: int | None, size: int) -> int:
    """1-based insertion slot, clamped to ``1..size+1``."""
    if index is None:
        return size + 1
    return max(1, min(index, size + 1))


def _renumber(members: list[ComponentInstance]) -> None:
    for order, member in enumerate(members, start=1):
        member.order = order


# =============================================================================
# Mutations
# =============================================================================


def insert(
    container: Container,
    instance: ComponentInstance,
    position: str,
    column: int | None = None,
    index: int | None = None,
) -> ComponentInstance:
    """Place a new instance into a bucket.

    Members at or after ``index`` shift down by one; ``index=None`` appends.
    The instance is activated.

    Raises:
        DuplicateInstance: If the id is already in the container.
        InvalidPosition, ColumnOutOfRange: If the target is invalid.
    """
    if container.get(instance.id) is not None:
        raise DuplicateInstance(instance.id)
    key = resolve_target(container, position, column)

    members = bucket_members(container, *key)
    instance.position, instance.column = key
    instance.is_active = True
    members.insert(_slot(index, len(members)) - 1, instance)
    container.instances.append(instance)
    _renumber(members)
    logger.debug(f"Inserted {instance.id} into {bucket_label(key)} at {instance.order}")
    return instance


def remove(container: Container, instance_id: str) -> ComponentInstance:
    """Delete an instance and close the gap in its bucket.

    Raises:
        InstanceNotFound: If the id is not in the container.
    """
    instance = _require(container, instance_id)
    container.instances = [i for i in container.instances if i is not instance]
    if instance.is_active:
        _renumber(bucket_members(container, *instance.bucket))
    logger.debug(f"Removed {instance_id} from {bucket_label(instance.bucket)}")
    return instance


def move(
    container: Container,
    instance_id: str,
    position: str,
    column: int | None = None,
    index: int | None = None,
    target_container: str | None = None,
) -> ComponentInstance:
    """Move an instance to another bucket of the same container, or within one.

    The source bucket is renumbered without the instance before the
    destination bucket is expanded, so same-bucket moves never produce
    duplicate ranks. An inactive instance is relocated but stays unranked.

    Args:
        container: Owning container.
        instance_id: Instance to move.
        position: Destination position.
        column: Destination column.
        index: 1-based destination slot, None to append.
        target_container: Destination container id, if the caller names one.

    Raises:
        InvalidMove: If target_container is a different container.
        InstanceNotFound, InvalidPosition, ColumnOutOfRange.
    """
    if target_container is not None and target_container != container.id:
        raise InvalidMove(
            f"Components cannot move between containers "
            f"('{container.id}' -> '{target_container}')"
        )
    instance = _require(container, instance_id)
    key = resolve_target(container, position, column)

    if not instance.is_active:
        instance.position, instance.column = key
        return instance

    source = instance.bucket
    _renumber([m for m in bucket_members(container, *source) if m is not instance])

    members = [m for m in bucket_members(container, *key) if m is not instance]
    instance.position, instance.column = key
    members.insert(_slot(index, len(members)) - 1, instance)
    _renumber(members)
    logger.debug(
        f"Moved {instance_id} {bucket_label(source)} -> {bucket_label(key)} "
        f"at {instance.order}"
    )
    return instance


def reorder_bucket(
    container: Container,
    position: str,
    column: int | None,
    ordered_ids: Iterable[str],
) -> list[ComponentInstance]:
    """Assign orders ``1..N`` to a bucket following the given id sequence.

    Raises:
        IncompleteReorder: If the ids are not exactly the bucket members.
        TypeError: If ``ordered_ids`` is a bare string.
        InvalidPosition, ColumnOutOfRange: If the bucket itself is invalid.
    """
    if isinstance(ordered_ids, str):
        raise TypeError("ordered_ids must be a sequence of instance ids, not a string")
    key = resolve_target(container, position, column)
    members = bucket_members(container, *key)
    ids = list(ordered_ids)

    current = {m.id for m in members}
    requested = set(ids)
    duplicated = {i for i in requested if ids.count(i) > 1}
    if requested != current or duplicated:
        raise IncompleteReorder(
            key,
            missing=current - requested,
            unexpected=requested - current,
            duplicated=duplicated,
        )

    by_id = {m.id: m for m in members}
    ordered = [by_id[i] for i in ids]
    _renumber(ordered)
    return ordered


def set_active(
    container: Container, instance_id: str, active: bool
) -> ComponentInstance:
    """Activate (append to its bucket) or deactivate (unrank) an instance.

    Raises:
        InstanceNotFound: If the id is not in the container.
        ColumnOutOfRange: If activating into a column that no longer exists.
    """
    instance = _require(container, instance_id)
    if instance.is_active == active:
        return instance

    if active:
        key = resolve_target(container, instance.position, instance.column)
        members = bucket_members(container, *key)
        instance.position, instance.column = key
        instance.is_active = True
        members.append(instance)
        _renumber(members)
    else:
        instance.is_active = False
        instance.order = 0
        _renumber(bucket_members(container, *instance.bucket))
    logger.debug(f"Set {instance_id} active={active}")
    return instance


def set_columns(
    container: Container, columns: int, max_columns: int | None = None
) -> Container:
    """Change the column count of a container.

    Raises:
        ColumnOutOfRange: If the count is outside ``1..max_columns`` or would
            leave active instances in a removed column.
    """
    limit = get_max_columns(max_columns)
    if not 1 <= columns <= limit:
        raise ColumnOutOfRange(
            columns, container.columns, f"a layout supports 1 to {limit} columns, not {columns}"
        )
    stranded = sorted(
        {i.column for i in container.instances if i.is_active and i.column and i.column > columns}
    )
    if stranded:
        raise ColumnOutOfRange(
            stranded[-1],
            columns,
            f"cannot reduce to {columns} columns: column "
            f"{', '.join(str(c) for c in stranded)} still holds active components",
        )
    container.columns = columns
    return container


def normalize(container: Container) -> Container:
    """Repair a loaded container so every bucket is dense.

    Column positions get their implied column, inactive instances are
    unranked, and each bucket is renumbered by ``(order, created_at, id)``.
    Applying it twice is the same as applying it once.
    """
    for instance in container.instances:
        encoded = parse_column_position(instance.position)
        if encoded is not None and instance.column is None:
            instance.column = encoded
        if not instance.is_active:
            instance.order = 0
    for key in bucket_keys(container):
        _renumber(bucket_members(container, *key))
    return container


__all__ = [
    "BucketKey",
    "LayoutError",
    "ColumnOutOfRange",
    "IncompleteReorder",
    "InvalidPosition",
    "InvalidMove",
    "InstanceNotFound",
    "DuplicateInstance",
    "bucket_label",
    "bucket_members",
    "bucket_keys",
    "layout_snapshot",
    "resolve_target",
    "insert",
    "remove",
    "move",
    "reorder_bucket",
    "set_active",
    "set_columns",
    "normalize",
]
