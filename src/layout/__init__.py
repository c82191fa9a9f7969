"""Layout position algebra: dense per-bucket ordering of instances.

Example:
    >>> from src.instance import ComponentInstance, default_footer
    >>> from src.layout import insert, layout_snapshot
    >>> footer = default_footer()
    >>> _ = insert(footer, ComponentInstance(id="news", type_tag="text", position="column_2"), "column_2", index=1)
    >>> layout_snapshot(footer)["column_2"][0]
    'news'
"""

from .lib import (
    BucketKey,
    ColumnOutOfRange,
    DuplicateInstance,
    IncompleteReorder,
    InstanceNotFound,
    InvalidMove,
    InvalidPosition,
    LayoutError,
    bucket_keys,
    bucket_label,
    bucket_members,
    insert,
    layout_snapshot,
    move,
    normalize,
    remove,
    reorder_bucket,
    resolve_target,
    set_active,
    set_columns,
)

__all__ = [
    "BucketKey",
    # Errors
    "LayoutError",
    "ColumnOutOfRange",
    "IncompleteReorder",
    "InvalidPosition",
    "InvalidMove",
    "InstanceNotFound",
    "DuplicateInstance",
    # Read helpers
    "bucket_label",
    "bucket_members",
    "bucket_keys",
    "layout_snapshot",
    "resolve_target",
    # Mutations
    "insert",
    "remove",
    "move",
    "reorder_bucket",
    "set_active",
    "set_columns",
    "normalize",
]
