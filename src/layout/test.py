"""Unit tests for the layout position algebra."""

import random
from collections import Counter
from datetime import UTC, datetime, timedelta

import pytest

from src.instance import ComponentInstance, ContainerKind, default_footer, new_container

from .lib import (
    ColumnOutOfRange,
    DuplicateInstance,
    IncompleteReorder,
    InstanceNotFound,
    InvalidMove,
    InvalidPosition,
    bucket_keys,
    bucket_members,
    insert,
    layout_snapshot,
    move,
    normalize,
    remove,
    reorder_bucket,
    set_active,
    set_columns,
)


def _inst(instance_id: str, position: str = "content", **kwargs) -> ComponentInstance:
    return ComponentInstance(id=instance_id, type_tag="text", position=position, **kwargs)


def _orders(container, position, column=None):
    return [(i.id, i.order) for i in bucket_members(container, position, column)]


def assert_dense(container):
    """Every bucket's active orders are exactly 1..N, inactive are 0."""
    for key in bucket_keys(container):
        orders = sorted(i.order for i in bucket_members(container, *key))
        assert orders == list(range(1, len(orders) + 1)), (key, orders)
    for instance in container.instances:
        if not instance.is_active:
            assert instance.order == 0


@pytest.fixture
def footer():
    """Empty three-column footer."""
    return new_container(ContainerKind.FOOTER, columns=3)


# =============================================================================
# Insert / remove
# =============================================================================


class TestInsert:
    """Tests for insert."""

    @pytest.mark.unit
    def test_append_and_remove_middle(self, footer):
        """Insert X, Y, Z then remove Y: X=1, Z=2."""
        for name in ("X", "Y", "Z"):
            insert(footer, _inst(name, "column_1"), "column_1")
        assert _orders(footer, "column_1") == [("X", 1), ("Y", 2), ("Z", 3)]
        remove(footer, "Y")
        assert _orders(footer, "column_1") == [("X", 1), ("Z", 2)]

    @pytest.mark.unit
    def test_insert_at_index_shifts(self, footer):
        """Members at or after the index shift by one."""
        for name in ("A", "B", "C"):
            insert(footer, _inst(name, "column_2"), "column_2")
        insert(footer, _inst("N", "column_2"), "column_2", index=2)
        assert [i.id for i in bucket_members(footer, "column_2")] == ["A", "N", "B", "C"]
        assert_dense(footer)

    @pytest.mark.unit
    def test_index_is_clamped(self, footer):
        """Out-of-range indices clamp to the ends of the bucket."""
        insert(footer, _inst("A", "footer_bar"), "footer_bar")
        insert(footer, _inst("B", "footer_bar"), "footer_bar", index=99)
        insert(footer, _inst("C", "footer_bar"), "footer_bar", index=-3)
        assert layout_snapshot(footer)["footer_bar"] == ["C", "A", "B"]

    @pytest.mark.unit
    def test_column_filled_from_position(self, footer):
        """column_<n> positions imply the column."""
        instance = insert(footer, _inst("A", "column_3"), "column_3")
        assert instance.column == 3

    @pytest.mark.unit
    def test_column_out_of_range_leaves_state(self, footer):
        """Inserting into column_4 of a 3-column footer fails cleanly."""
        insert(footer, _inst("A", "column_1"), "column_1")
        before = footer.model_copy(deep=True)
        with pytest.raises(ColumnOutOfRange) as exc:
            insert(footer, _inst("B", "column_4"), "column_4")
        assert str(exc.value) == "column 4 does not exist in a 3-column layout"
        assert footer == before

    @pytest.mark.unit
    def test_position_foreign_to_kind(self, footer):
        """Header regions are not footer positions."""
        with pytest.raises(InvalidPosition):
            insert(footer, _inst("A", "topbar"), "topbar")
        header = new_container(ContainerKind.HEADER)
        with pytest.raises(InvalidPosition):
            insert(header, _inst("A", "column_1"), "column_1")

    @pytest.mark.unit
    def test_non_ascii_column_digit(self, footer):
        """Unicode digits do not name a column."""
        with pytest.raises(InvalidPosition):
            insert(footer, _inst("A", "column_\u00b2"), "column_\u00b2")
        insert(footer, _inst("B", "column_1"), "column_1")
        with pytest.raises(InvalidPosition):
            move(footer, "B", "column_\u00b2")

    @pytest.mark.unit
    def test_column_mismatch(self, footer):
        """An explicit column must agree with a column position."""
        with pytest.raises(InvalidPosition):
            insert(footer, _inst("A", "column_1"), "column_1", column=2)

    @pytest.mark.unit
    def test_duplicate_id(self, footer):
        """Instance ids are unique within a container."""
        insert(footer, _inst("A", "column_1"), "column_1")
        with pytest.raises(DuplicateInstance):
            insert(footer, _inst("A", "column_2"), "column_2")
        assert len(footer.instances) == 1

    @pytest.mark.unit
    def test_remove_missing(self, footer):
        """Removing an unknown id fails."""
        with pytest.raises(InstanceNotFound):
            remove(footer, "ghost")


# =============================================================================
# Move
# =============================================================================


class TestMove:
    """Tests for move."""

    @pytest.mark.unit
    def test_cross_bucket(self):
        """Both buckets stay dense after a cross-bucket move."""
        footer = default_footer()
        logo = footer.instances[0]
        move(footer, logo.id, "column_3", index=2)
        snapshot = layout_snapshot(footer)
        assert snapshot["column_1"] == [footer.instances[1].id]
        assert snapshot["column_3"][1] == logo.id
        assert logo.column == 3
        assert_dense(footer)

    @pytest.mark.unit
    def test_same_bucket_reorder(self, footer):
        """Moving within a bucket renumbers without duplicates."""
        for name in ("A", "B", "C", "D"):
            insert(footer, _inst(name, "column_1"), "column_1")
        move(footer, "D", "column_1", index=1)
        assert layout_snapshot(footer)["column_1"] == ["D", "A", "B", "C"]
        move(footer, "D", "column_1", index=3)
        assert layout_snapshot(footer)["column_1"] == ["A", "B", "D", "C"]
        move(footer, "A", "column_1")
        assert layout_snapshot(footer)["column_1"] == ["B", "D", "C", "A"]
        assert_dense(footer)

    @pytest.mark.unit
    def test_cross_container_rejected(self, footer):
        """Moves naming another container are InvalidMove."""
        insert(footer, _inst("A", "column_1"), "column_1")
        with pytest.raises(InvalidMove):
            move(footer, "A", "column_2", target_container="other")
        move(footer, "A", "column_2", target_container=footer.id)
        assert footer.get("A").column == 2

    @pytest.mark.unit
    def test_invalid_target_leaves_state(self, footer):
        """A failing move changes nothing."""
        insert(footer, _inst("A", "column_1"), "column_1")
        insert(footer, _inst("B", "column_1"), "column_1")
        before = footer.model_copy(deep=True)
        with pytest.raises(ColumnOutOfRange):
            move(footer, "A", "column_5")
        assert footer == before

    @pytest.mark.unit
    def test_move_inactive_stays_unranked(self, footer):
        """Inactive instances are relocated without a rank."""
        insert(footer, _inst("A", "column_1"), "column_1")
        set_active(footer, "A", False)
        move(footer, "A", "column_2")
        instance = footer.get("A")
        assert (instance.column, instance.order, instance.is_active) == (2, 0, False)


# =============================================================================
# Bulk reorder
# =============================================================================


class TestReorderBucket:
    """Tests for reorder_bucket."""

    @pytest.fixture
    def bar(self, footer):
        for name in ("a", "b", "c"):
            insert(footer, _inst(name, "footer_bar"), "footer_bar")
        return footer

    @pytest.mark.unit
    def test_reorder(self, bar):
        """Orders follow the given sequence."""
        reorder_bucket(bar, "footer_bar", None, ["c", "a", "b"])
        assert _orders(bar, "footer_bar") == [("c", 1), ("a", 2), ("b", 3)]

    @pytest.mark.unit
    def test_missing_member(self, bar):
        """Leaving out a member is IncompleteReorder."""
        with pytest.raises(IncompleteReorder) as exc:
            reorder_bucket(bar, "footer_bar", None, ["a", "c"])
        assert exc.value.missing == ["b"]
        assert _orders(bar, "footer_bar") == [("a", 1), ("b", 2), ("c", 3)]

    @pytest.mark.unit
    def test_extra_and_duplicate(self, bar):
        """Foreign or repeated ids are rejected."""
        with pytest.raises(IncompleteReorder):
            reorder_bucket(bar, "footer_bar", None, ["a", "b", "c", "z"])
        with pytest.raises(IncompleteReorder) as exc:
            reorder_bucket(bar, "footer_bar", None, ["a", "b", "c", "a"])
        assert exc.value.duplicated == ["a"]

    @pytest.mark.unit
    def test_bare_string_rejected(self, bar):
        """A string is not split into single-character ids."""
        with pytest.raises(TypeError):
            reorder_bucket(bar, "footer_bar", None, "abc")
        assert _orders(bar, "footer_bar") == [("a", 1), ("b", 2), ("c", 3)]

    @pytest.mark.unit
    def test_idempotent(self, bar):
        """Reordering twice with the same ids equals reordering once."""
        reorder_bucket(bar, "footer_bar", None, ["b", "c", "a"])
        once = bar.model_copy(deep=True)
        reorder_bucket(bar, "footer_bar", None, ["b", "c", "a"])
        assert bar == once

    @pytest.mark.unit
    def test_inactive_members_excluded(self, bar):
        """Inactive instances are not bucket members."""
        set_active(bar, "b", False)
        reorder_bucket(bar, "footer_bar", None, ["c", "a"])
        assert _orders(bar, "footer_bar") == [("c", 1), ("a", 2)]


# =============================================================================
# Activation, columns, normalisation
# =============================================================================


class TestActivation:
    """Tests for set_active."""

    @pytest.mark.unit
    def test_deactivate_unranks(self, footer):
        """Deactivation closes the gap; reactivation appends."""
        for name in ("A", "B", "C"):
            insert(footer, _inst(name, "column_1"), "column_1")
        set_active(footer, "A", False)
        assert _orders(footer, "column_1") == [("B", 1), ("C", 2)]
        assert footer.get("A").order == 0
        set_active(footer, "A", True)
        assert _orders(footer, "column_1") == [("B", 1), ("C", 2), ("A", 3)]

    @pytest.mark.unit
    def test_reactivate_into_removed_column(self, footer):
        """Activation fails if the instance's column no longer exists."""
        insert(footer, _inst("A", "column_3"), "column_3")
        set_active(footer, "A", False)
        set_columns(footer, 2)
        with pytest.raises(ColumnOutOfRange):
            set_active(footer, "A", True)
        assert not footer.get("A").is_active


class TestSetColumns:
    """Tests for set_columns."""

    @pytest.mark.unit
    def test_bounds(self, footer):
        """Column counts must be within 1..max."""
        with pytest.raises(ColumnOutOfRange):
            set_columns(footer, 0)
        with pytest.raises(ColumnOutOfRange):
            set_columns(footer, 7, max_columns=6)
        set_columns(footer, 6, max_columns=6)
        assert footer.columns == 6

    @pytest.mark.unit
    def test_cannot_strand_active(self, footer):
        """Reducing below an occupied column fails."""
        insert(footer, _inst("A", "column_3"), "column_3")
        with pytest.raises(ColumnOutOfRange) as exc:
            set_columns(footer, 2)
        assert "column 3" in str(exc.value)
        assert footer.columns == 3


class TestNormalize:
    """Tests for normalize."""

    @pytest.mark.unit
    def test_ties_broken_by_creation_time(self, footer):
        """Equal orders from an import are ranked by created_at."""
        t0 = datetime(2024, 1, 1, tzinfo=UTC)
        footer.instances = [
            _inst("late", "column_1", column=1, order=1, created_at=t0 + timedelta(days=1)),
            _inst("early", "column_1", column=1, order=1, created_at=t0),
            _inst("gap", "column_1", column=1, order=7, created_at=t0),
            _inst("off", "column_1", column=1, order=3, is_active=False),
            _inst("implied", "column_2", order=4),
        ]
        normalize(footer)
        assert _orders(footer, "column_1") == [("early", 1), ("late", 2), ("gap", 3)]
        assert footer.get("off").order == 0
        assert footer.get("implied").column == 2
        assert footer.get("implied").order == 1
        once = footer.model_copy(deep=True)
        assert normalize(footer) == once


class TestDensityInvariant:
    """Random operation sequences never break density."""

    @pytest.mark.unit
    @pytest.mark.parametrize("seed", range(20))
    def test_random_sequences(self, seed):
        """Any mix of valid and invalid operations leaves buckets dense."""
        rng = random.Random(seed)
        footer = default_footer()
        positions = ["column_1", "column_2", "column_3", "column_4", "footer_bar", "header"]
        counter = 0
        for _ in range(60):
            ids = [i.id for i in footer.instances]
            op = rng.choice(["insert", "remove", "move", "reorder", "toggle"])
            try:
                if op == "insert" or not ids:
                    counter += 1
                    position = rng.choice(positions)
                    insert(footer, _inst(f"n{counter}", position), position, index=rng.randint(0, 5))
                elif op == "remove":
                    remove(footer, rng.choice(ids))
                elif op == "move":
                    move(footer, rng.choice(ids), rng.choice(positions), index=rng.randint(0, 5))
                elif op == "reorder":
                    key = rng.choice(bucket_keys(footer) or [("footer_bar", None)])
                    members = [i.id for i in bucket_members(footer, *key)]
                    rng.shuffle(members)
                    if members and rng.random() < 0.2:
                        members.pop()
                    reorder_bucket(footer, key[0], key[1], members)
                else:
                    target = rng.choice(ids)
                    set_active(footer, target, not footer.get(target).is_active)
            except (ColumnOutOfRange, InvalidPosition, IncompleteReorder):
                pass
            assert_dense(footer)
            assert not [k for k, v in Counter(i.id for i in footer.instances).items() if v > 1]
