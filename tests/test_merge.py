"""Tests for the reconciliation functions in wishbridge.merge."""

from wishbridge import SORTERS
from wishbridge.merge import (
    dedupe,
    find_new,
    merge,
    sort_by_newest,
    sort_by_oldest,
    sort_by_price_high_to_low,
    sort_by_price_low_to_high,
    sort_by_title,
)
from wishbridge.models import Image, make_key

from tests.conftest import make_item, priced


class TestItemKey:
    def test_key_uses_product_and_variant(self) -> None:
        assert make_item("p1", variant_id="v1").key == ("p1", "v1")

    def test_missing_variant_uses_default(self) -> None:
        assert make_item("p1").key == ("p1", "default")
        assert make_key("p1") == make_key("p1", None)

    def test_variants_of_same_product_differ(self) -> None:
        assert make_item("p1", variant_id="v1").key != make_item("p1", variant_id="v2").key


class TestMerge:
    def test_returns_union_of_items(self) -> None:
        result = merge([make_item("p1")], [make_item("p2")])
        assert {it.product_id for it in result} == {"p1", "p2"}

    def test_same_key_yields_single_entry(self) -> None:
        local = [make_item("p1", variant_id="v1")]
        remote = [make_item("p1", variant_id="v1")]
        assert len(merge(local, remote)) == 1

    def test_different_variants_are_kept_apart(self) -> None:
        local = [make_item("p1", variant_id="v1")]
        remote = [make_item("p1", variant_id="v2")]
        assert len(merge(local, remote)) == 2

    def test_earlier_local_timestamp_wins_but_remote_fields_stay(self) -> None:
        """Earliest addedAt survives; descriptive fields come from the remote entry."""
        local = [make_item("p1", added_at="2024-01-10T00:00:00Z", title="Guest title")]
        remote = [
            make_item(
                "p1",
                added_at="2024-01-15T00:00:00Z",
                title="Account title",
                image=Image(url="https://cdn.example/p1.png"),
            )
        ]

        (merged,) = merge(local, remote)
        assert merged.added_at == "2024-01-10T00:00:00Z"
        assert merged.title == "Account title"
        assert merged.image == Image(url="https://cdn.example/p1.png")

    def test_later_local_timestamp_keeps_remote_entry(self) -> None:
        remote_item = make_item("p1", added_at="2024-01-10T00:00:00Z", title="Account title")
        local = [make_item("p1", added_at="2024-01-20T00:00:00Z", title="Guest title")]
        assert merge(local, [remote_item]) == [remote_item]

    def test_tie_keeps_remote_entry_unchanged(self) -> None:
        remote_item = make_item("p1", added_at="2024-01-10T00:00:00Z", title="Account title")
        local = [make_item("p1", added_at="2024-01-10T00:00:00Z", title="Guest title")]
        assert merge(local, [remote_item]) == [remote_item]

    def test_timestamps_compared_as_instants_not_strings(self) -> None:
        # 09:00+02:00 is 07:00Z, earlier than 08:00Z
        local = [make_item("p1", added_at="2024-01-10T09:00:00+02:00")]
        remote = [make_item("p1", added_at="2024-01-10T08:00:00Z")]
        (merged,) = merge(local, remote)
        assert merged.added_at == "2024-01-10T09:00:00+02:00"

    def test_sorted_newest_first(self) -> None:
        local = [make_item("p1", added_at="2024-01-10T00:00:00Z")]
        remote = [
            make_item("p1", added_at="2024-01-15T00:00:00Z"),
            make_item("p2", added_at="2024-01-01T00:00:00Z"),
        ]

        result = merge(local, remote)
        assert [it.product_id for it in result] == ["p1", "p2"]
        assert result[0].added_at == "2024-01-10T00:00:00Z"

    def test_empty_inputs(self) -> None:
        assert merge([], []) == []
        assert merge([make_item("p1")], []) == [make_item("p1")]
        assert merge([], [make_item("p2")]) == [make_item("p2")]

    def test_inputs_not_mutated(self) -> None:
        local = [make_item("p1", added_at="2024-01-10T00:00:00Z")]
        remote = [make_item("p1", added_at="2024-01-15T00:00:00Z"), make_item("p2")]
        local_before, remote_before = list(local), list(remote)
        merge(local, remote)
        assert local == local_before
        assert remote == remote_before


class TestMergeProperties:
    local = [
        make_item("p1", added_at="2024-01-10T00:00:00Z"),
        make_item("p2", added_at="2024-02-01T00:00:00Z"),
        make_item("p3", variant_id="a", added_at="2024-03-01T00:00:00Z"),
    ]
    remote = [
        make_item("p1", added_at="2024-01-15T00:00:00Z"),
        make_item("p2", added_at="2024-01-20T00:00:00Z"),
        make_item("p3", variant_id="b", added_at="2024-01-05T00:00:00Z"),
        make_item("p4", added_at="2023-12-31T00:00:00Z"),
    ]

    def test_no_duplicate_keys(self) -> None:
        keys = [it.key for it in merge(self.local, self.remote)]
        assert len(keys) == len(set(keys))

    def test_size_is_union_of_keys(self) -> None:
        expected = {it.key for it in self.local} | {it.key for it in self.remote}
        assert len(merge(self.local, self.remote)) == len(expected)

    def test_shared_keys_take_earliest_timestamp(self) -> None:
        merged = {it.key: it.added_at for it in merge(self.local, self.remote)}
        assert merged[("p1", "default")] == "2024-01-10T00:00:00Z"
        assert merged[("p2", "default")] == "2024-01-20T00:00:00Z"

    def test_remerging_changes_nothing(self) -> None:
        once = merge(self.local, self.remote)
        twice = merge(self.local, once)
        assert set(twice) == set(once)


class TestDedupe:
    def test_keeps_first_occurrence(self) -> None:
        first = make_item("p1", title="first")
        second = make_item("p1", title="second")
        assert dedupe([first, make_item("p2"), second]) == [first, make_item("p2")]

    def test_noop_on_deduplicated_input(self) -> None:
        items = [make_item("p1"), make_item("p2"), make_item("p1", variant_id="v")]
        assert dedupe(items) == items
        assert dedupe(dedupe(items)) == items


class TestFindNew:
    def test_returns_items_absent_before(self) -> None:
        before = [make_item("p1")]
        after = [make_item("p1"), make_item("p2"), make_item("p3")]
        assert [it.product_id for it in find_new(before, after)] == ["p2", "p3"]

    def test_matches_on_key_not_fields(self) -> None:
        before = [make_item("p1", title="old")]
        after = [make_item("p1", title="new")]
        assert find_new(before, after) == []


class TestSortViews:
    def test_newest_and_oldest(self) -> None:
        items = [
            make_item("a", added_at="2024-01-02T00:00:00Z"),
            make_item("b", added_at="2024-01-03T00:00:00Z"),
            make_item("c", added_at="2024-01-01T00:00:00Z"),
        ]
        assert [it.product_id for it in sort_by_newest(items)] == ["b", "a", "c"]
        assert [it.product_id for it in sort_by_oldest(items)] == ["c", "a", "b"]

    def test_title_ignores_case(self) -> None:
        items = [
            make_item("1", title="banana"),
            make_item("2", title="Apple"),
            make_item("3", title="cherry"),
        ]
        assert [it.title for it in sort_by_title(items)] == ["Apple", "banana", "cherry"]

    def test_title_files_accented_letters_with_their_base_letter(self) -> None:
        items = [
            make_item("1", title="Zebra"),
            make_item("2", title="\u00c9clair"),
            make_item("3", title="apple"),
        ]
        assert [it.title for it in sort_by_title(items)] == ["apple", "\u00c9clair", "Zebra"]

    def test_title_ties_broken_by_raw_title(self) -> None:
        items = [make_item("1", title="cafe\u0301"), make_item("2", title="Cafe"), make_item("3", title="cafe")]
        assert [it.product_id for it in sort_by_title(items)] == ["2", "3", "1"]

    def test_price_low_to_high_puts_unpriced_last(self) -> None:
        items = [make_item("none"), priced("ten", "10.00"), priced("two", "2.50")]
        assert [it.product_id for it in sort_by_price_low_to_high(items)] == ["two", "ten", "none"]

    def test_price_high_to_low_puts_unpriced_last(self) -> None:
        items = [make_item("none"), priced("two", "2.50"), priced("ten", "10.00")]
        assert [it.product_id for it in sort_by_price_high_to_low(items)] == ["ten", "two", "none"]

    def test_unpriced_after_free_items_in_both_directions(self) -> None:
        items = [make_item("none"), priced("free", "0.00")]
        for sorter in (sort_by_price_low_to_high, sort_by_price_high_to_low):
            assert [it.product_id for it in sorter(items)] == ["free", "none"]

    def test_amounts_compared_numerically(self) -> None:
        items = [priced("big", "100.00"), priced("small", "9.99")]
        assert [it.product_id for it in sort_by_price_low_to_high(items)] == ["small", "big"]

    def test_sorts_do_not_reorder_input(self) -> None:
        items = [priced("b", "5"), priced("a", "1")]
        snapshot = list(items)
        for sorter in SORTERS.values():
            sorter(items)
        assert items == snapshot

    def test_sorts_are_stable(self) -> None:
        items = [priced("first", "5.00"), priced("second", "5.00")]
        assert [it.product_id for it in sort_by_price_low_to_high(items)] == ["first", "second"]
        assert [it.product_id for it in sort_by_price_high_to_low(items)] == ["first", "second"]
