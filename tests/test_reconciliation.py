import os
import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from app.schemas.inventory import TransactionLogOut
from app.services import reconciliation
from app.services.reconciliation import (
    consolidate_purchase_updates,
    deduplicate_transactions,
    group_near_duplicates,
    is_overconsumption_artifact,
    with_running_balance,
)

T0 = datetime(2024, 5, 1, 9, 0, 0)


def _at(seconds: float) -> str:
    return (T0 + timedelta(seconds=seconds)).isoformat(timespec="seconds") + "Z"


def _entry(
    entry_id,
    transaction_type,
    quantity,
    previous,
    new,
    seconds=0,
    reference_type=None,
    reference_id=None,
):
    return TransactionLogOut(
        id=entry_id,
        material_id=1,
        transaction_type=transaction_type,
        quantity=quantity,
        previous_quantity=previous,
        new_quantity=new,
        transaction_date=_at(seconds),
        reference_type=reference_type,
        reference_id=reference_id,
    )


def test_consumption_wins_over_matching_decrease():
    entries = [
        _entry(1, "consumption", -5, 20, 15, 0, "Order", "7"),
        _entry(2, "decrease", -5, 20, 15, 10),
    ]

    result = deduplicate_transactions(entries)

    assert [entry.id for entry in result] == [1]


def test_purchase_wins_over_manual_duplicate():
    entries = [
        _entry(1, "adjustment", 12, 3, 15, 0),
        _entry(2, "purchase", 12, 3, 15, 2, "Purchase", "4"),
    ]

    assert [entry.id for entry in deduplicate_transactions(entries)] == [2]


def test_synthetic_decrease_to_zero_is_dropped():
    artifact = _entry(1, "manual-decrease", -8, 8, 0, 0)
    kept = _entry(2, "consumption", -3, 11, 8, -30, "Order", "1")

    assert is_overconsumption_artifact(artifact)
    assert not is_overconsumption_artifact(kept)
    assert [entry.id for entry in deduplicate_transactions([artifact, kept])] == [2]


def test_zero_balance_group_prefers_consumption():
    entries = [
        _entry(1, "consumption", -4, 4, 0, 0, "Order", "3"),
        _entry(2, "consumption", -4, 4, 0, 5, "Order", "3"),
    ]

    assert [entry.id for entry in deduplicate_transactions(entries)] == [2]


def test_plain_duplicates_keep_most_recent():
    entries = [
        _entry(1, "transfer", 2, 10, 12, 0),
        _entry(2, "transfer", 2, 10, 12, 30),
        _entry(3, "transfer", 2, 10, 12, 45),
    ]

    assert [entry.id for entry in deduplicate_transactions(entries)] == [3]


def test_window_is_strict():
    entries = [
        _entry(1, "transfer", 2, 10, 12, 0),
        _entry(2, "transfer", 2, 10, 12, 60),
    ]

    groups = group_near_duplicates(entries)

    assert [[entry.id for entry in group] for group in groups] == [[1], [2]]


def test_window_slides_with_each_chained_row():
    entries = [
        _entry(1, "transfer", 2, 10, 12, 0),
        _entry(2, "transfer", 2, 10, 12, 50),
        _entry(3, "transfer", 2, 10, 12, 70),
    ]

    once = deduplicate_transactions(entries)
    twice = deduplicate_transactions(once)

    assert [entry.id for entry in once] == [3]
    assert [entry.id for entry in twice] == [3]


def test_separate_chains_stay_separate_on_a_second_pass():
    entries = [
        _entry(1, "transfer", 2, 10, 12, 0),
        _entry(2, "transfer", 2, 10, 12, 50),
        _entry(3, "transfer", 2, 10, 12, 110),
        _entry(4, "transfer", 2, 10, 12, 115),
    ]

    once = deduplicate_transactions(entries)
    twice = deduplicate_transactions(once)

    assert [entry.id for entry in once] == [4, 2]
    assert [entry.id for entry in twice] == [4, 2]



def test_identical_rows_within_window_collapse_to_one():
    entries = [
        _entry(index, kind, -6, 30, 24, index * 7, ref, "9" if ref else None)
        for index, (kind, ref) in enumerate(
            [("consumption", "Order"), ("decrease", None), ("manual-decrease", None), ("consumption", "Order")],
            start=1,
        )
    ]

    result = deduplicate_transactions(entries)

    assert len(result) == 1
    assert result[0].transaction_type == "consumption"


def test_output_is_newest_first_and_distinct_rows_survive():
    entries = [
        _entry(1, "purchase", 50, 0, 50, 0, "Purchase", "1"),
        _entry(2, "consumption", -10, 50, 40, 3600, "Order", "1"),
        _entry(3, "manual-increase", 5, 40, 45, 7200),
    ]

    result = deduplicate_transactions(entries)

    assert [entry.id for entry in result] == [3, 2, 1]


def test_deduplication_is_idempotent():
    entries = [
        _entry(1, "purchase", 50, 0, 50, 0, "Purchase", "1"),
        _entry(2, "adjustment", 50, 0, 50, 1),
        _entry(3, "consumption", -10, 50, 40, 600, "Order", "2"),
        _entry(4, "decrease", -10, 50, 40, 605),
        _entry(5, "manual-decrease", -40, 40, 0, 1200),
        _entry(6, "consumption", -40, 40, 0, 1201, "Order", "2"),
    ]

    once = deduplicate_transactions(entries)
    twice = deduplicate_transactions(once)

    assert [entry.id for entry in twice] == [entry.id for entry in once]


def test_deduplication_fails_open(monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("broken grouping")

    monkeypatch.setattr(reconciliation, "group_near_duplicates", boom)
    entries = [_entry(1, "transfer", 1, 0, 1, 0), _entry(2, "transfer", 1, 0, 1, 1)]

    result = deduplicate_transactions(entries)

    assert [entry.id for entry in result] == [2, 1]


def test_consolidation_fails_open_newest_first(monkeypatch):
    def boom(entry):
        raise RuntimeError("broken reference check")

    monkeypatch.setattr(reconciliation, "_is_purchase_linked", boom)
    entries = [
        _entry(1, "purchase", 10, 0, 10, 0, "Purchase", "5"),
        _entry(2, "purchase-reversal", -10, 10, 0, 60, "Purchase", "5"),
        _entry(3, "purchase", 12, 0, 12, 61, "Purchase", "5"),
    ]

    result = consolidate_purchase_updates(entries)

    assert [entry.id for entry in result] == [3, 2, 1]
    assert not any(entry.is_updated for entry in result)


def test_edited_purchase_collapses_to_latest_revision():
    entries = [
        _entry(1, "purchase", 10, 0, 10, 0, "Purchase", "42"),
        _entry(2, "purchase-reversal", -10, 10, 0, 3600, "Purchase", "42"),
        _entry(3, "purchase", 12, 0, 12, 3601, "Purchase", "42"),
    ]

    result = consolidate_purchase_updates(entries)

    assert len(result) == 1
    merged = result[0]
    assert merged.id == 3
    assert merged.is_updated is True
    assert merged.original_transaction_date == entries[0].transaction_date
    assert merged.update_count == 1


def test_untouched_purchases_and_other_rows_pass_through():
    entries = [
        _entry(1, "purchase", 10, 0, 10, 0, "Purchase", "1"),
        _entry(2, "purchase", 5, 10, 15, 10, "Purchase", "2"),
        _entry(3, "consumption", -3, 15, 12, 20, "Order", "1"),
        _entry(4, "manual-increase", 1, 12, 13, 30),
        _entry(5, "purchase", 2, 13, 15, 40, "Purchase", None),
    ]

    result = consolidate_purchase_updates(entries)

    assert [entry.id for entry in result] == [5, 4, 3, 2, 1]
    assert not any(entry.is_updated for entry in result)


def test_unmatched_reversal_passes_through():
    entries = [_entry(1, "purchase-reversal", -10, 10, 0, 0, "Purchase", "8")]

    assert [entry.id for entry in consolidate_purchase_updates(entries)] == [1]


def test_running_balance_ends_at_current_stock():
    entries = [
        _entry(3, "consumption", -4, 16, 12, 200),
        _entry(1, "purchase", 10, 0, 10, 0),
        _entry(2, "manual-increase", 6, 10, 16, 100),
    ]

    result = with_running_balance(entries, current_stock=12)

    assert [entry.id for entry in result] == [1, 2, 3]
    assert [entry.balance_after for entry in result] == pytest.approx([10, 16, 12])
    assert result[-1].balance_after == 12


def test_running_balance_shifts_when_rows_are_missing():
    entries = [
        _entry(1, "purchase", 10, 0, 10, 0),
        _entry(3, "consumption", -4, 16, 12, 200),
    ]

    result = with_running_balance(entries, current_stock=12)

    # The missing +6 row leaves the earlier balance short by six.
    assert [entry.balance_after for entry in result] == pytest.approx([16, 12])


def test_running_balance_of_nothing_is_empty():
    assert with_running_balance([], current_stock=5) == []
