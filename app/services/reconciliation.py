"""Turn raw inventory transaction log rows into what people expect to read.

The stock-mutation paths can log more than one row for a single logical
change (a purchase plus a generic adjustment, a consumption plus the
decrease that clamped stock at zero) and an edited purchase leaves a
reversal/re-purchase pair behind. The helpers here infer the logical history
from those physical rows:

* ``deduplicate_transactions`` collapses near-identical rows logged within a
  short window of each other.
* ``consolidate_purchase_updates`` folds reversal + re-purchase pairs into a
  single "updated" purchase entry.
* ``with_running_balance`` rebuilds the stock level after each row by
  walking back from the current stock.

This is a best-effort reading of the log, not a ledger: a logical-event id
assigned at write time would make it exact. The first two helpers fail open
and hand back the rows they were given, newest first, if anything goes wrong.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence, TypeVar

from ..core.config import settings
from ..core.dates import parse_iso
from ..schemas.inventory import TransactionLogOut

logger = logging.getLogger(__name__)

Entry = TypeVar("Entry", bound=TransactionLogOut)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _timestamp(entry: TransactionLogOut) -> datetime:
    return parse_iso(entry.transaction_date) or _EPOCH


def _order_key(entry: TransactionLogOut) -> tuple[datetime, int]:
    # Rows logged in the same second keep insertion order.
    return _timestamp(entry), entry.id


def _type_has(entry: TransactionLogOut, needle: str) -> bool:
    return needle in (entry.transaction_type or "").lower()


def _is_manual(entry: TransactionLogOut) -> bool:
    return not entry.reference_type or _type_has(entry, "manual") or _type_has(entry, "adjustment")


def _close(a: float, b: float, tolerance: float) -> bool:
    return abs(a - b) < tolerance


def _newest_first(entries: Iterable[Entry]) -> list[Entry]:
    return sorted(entries, key=_order_key, reverse=True)


def _latest(entries: Sequence[Entry]) -> Entry:
    return max(entries, key=_order_key)


def _fallback(entries: Sequence[Entry]) -> list[Entry]:
    """The input untouched, newest first when the timestamps allow it."""

    try:
        return _newest_first(entries)
    except (TypeError, ValueError):
        return list(entries)


def is_overconsumption_artifact(entry: TransactionLogOut, tolerance: Optional[float] = None) -> bool:
    """A decrease that emptied stock by exactly what was left.

    These rows are written alongside a consumption that asked for more than
    was available and carry no information of their own.
    """

    tol = settings.DEDUP_TOLERANCE if tolerance is None else tolerance
    return (
        _type_has(entry, "decrease")
        and entry.new_quantity == 0
        and _close(entry.previous_quantity, abs(entry.quantity), tol)
    )


def group_near_duplicates(
    entries: Iterable[Entry],
    *,
    window_seconds: Optional[float] = None,
    tolerance: Optional[float] = None,
) -> list[list[Entry]]:
    """Group rows with matching quantities logged close to each other.

    Rows are visited oldest-first. A row joins the first group whose most
    recent member has the same ``quantity``, ``previous_quantity`` and
    ``new_quantity`` (within ``tolerance``) and was logged less than
    ``window_seconds`` before it; otherwise it starts a new group. The window
    slides with each new member, so a chain of rows each less than a window
    apart forms a single group, and matching groups start at least a window
    after the previous one ends.
    """

    window = settings.DEDUP_WINDOW_SECONDS if window_seconds is None else window_seconds
    tol = settings.DEDUP_TOLERANCE if tolerance is None else tolerance

    groups: list[list[Entry]] = []
    for entry in sorted(entries, key=_order_key):
        when = _timestamp(entry)
        for group in groups:
            last = group[-1]
            if (
                _close(last.quantity, entry.quantity, tol)
                and _close(last.previous_quantity, entry.previous_quantity, tol)
                and _close(last.new_quantity, entry.new_quantity, tol)
                and (when - _timestamp(last)).total_seconds() < window
            ):
                group.append(entry)
                break
        else:
            groups.append([entry])
    return groups


def resolve_group(group: Sequence[Entry]) -> Entry:
    """Pick the one row that best describes a group of near-duplicates."""

    if len(group) == 1:
        return group[0]

    purchases = [entry for entry in group if _type_has(entry, "purchase")]
    if purchases and any(_is_manual(entry) for entry in group):
        return _latest(purchases)

    consumptions = [entry for entry in group if _type_has(entry, "consumption")]
    has_decrease = any(_type_has(entry, "decrease") for entry in group)
    if consumptions and has_decrease:
        return _latest(consumptions)

    if (consumptions or has_decrease) and any(entry.new_quantity == 0 for entry in group):
        if consumptions:
            return _latest(consumptions)
        return max(group, key=lambda entry: abs(entry.quantity))

    return _latest(group)


def deduplicate_transactions(
    entries: Sequence[Entry],
    *,
    window_seconds: Optional[float] = None,
    tolerance: Optional[float] = None,
) -> list[Entry]:
    """Collapse physical log rows into logical transactions, newest first."""

    try:
        tol = settings.DEDUP_TOLERANCE if tolerance is None else tolerance
        kept = [entry for entry in entries if not is_overconsumption_artifact(entry, tol)]
        groups = group_near_duplicates(kept, window_seconds=window_seconds, tolerance=tol)
        result = _newest_first(resolve_group(group) for group in groups)
    except Exception:
        logger.exception(
            "reconciliation.dedup_failed",
            extra={"extra_data": {"entry_count": len(entries)}},
        )
        return _fallback(entries)
    if len(result) != len(entries):
        logger.debug(
            "reconciliation.dedup",
            extra={"extra_data": {"before": len(entries), "after": len(result)}},
        )
    return result


def _is_purchase_linked(entry: TransactionLogOut) -> bool:
    return bool(entry.reference_id) and (entry.reference_type or "").lower() == "purchase"


def consolidate_purchase_updates(entries: Sequence[Entry]) -> list[Entry]:
    """Fold each edited purchase's reversal/re-purchase rows into one entry.

    Rows are grouped by ``reference_id``. A group holding both reversals and
    purchases becomes its latest purchase flagged ``is_updated`` with the
    first purchase's date and the number of revisions. Groups without a
    reversal, unmatched reversals and rows not tied to a purchase pass
    through unchanged.
    """

    try:
        output: list[Entry] = []
        groups: dict[str, list[Entry]] = {}
        for entry in entries:
            if not _is_purchase_linked(entry):
                output.append(entry)
                continue
            groups.setdefault(str(entry.reference_id), []).append(entry)

        for group in groups.values():
            reversals = [entry for entry in group if _type_has(entry, "reversal")]
            purchases = sorted(
                (entry for entry in group if not _type_has(entry, "reversal")),
                key=_order_key,
            )
            if reversals and purchases:
                output.append(
                    purchases[-1].model_copy(
                        update={
                            "is_updated": True,
                            "original_transaction_date": purchases[0].transaction_date,
                            "update_count": max(0, len(purchases) - 1),
                        }
                    )
                )
            else:
                output.extend(purchases or reversals)
        return _newest_first(output)
    except Exception:
        logger.exception(
            "reconciliation.consolidate_failed",
            extra={"extra_data": {"entry_count": len(entries)}},
        )
        return _fallback(entries)


def with_running_balance(entries: Iterable[Entry], current_stock: float) -> list[Entry]:
    """Attach ``balance_after`` to each row, oldest first.

    The latest row's balance is ``current_stock``; each earlier balance is
    the later one minus the later row's quantity. Rows filtered out upstream
    shift every earlier balance by their quantity.
    """

    ordered = sorted(entries, key=_order_key)
    balanced: list[Entry] = list(ordered)
    running = float(current_stock or 0.0)
    for index in range(len(ordered) - 1, -1, -1):
        entry = ordered[index]
        balanced[index] = entry.model_copy(update={"balance_after": running})
        running -= entry.quantity
    return balanced


__all__ = [
    "consolidate_purchase_updates",
    "deduplicate_transactions",
    "group_near_duplicates",
    "is_overconsumption_artifact",
    "resolve_group",
    "with_running_balance",
]
