"""Tiny home-grown migration helpers for SQLite databases."""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

# Simple, idempotent migrations for SQLite.
# We only ADD columns and indexes. No destructive column drops.

ADDED_COLUMNS: dict[str, dict[str, str]] = {
    "inventory": {
        "alt_unit": "TEXT",
        "conversion_rate": "FLOAT",
        "reorder_level": "FLOAT",
        "supplier_id": "INTEGER",
    },
    "inventory_transaction_log": {
        "reference_number": "TEXT",
        "created_at": "TEXT",
        "deleted_at": "TEXT",
    },
    "purchase_items": {
        "transport_share": "FLOAT DEFAULT 0 NOT NULL",
        "actual_meter": "FLOAT",
    },
    "purchases": {
        "supplier_id": "INTEGER",
    },
    "orders": {
        "company_id": "INTEGER",
    },
    "order_dispatches": {
        "tracking_number": "TEXT",
    },
}

INDEXES: tuple[tuple[str, str, tuple[str, ...]], ...] = (
    ("inventory_transaction_log", "ix_itl_material_date", ("material_id", "transaction_date")),
    ("inventory_transaction_log", "ix_itl_reference", ("reference_type", "reference_id")),
    ("purchases", "ix_purchases_status_date", ("status", "purchase_date")),
    ("orders", "ix_orders_status_date", ("status", "order_date")),
    ("purchases", "ix_purchases_supplier", ("supplier_id",)),
    ("orders", "ix_orders_company", ("company_id",)),
)


def _table_columns(engine: Engine, table: str) -> list[dict[str, object]]:
    """Fetch SQLite's description of a table so we know what columns exist."""

    with engine.connect() as conn:
        return conn.execute(text(f"PRAGMA table_info({table})")).mappings().all()


def _column_names(engine: Engine, table: str) -> set[str]:
    return {record["name"] for record in _table_columns(engine, table)}


def _add_column_sqlite(engine: Engine, table: str, col_def: str) -> None:
    """ALTER TABLE ADD COLUMN helper."""
    with engine.begin() as conn:
        conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {col_def}"))


def _create_index_if_not_exists(engine: Engine, table: str, name: str, cols: Iterable[str], unique: bool = False) -> None:
    cols_sql = ", ".join(cols)
    unique_sql = "UNIQUE " if unique else ""
    with engine.begin() as conn:
        conn.execute(text(f"CREATE {unique_sql}INDEX IF NOT EXISTS {name} ON {table} ({cols_sql})"))


def run_migrations(engine: Engine) -> None:
    """Bring an existing SQLite schema up to date with the models."""

    if engine.dialect.name != "sqlite":
        return

    for table, needed in ADDED_COLUMNS.items():
        existing = _column_names(engine, table)
        if not existing:
            # Table absent; Base.metadata.create_all builds it fresh.
            continue
        for name, dtype in needed.items():
            if name not in existing:
                _add_column_sqlite(engine, table, f"{name} {dtype}")
                logger.info("migration.column_added", extra={"extra_data": {"table": table, "column": name}})

    for table, name, cols in INDEXES:
        if _column_names(engine, table):
            _create_index_if_not_exists(engine, table, name, cols)


__all__ = ["run_migrations"]
