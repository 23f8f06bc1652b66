"""Catalog tables."""

from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Integer, MetaData, Numeric, SmallInteger, String, Table, Text

metadata = MetaData()

products = Table(
    "products",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("external_id", String(255), nullable=False, unique=True),
    Column("category_id", Integer, nullable=False),
    Column("name", Text, nullable=False),
    Column("price", Numeric(12, 2), nullable=False),
    Column("old_price", Numeric(12, 2)),
    Column("currency", String(3)),
    Column("available", SmallInteger, index=True),
    Column("description", Text),
    Column("renewed_at", DateTime),
    Column("needs_renew", Boolean, nullable=False, default=False),
)

timestamps = Table(
    "timestamps",
    metadata,
    Column("event", String(64), primary_key=True),
    Column("event_date", DateTime, nullable=False),
)

SYNC_EVENT = "feed_sync"
