"""SQLAlchemy Core table definitions for the relational backend.

Column names follow the library's relational schema (PascalCase). Dates
are stored as ``YYYY-MM-DD HH:MM:SS`` text so every driver round-trips them
identically. There are no foreign-key constraints: an author may be
deleted while books still reference it.
"""

from __future__ import annotations

from sqlalchemy import Column, Index, Integer, MetaData, Table, Text

metadata = MetaData()

authors = Table(
    "Authors",
    metadata,
    Column("AuthorId", Text, primary_key=True),
    Column("Name", Text, nullable=False),
)

users = Table(
    "Users",
    metadata,
    Column("UserId", Text, primary_key=True),
    Column("Name", Text, nullable=False),
)

library_items = Table(
    "LibraryItems",
    metadata,
    Column("ItemId", Text, primary_key=True),
    Column("ItemType", Text, nullable=False),
    Column("Title", Text, nullable=False),
    Column("AuthorId", Text, nullable=True),
    Column("ISBN", Text, nullable=True),
    Column("PublicationYear", Integer, nullable=False),
    Column("AvailabilityStatus", Integer, nullable=False, default=0, server_default="0"),
)

loan_records = Table(
    "LoanRecords",
    metadata,
    Column("LoanRecordId", Text, primary_key=True),
    Column("ItemId", Text, nullable=False),
    Column("UserId", Text, nullable=False),
    Column("LoanDate", Text, nullable=False),
    Column("DueDate", Text, nullable=False),
    Column("ReturnDate", Text, nullable=True),
)

# ---------------------------------------------------------------------------
# Indexes for the loan lookups
# ---------------------------------------------------------------------------

Index("ix_loan_records_item", loan_records.c.ItemId)
Index("ix_loan_records_user", loan_records.c.UserId)
