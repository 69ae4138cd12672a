"""SQLAlchemy models for the ledgersync database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    UniqueConstraint,
    Index,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


def _now() -> datetime:
    return datetime.now(UTC)


class Linkage(Base):
    """External provider connection ("item")."""

    __tablename__ = "linkages"

    id = Column(Integer, primary_key=True)
    item_id = Column(String, unique=True, nullable=False)
    access_token = Column(String, nullable=False)
    institution_name = Column(String, nullable=True)
    status = Column(String, default="active", nullable=False)
    cursor = Column(String, nullable=True)
    error_message = Column(String, nullable=True)
    last_synced_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)
    updated_at = Column(DateTime, default=_now, onupdate=_now, nullable=False)

    # Relationships
    accounts = relationship("Account", back_populates="linkage")
    sync_log = relationship("SyncLogEntry", back_populates="linkage")


class Account(Base):
    """Financial account model, optionally bound to a linkage."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    institution = Column(String, nullable=True)
    account_type = Column(String, default="checking", nullable=False)
    external_account_id = Column(String, unique=True, nullable=True)
    linkage_id = Column(Integer, ForeignKey("linkages.id"), nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    # Relationships
    linkage = relationship("Linkage", back_populates="accounts")
    transactions = relationship("Transaction", back_populates="account")
    balances = relationship("Balance", back_populates="account")


class Category(Base):
    """Category model carrying its comma-separated keyword rules."""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    category_type = Column(String, default="expense", nullable=False)
    keywords = Column(String, nullable=True)
    priority = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)

    # Relationships
    transactions = relationship("Transaction", back_populates="category")


class Transaction(Base):
    """Transaction model."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    date = Column(Date, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    description = Column(String, nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    type = Column(String, default="expense", nullable=False)
    source = Column(String, default="manual", nullable=False)
    # Sole dedup key for non-manual rows; NULLs do not collide
    fingerprint = Column(String, unique=True, nullable=True)
    # Hash without the provider id; lets a statement upload match a synced row
    content_fingerprint = Column(String, nullable=True)
    external_id = Column(String, unique=True, nullable=True)
    is_pending = Column(Boolean, default=False, nullable=False)
    notes = Column(String, nullable=True)
    user_edited = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)
    updated_at = Column(DateTime, default=_now, onupdate=_now, nullable=False)

    __table_args__ = (
        Index("ix_transactions_date", "date"),
        Index("ix_transactions_account", "account_id"),
        Index("ix_transactions_content_fingerprint", "content_fingerprint"),
    )

    # Relationships
    account = relationship("Account", back_populates="transactions")
    category = relationship("Category", back_populates="transactions")


class Balance(Base):
    """Balance snapshot, one per account and date."""

    __tablename__ = "balances"

    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    date = Column(Date, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    source = Column(String, default="manual", nullable=False)
    updated_at = Column(DateTime, default=_now, onupdate=_now, nullable=False)

    __table_args__ = (UniqueConstraint("account_id", "date", name="uq_balance_account_date"),)

    # Relationships
    account = relationship("Account", back_populates="balances")


class ColumnMapping(Base):
    """Saved CSV column mapping keyed by institution and optional account."""

    __tablename__ = "column_mappings"

    id = Column(Integer, primary_key=True)
    institution = Column(String, nullable=False)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    date_column = Column(String, nullable=False)
    amount_column = Column(String, nullable=True)
    description_column = Column(String, nullable=False)
    debit_column = Column(String, nullable=True)
    credit_column = Column(String, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)
    updated_at = Column(DateTime, default=_now, onupdate=_now, nullable=False)

    __table_args__ = (
        UniqueConstraint("institution", "account_id", name="uq_mapping_institution_account"),
    )


class SyncLogEntry(Base):
    """Append-only audit row for one sync run."""

    __tablename__ = "sync_log"

    id = Column(Integer, primary_key=True)
    linkage_id = Column(Integer, ForeignKey("linkages.id"), nullable=False)
    status = Column(String, nullable=False)
    added = Column(Integer, default=0, nullable=False)
    modified = Column(Integer, default=0, nullable=False)
    removed = Column(Integer, default=0, nullable=False)
    error_message = Column(String, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    # Relationships
    linkage = relationship("Linkage", back_populates="sync_log")


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        # The background sync worker uses the handle from its own thread
        connect_args["check_same_thread"] = False
    engine = create_engine(database_url, echo=False, connect_args=connect_args)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
