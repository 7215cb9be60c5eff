"""SQLAlchemy ORM models for loans and ledger entries"""

import uuid
from sqlalchemy import Column, Boolean, Date, DateTime, Enum, ForeignKey, Index, Numeric, Text, Uuid
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

from finance_tracker.domain.models import EntryKind, InterestType, LoanRole, OriginKind, ReminderStage
from finance_tracker.infrastructure.database.codec import EncryptedDecimal, EncryptedText

Base = declarative_base()


def _enum(enum_cls, name: str) -> Enum:
    # Persist enum values ("lent"), not member names ("LENT")
    return Enum(enum_cls, name=name, values_callable=lambda members: [m.value for m in members])


class LoanRecord(Base):
    """Peer-to-peer loan owned by a single user"""

    __tablename__ = "loan"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(Text, nullable=False, index=True)
    counterparty_name = Column(EncryptedText, nullable=False)
    counterparty_contact = Column(EncryptedText, nullable=True)
    role = Column(_enum(LoanRole, "loan_role"), nullable=False)
    principal = Column(Numeric(14, 2), nullable=False)
    interest_rate = Column(EncryptedDecimal, nullable=True)
    interest_type = Column(_enum(InterestType, "interest_type"), nullable=False, default=InterestType.SIMPLE)
    interest_amount = Column(EncryptedDecimal, nullable=True)
    total_amount = Column(EncryptedDecimal, nullable=True)
    start_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    settled = Column(Boolean, nullable=False, default=False)
    last_reminder_stage = Column(
        _enum(ReminderStage, "reminder_stage"), nullable=False, default=ReminderStage.NONE
    )
    note = Column(EncryptedText, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())


class LedgerEntryRecord(Base):
    """Single income/expense/investment entry"""

    __tablename__ = "ledger_entry"
    __table_args__ = (Index("ix_ledger_entry_owner_occurred", "owner_id", "occurred_at"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(Text, nullable=False, index=True)
    kind = Column(_enum(EntryKind, "entry_kind"), nullable=False)
    amount = Column(EncryptedDecimal, nullable=False)
    category = Column(EncryptedText, nullable=False)
    payment_method = Column(Text, nullable=False)
    note = Column(EncryptedText, nullable=True)
    origin = Column(_enum(OriginKind, "entry_origin"), nullable=False, default=OriginKind.MANUAL)
    loan_id = Column(
        Uuid(as_uuid=True), ForeignKey("loan.id", ondelete="CASCADE"), nullable=True, index=True
    )
    occurred_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
