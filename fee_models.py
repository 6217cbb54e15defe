"""
Fee & Fine Ledger Models
Ledger entries charged to students and the admin-managed payment categories
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, ForeignKey, Numeric, Enum, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from models import Base
import enum


# ===== ENUMS =====

class EntryTypeEnum(enum.Enum):
    FINE = "fine"
    FEE = "fee"


# ===== LEDGER ENTRY MODEL =====

class LedgerEntry(Base):
    """A single fine or fee recorded against a student"""
    __tablename__ = 'ledger_entries'
    __table_args__ = (
        Index('idx_ledger_student', 'student_id'),
        Index('idx_ledger_date', 'date'),
        Index('idx_ledger_receipt', 'receipt_number'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(Integer, ForeignKey('students.id', ondelete='CASCADE'), nullable=False)

    amount = Column(Numeric(10, 2), nullable=False)
    reason = Column(String(500), default='')
    entry_type = Column(Enum(EntryTypeEnum, values_callable=lambda obj: [e.value for e in obj]),
                        default=EntryTypeEnum.FINE, nullable=False)
    category = Column(String(100), default='Others')
    receipt_number = Column(String(30), nullable=False)

    # The day the charge applies to; defaults to creation time
    date = Column(DateTime, default=datetime.utcnow, nullable=False)
    is_paid = Column(Boolean, default=False)
    paid_date = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    student = relationship("Student", back_populates="fines")

    def to_dict(self):
        return {
            'id': self.id,
            'amount': float(self.amount),
            'reason': self.reason or '',
            'type': self.entry_type.value if self.entry_type else None,
            'category': self.category,
            'receipt_number': self.receipt_number,
            'date': self.date.isoformat() if self.date else None,
            'is_paid': bool(self.is_paid),
            'paid_date': self.paid_date.isoformat() if self.paid_date else None,
        }

    def __repr__(self):
        return f"<LedgerEntry {self.receipt_number} {self.amount}>"


# ===== PAYMENT CATEGORY MODEL =====

class PaymentCategory(Base):
    """Categories like Late Fine, Library Fine, Committee Fees"""
    __tablename__ = 'payment_categories'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False)
    category_type = Column(Enum(EntryTypeEnum, values_callable=lambda obj: [e.value for e in obj]),
                           default=EntryTypeEnum.FINE, nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'type': self.category_type.value if self.category_type else None,
            'description': self.description,
            'is_active': bool(self.is_active),
        }

    def __repr__(self):
        return f"<PaymentCategory {self.name} ({self.category_type.value if self.category_type else '-'})>"
