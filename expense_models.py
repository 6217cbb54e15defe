"""
Expenditure Models
Department expenditure tracking
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Numeric, Enum
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
from models import Base

class ExpenditureCategoryEnum(enum.Enum):
    INFRASTRUCTURE = "infrastructure"
    EQUIPMENT = "equipment"
    STATIONERY = "stationery"
    EVENTS = "events"
    MAINTENANCE = "maintenance"
    OTHER = "other"

# ===== EXPENDITURE MODEL =====
class Expenditure(Base):
    __tablename__ = 'expenditures'

    id = Column(Integer, primary_key=True)

    # Basic Information
    date = Column(DateTime, default=datetime.utcnow, nullable=False)
    category = Column(Enum(ExpenditureCategoryEnum, values_callable=lambda obj: [e.value for e in obj]),
                      default=ExpenditureCategoryEnum.OTHER, nullable=False)
    description = Column(String(500), nullable=False)
    department = Column(String(100), nullable=True)

    # Financial Details
    amount = Column(Numeric(12, 2), nullable=False)
    receipt_number = Column(String(100), nullable=True)

    # Additional Info
    notes = Column(Text, nullable=True)

    # Audit Fields
    added_by = Column(Integer, ForeignKey('admins.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    creator = relationship("Admin", foreign_keys=[added_by], backref="added_expenditures")

    def to_dict(self):
        return {
            'id': self.id,
            'amount': float(self.amount),
            'description': self.description,
            'category': self.category.value if self.category else None,
            'department': self.department,
            'date': self.date.isoformat() if self.date else None,
            'receipt_number': self.receipt_number,
            'notes': self.notes,
            'added_by': {'id': self.creator.id, 'name': self.creator.name, 'email': self.creator.email} if self.creator else None,
        }

    def __repr__(self):
        return f'<Expenditure {self.description} - {self.amount}>'
