"""
Core Models
Admin accounts and the student roster
"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, Index
from sqlalchemy.orm import declarative_base, relationship
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from datetime import datetime

Base = declarative_base()

# ===== ADMIN MODEL =====
class Admin(Base, UserMixin):
    __tablename__ = 'admins'

    id = Column(Integer, primary_key=True)
    email = Column(String(120), unique=True, nullable=False)
    name = Column(String(100), nullable=False, default='Admin')
    password_hash = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True)
    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def get_id(self):
        """Return user ID in format needed by Flask-Login"""
        return f"admin_{self.id}"

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'last_login': self.last_login.isoformat() if self.last_login else None,
        }

    def __repr__(self):
        return f'<Admin {self.email}>'

# ===== STUDENT MODEL =====
class Student(Base):
    __tablename__ = 'students'
    __table_args__ = (
        Index('idx_student_department', 'department'),
    )

    id = Column(Integer, primary_key=True)

    # Basic Information
    prn = Column(String(50), unique=True, nullable=False)  # always upper-case
    name = Column(String(150), nullable=False)

    # Academic Information
    academic_year = Column(String(20))
    semester = Column(String(20))
    year = Column(String(20))
    division = Column(String(100))
    department = Column(String(100))
    roll_no = Column(String(20))

    # Contact Information
    email = Column(String(120))
    phone = Column(String(20))

    is_active = Column(Boolean, default=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Ledger, in the order entries were appended
    fines = relationship(
        "LedgerEntry",
        back_populates="student",
        order_by="LedgerEntry.id",
        cascade="all, delete-orphan",
    )

    @property
    def total_fines(self):
        return float(sum(entry.amount for entry in self.fines))

    @property
    def unpaid_fines(self):
        return float(sum(entry.amount for entry in self.fines if not entry.is_paid))

    def to_dict(self, include_fines=True):
        data = {
            'id': self.id,
            'prn': self.prn,
            'name': self.name,
            'academic_year': self.academic_year,
            'semester': self.semester,
            'year': self.year,
            'division': self.division,
            'department': self.department,
            'roll_no': self.roll_no,
            'email': self.email,
            'phone': self.phone,
            'is_active': self.is_active,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_fines:
            data['fines'] = [entry.to_dict() for entry in self.fines]
            data['total_fines'] = self.total_fines
        return data

    def __repr__(self):
        return f'<Student {self.name} ({self.prn})>'
