"""
Fee & Fine Helper Functions
Contains business logic for ledger entries, receipt generation and payment categories
"""

from datetime import datetime, date, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from fee_models import LedgerEntry, PaymentCategory, EntryTypeEnum
from models import Student
import logging
import random

logger = logging.getLogger(__name__)

RECEIPT_RETRY_LIMIT = 5
# Money is stored with two decimal places
MONEY_QUANTUM = Decimal('0.01')
LEDGER_AMOUNT_DIGITS = 10


class ValidationError(ValueError):
    """Request data failed validation; nothing was written."""


class RecordNotFoundError(LookupError):
    """The referenced record does not exist."""


class StudentNotFoundError(RecordNotFoundError):
    def __init__(self, prn):
        self.prn = prn
        super().__init__(f"Student with PRN {prn} not found")


# ===== VALUE PARSING =====

def clean_text(value) -> str:
    """Trimmed text form of a request value; None becomes ''"""
    return '' if value is None else str(value).strip()


def parse_amount(value, label: str = 'Payment amount', max_digits: int = LEDGER_AMOUNT_DIGITS) -> Decimal:
    """
    Parse a positive monetary amount rounded to cents, or raise ValidationError.
    max_digits is the precision of the column the amount is stored in.
    """
    if value is None or value == '' or isinstance(value, bool):
        raise ValidationError(f"Please provide {label.lower()}")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{label} must be a positive number")
    if not amount.is_finite() or amount <= 0:
        raise ValidationError(f"{label} must be a positive number")

    limit = Decimal(10) ** (max_digits - 2)
    if amount >= limit:
        raise ValidationError(f"{label} must be less than {limit:,}")
    amount = amount.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)
    if amount <= 0:
        raise ValidationError(f"{label} must be at least {MONEY_QUANTUM}")
    if amount >= limit:
        raise ValidationError(f"{label} must be less than {limit:,}")
    return amount


def parse_date(value, label: str = 'date'):
    """Parse an ISO date/datetime; None and '' mean 'not given'"""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    try:
        parsed = datetime.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationError(f"Invalid {label}: {value}")
    # Stored timestamps are naive UTC
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_entry_type(value) -> EntryTypeEnum:
    if not value:
        return EntryTypeEnum.FINE
    try:
        return EntryTypeEnum(str(value).strip().lower())
    except ValueError:
        raise ValidationError(f"Invalid type '{value}'. Use 'fine' or 'fee'")


# ===== RECEIPT NUMBER GENERATION =====

def generate_receipt_number(session: Session = None, now: datetime = None) -> str:
    """Generate a receipt number: RCP-YYYYMMDD-XXXXX (random 5 digits)"""
    now = now or datetime.utcnow()
    prefix = f"RCP-{now.strftime('%Y%m%d')}"
    receipt_number = f"{prefix}-{random.randint(10000, 99999)}"

    if session is None:
        return receipt_number

    # Redraw on the rare same-day collision
    attempts = 1
    while attempts < RECEIPT_RETRY_LIMIT and session.query(LedgerEntry.id).filter_by(
            receipt_number=receipt_number).first():
        receipt_number = f"{prefix}-{random.randint(10000, 99999)}"
        attempts += 1

    return receipt_number


# ===== STUDENT LOOKUPS =====

def get_student_by_prn(session: Session, prn: str) -> Student:
    prn = clean_text(prn).upper()
    if not prn:
        raise ValidationError("Please provide a PRN to search")
    student = session.query(Student).filter_by(prn=prn).first()
    if not student:
        raise StudentNotFoundError(prn)
    return student


def list_students(session: Session, page: int = 1, limit: int = 10,
                  department: str = None, has_fines: bool = False) -> dict:
    """Paginated student list without ledgers"""
    page = max(page or 1, 1)
    limit = max(limit or 10, 1)

    query = session.query(Student)
    if department:
        query = query.filter(Student.department.ilike(f"%{department}%"))
    if has_fines:
        query = query.filter(Student.fines.any())

    total = query.count()
    students = query.order_by(Student.created_at.desc(), Student.id.desc()) \
        .offset((page - 1) * limit).limit(limit).all()

    return {
        'students': [s.to_dict(include_fines=False) for s in students],
        'pagination': {
            'current_page': page,
            'total_pages': (total + limit - 1) // limit,
            'total_students': total,
            'has_next_page': page * limit < total,
            'has_prev_page': page > 1,
        }
    }


def delete_student(session: Session, prn: str) -> dict:
    student = get_student_by_prn(session, prn)
    deleted = {'prn': student.prn, 'name': student.name}
    session.delete(student)
    session.commit()
    logger.info(f"Deleted student {deleted['prn']} with ledger")
    return deleted


# ===== LEDGER ENTRIES =====

def add_payment_to_student(session: Session, prn: str, amount, reason: str = None,
                           entry_type=None, category: str = None, entry_date=None,
                           notify: bool = True) -> LedgerEntry:
    """
    Append a paid fine/fee to a student's ledger and return the new entry.

    Validation happens before any lookup or write. When the student has an
    email on file, a receipt email is sent in the background; its outcome
    never affects the saved entry.
    """
    amount = parse_amount(amount)
    entry_type = parse_entry_type(entry_type)
    charge_date = parse_date(entry_date)

    student = get_student_by_prn(session, prn)

    now = datetime.utcnow()
    entry = LedgerEntry(
        amount=amount,
        reason=clean_text(reason),
        entry_type=entry_type,
        category=clean_text(category) or 'Others',
        receipt_number=generate_receipt_number(session, now),
        date=charge_date or now,
        is_paid=True,
        paid_date=now,
    )

    try:
        student.fines.append(entry)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"Added {entry_type.value} {entry.receipt_number} of {amount} to {student.prn}")

    if notify and student.email:
        from notification_email import send_payment_receipt_email_async
        send_payment_receipt_email_async(student.to_dict(include_fines=False), entry.to_dict())

    return entry


def get_ledger_entry(session: Session, prn: str, entry_id: int) -> tuple:
    student = get_student_by_prn(session, prn)
    entry = session.query(LedgerEntry).filter_by(id=entry_id, student_id=student.id).first()
    if not entry:
        raise RecordNotFoundError("Fine not found")
    return student, entry


def mark_fine_as_paid(session: Session, prn: str, entry_id: int) -> LedgerEntry:
    """Flag an entry as paid; the only mutation a ledger entry ever sees"""
    _, entry = get_ledger_entry(session, prn, entry_id)
    entry.is_paid = True
    entry.paid_date = datetime.utcnow()
    session.commit()
    return entry


def get_student_fines(session: Session, prn: str) -> dict:
    """Student ledger, newest charge date first, with totals"""
    student = get_student_by_prn(session, prn)
    fines = sorted(student.fines, key=lambda e: e.date, reverse=True)

    return {
        'student': {
            'prn': student.prn,
            'name': student.name,
            'department': student.department,
        },
        'fines': [f.to_dict() for f in fines],
        'summary': {
            'total_fines': student.total_fines,
            'fine_count': len(fines),
            'unpaid_fines': student.unpaid_fines,
        }
    }


# ===== PAYMENT CATEGORIES =====

def _validate_category_fields(name=None, description=None):
    if name is not None:
        if not name:
            raise ValidationError("Category name is required")
        if len(name) > 100:
            raise ValidationError("Category name cannot exceed 100 characters")
    if description and len(description) > 500:
        raise ValidationError("Description cannot exceed 500 characters")


def list_categories(session: Session, category_type: str = None, active_only: bool = False) -> list:
    query = session.query(PaymentCategory)
    if category_type:
        query = query.filter(PaymentCategory.category_type == parse_entry_type(category_type))
    if active_only:
        query = query.filter(PaymentCategory.is_active.is_(True))
    return query.order_by(PaymentCategory.category_type, PaymentCategory.name).all()


def create_category(session: Session, name: str, category_type=None, description: str = None) -> PaymentCategory:
    name = clean_text(name)
    description = clean_text(description) or None
    _validate_category_fields(name, description)
    category = PaymentCategory(
        name=name,
        category_type=parse_entry_type(category_type),
        description=description,
        is_active=True,
    )
    try:
        session.add(category)
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ValidationError(f"Category '{name}' already exists")
    return category


def update_category(session: Session, category_id: int, data: dict) -> PaymentCategory:
    category = session.query(PaymentCategory).filter_by(id=category_id).first()
    if not category:
        raise RecordNotFoundError("Category not found")

    name = clean_text(data['name']) if data.get('name') is not None else None
    description = clean_text(data.get('description')) or None
    _validate_category_fields(name, description)
    if name:
        category.name = name
    if data.get('type'):
        category.category_type = parse_entry_type(data['type'])
    if 'description' in data:
        category.description = description
    if 'is_active' in data:
        category.is_active = bool(data['is_active'])

    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ValidationError(f"Category '{category.name}' already exists")
    return category


def delete_category(session: Session, category_id: int) -> dict:
    category = session.query(PaymentCategory).filter_by(id=category_id).first()
    if not category:
        raise RecordNotFoundError("Category not found")
    deleted = {'id': category.id, 'name': category.name}
    session.delete(category)
    session.commit()
    return deleted
