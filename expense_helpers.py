"""
Expenditure Helper Functions
Create, list, update and delete department expenditures
"""

from datetime import datetime, time, timedelta
from sqlalchemy.orm import Session
from expense_models import Expenditure, ExpenditureCategoryEnum
from fee_helpers import ValidationError, RecordNotFoundError, clean_text, parse_amount, parse_date
import logging

logger = logging.getLogger(__name__)

# Precision of Expenditure.amount
EXPENDITURE_AMOUNT_DIGITS = 12


def parse_expenditure_category(value) -> ExpenditureCategoryEnum:
    if not value:
        return ExpenditureCategoryEnum.OTHER
    try:
        return ExpenditureCategoryEnum(str(value).strip().lower())
    except ValueError:
        allowed = ', '.join(c.value for c in ExpenditureCategoryEnum)
        raise ValidationError(f"Invalid category '{value}'. Allowed: {allowed}")


def _strip_or_none(value):
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def add_expenditure(session: Session, amount, description: str, category=None, department: str = None,
                    expense_date=None, receipt_number: str = None, notes: str = None,
                    added_by: int = None) -> Expenditure:
    description = clean_text(description)
    if not amount or not description:
        raise ValidationError("Please provide amount and description")

    expenditure = Expenditure(
        amount=parse_amount(amount, 'Amount', EXPENDITURE_AMOUNT_DIGITS),
        description=description,
        category=parse_expenditure_category(category),
        department=_strip_or_none(department),
        date=parse_date(expense_date) or datetime.utcnow(),
        receipt_number=_strip_or_none(receipt_number),
        notes=_strip_or_none(notes),
        added_by=added_by,
    )
    session.add(expenditure)
    session.commit()

    logger.info(f"Expenditure added: {expenditure.description} - {expenditure.amount}")
    return expenditure


def get_expenditure(session: Session, expenditure_id: int) -> Expenditure:
    expenditure = session.query(Expenditure).filter_by(id=expenditure_id).first()
    if not expenditure:
        raise RecordNotFoundError("Expenditure not found")
    return expenditure


def list_expenditures(session: Session, page: int = 1, limit: int = 10, category: str = None,
                      department: str = None, start_date=None, end_date=None) -> dict:
    """Paginated expenditures, newest first. The date range covers whole days on both ends."""
    page = max(page or 1, 1)
    limit = max(limit or 10, 1)

    query = session.query(Expenditure)
    if category:
        query = query.filter(Expenditure.category == parse_expenditure_category(category))
    if department:
        query = query.filter(Expenditure.department.ilike(f"%{department}%"))
    if start_date and end_date:
        start = datetime.combine(parse_date(start_date, 'start date').date(), time.min)
        end = datetime.combine(parse_date(end_date, 'end date').date() + timedelta(days=1), time.min)
        query = query.filter(Expenditure.date >= start, Expenditure.date < end)

    total = query.count()
    expenditures = query.order_by(Expenditure.date.desc(), Expenditure.id.desc()) \
        .offset((page - 1) * limit).limit(limit).all()

    return {
        'expenditures': [e.to_dict() for e in expenditures],
        'pagination': {
            'current_page': page,
            'total_pages': (total + limit - 1) // limit,
            'total_expenditures': total,
            'has_next_page': page * limit < total,
            'has_prev_page': page > 1,
        }
    }


def update_expenditure(session: Session, expenditure_id: int, data: dict) -> Expenditure:
    """Apply only the fields present in data"""
    expenditure = get_expenditure(session, expenditure_id)

    if data.get('amount') is not None:
        expenditure.amount = parse_amount(data['amount'], 'Amount', EXPENDITURE_AMOUNT_DIGITS)
    if clean_text(data.get('description')):
        expenditure.description = clean_text(data['description'])
    if data.get('category'):
        expenditure.category = parse_expenditure_category(data['category'])
    if 'department' in data:
        expenditure.department = _strip_or_none(data['department'])
    if data.get('date'):
        expenditure.date = parse_date(data['date'])
    if 'receipt_number' in data:
        expenditure.receipt_number = _strip_or_none(data['receipt_number'])
    if 'notes' in data:
        expenditure.notes = _strip_or_none(data['notes'])

    session.commit()
    return expenditure


def delete_expenditure(session: Session, expenditure_id: int) -> dict:
    expenditure = get_expenditure(session, expenditure_id)
    deleted = {'id': expenditure.id, 'description': expenditure.description}
    session.delete(expenditure)
    session.commit()
    return deleted
