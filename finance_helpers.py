"""
Finance Summary Helpers
Income (student ledger) vs. expenditure statistics and the monthly report.

Everything here is read-only and recomputed from the two ledgers on every
call; there are no stored running totals to drift out of sync.
"""

from datetime import date, datetime
from sqlalchemy import func, extract
from sqlalchemy.orm import Session
from fee_models import LedgerEntry
from expense_models import Expenditure
from models import Student
from fee_helpers import ValidationError
import logging

logger = logging.getLogger(__name__)

MONTH_LABELS = ['Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun', 'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec']
# The report range ends at Jan 1 of the following year
MIN_REPORT_YEAR = 1
MAX_REPORT_YEAR = 9998


def get_total_income(session: Session) -> float:
    return float(session.query(func.sum(LedgerEntry.amount)).scalar() or 0)


def get_total_expenditure(session: Session) -> float:
    return float(session.query(func.sum(Expenditure.amount)).scalar() or 0)


def get_expenditure_by_category(session: Session) -> list:
    """One row per category that has expenditures, largest total first"""
    total_expr = func.sum(Expenditure.amount)
    rows = session.query(
        Expenditure.category,
        total_expr,
        func.count(Expenditure.id)
    ).group_by(Expenditure.category).order_by(total_expr.desc()).all()

    breakdown = []
    for category, total, count in rows:
        breakdown.append({
            'category': category.value if hasattr(category, 'value') else str(category),
            'total': float(total or 0),
            'count': int(count or 0),
        })
    return breakdown


def get_financial_summary(session: Session) -> dict:
    """Total income, total expenditure, balance and supporting statistics"""
    total_income = get_total_income(session)
    total_expenditure = get_total_expenditure(session)
    balance = total_income - total_expenditure

    total_students = session.query(func.count(Student.id)).scalar() or 0
    students_with_fines = session.query(func.count(Student.id)).filter(Student.fines.any()).scalar() or 0
    total_fines = session.query(func.count(LedgerEntry.id)).scalar() or 0
    total_expenditures = session.query(func.count(Expenditure.id)).scalar() or 0

    return {
        'financial': {
            'total_income': total_income,
            'total_expenditure': total_expenditure,
            'balance': balance,
            'status': 'surplus' if balance >= 0 else 'deficit',
        },
        'statistics': {
            'total_students': total_students,
            'students_with_fines': students_with_fines,
            'total_fines': total_fines,
            'total_expenditures': total_expenditures,
        },
        'expenditure_by_category': get_expenditure_by_category(session),
    }


def _monthly_totals(session: Session, amount_column, date_column, count_column, year: int) -> dict:
    """month number -> (sum, count) for rows dated anywhere inside the year"""
    month_expr = extract('month', date_column)
    rows = session.query(
        month_expr,
        func.sum(amount_column),
        func.count(count_column)
    ).filter(
        date_column >= datetime(year, 1, 1),
        date_column < datetime(year + 1, 1, 1)
    ).group_by(month_expr).all()

    return {int(month): (float(total or 0), int(count or 0)) for month, total, count in rows}


def get_monthly_report(session: Session, year: int = None) -> dict:
    """Income and expenditure per calendar month of the year (current year by default)"""
    year = date.today().year if year is None else year
    if not MIN_REPORT_YEAR <= year <= MAX_REPORT_YEAR:
        raise ValidationError(f"Year must be between {MIN_REPORT_YEAR} and {MAX_REPORT_YEAR}")

    income_by_month = _monthly_totals(session, LedgerEntry.amount, LedgerEntry.date, LedgerEntry.id, year)
    expenditure_by_month = _monthly_totals(session, Expenditure.amount, Expenditure.date, Expenditure.id, year)

    report = []
    for index, label in enumerate(MONTH_LABELS):
        month_number = index + 1
        income, fine_count = income_by_month.get(month_number, (0.0, 0))
        expenditure, expenditure_count = expenditure_by_month.get(month_number, (0.0, 0))
        report.append({
            'month': label,
            'month_number': month_number,
            'income': income,
            'expenditure': expenditure,
            'balance': income - expenditure,
            'fine_count': fine_count,
            'expenditure_count': expenditure_count,
        })

    yearly_totals = {
        'total_income': sum(m['income'] for m in report),
        'total_expenditure': sum(m['expenditure'] for m in report),
        'total_balance': sum(m['balance'] for m in report),
    }

    return {
        'year': year,
        'monthly_report': report,
        'yearly_totals': yearly_totals,
    }
