import re
import random
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from fee_helpers import (
    RecordNotFoundError, StudentNotFoundError, ValidationError,
    add_payment_to_student, create_category, delete_category, delete_student,
    generate_receipt_number, get_student_fines, list_categories, list_students,
    mark_fine_as_paid, parse_amount, parse_date, update_category
)
from fee_models import EntryTypeEnum, LedgerEntry
from finance_helpers import get_financial_summary
from models import Student

RECEIPT_PATTERN = re.compile(r'^RCP-\d{8}-\d{5}$')


class TestReceiptNumbers:

    def test_format_uses_given_date(self):
        receipt = generate_receipt_number(now=datetime(2024, 3, 5, 22, 10))
        assert RECEIPT_PATTERN.match(receipt)
        assert receipt.startswith('RCP-20240305-')

    def test_collision_is_redrawn(self, session, make_student, monkeypatch):
        make_student('P1')
        draws = iter([11111, 11111, 22222])
        monkeypatch.setattr(random, 'randint', lambda a, b: next(draws))

        first = add_payment_to_student(session, 'P1', 10, notify=False)
        second = add_payment_to_student(session, 'P1', 10, notify=False)

        assert first.receipt_number.endswith('-11111')
        assert second.receipt_number.endswith('-22222')


class TestValueParsing:

    @pytest.mark.parametrize("value", [0, -5, '0', 'abc', '', None, 'nan', True])
    def test_rejects_non_positive_amounts(self, value):
        with pytest.raises(ValidationError):
            parse_amount(value)

    @pytest.mark.parametrize("value, expected", [(50, Decimal('50')), ('12.50', Decimal('12.50')), (0.1, Decimal('0.1'))])
    def test_accepts_positive_amounts(self, value, expected):
        assert parse_amount(value) == expected

    @pytest.mark.parametrize("value, expected", [
        ('12.345', Decimal('12.35')),
        ('12.344', Decimal('12.34')),
        ('0.005', Decimal('0.01')),
        ('99999999.99', Decimal('99999999.99')),
    ])
    def test_amounts_rounded_to_cents(self, value, expected):
        amount = parse_amount(value)
        assert amount == expected
        assert amount.as_tuple().exponent == -2

    @pytest.mark.parametrize("value", ['0.001', '0.004', 0.0049])
    def test_rejects_sub_cent_amounts(self, value):
        with pytest.raises(ValidationError, match='at least 0.01'):
            parse_amount(value)

    @pytest.mark.parametrize("value", ['100000000', '99999999.995', '1e30'])
    def test_rejects_amounts_beyond_column_precision(self, value):
        with pytest.raises(ValidationError, match='less than'):
            parse_amount(value)

    def test_wider_column_precision(self):
        assert parse_amount('100000000', max_digits=12) == Decimal('100000000.00')

    def test_parse_date(self):
        assert parse_date('2024-01-21') == datetime(2024, 1, 21)
        assert parse_date('2024-01-21T10:00:00+05:30') == datetime(2024, 1, 21, 4, 30)
        assert parse_date('') is None
        with pytest.raises(ValidationError):
            parse_date('21/01/2024')


class TestAddPayment:

    def test_appends_paid_entry_with_defaults(self, session, make_student):
        make_student('P1', name='Asha')
        before = datetime.utcnow() - timedelta(seconds=1)

        entry = add_payment_to_student(session, 'p1', 50, notify=False)

        assert entry.id is not None
        assert entry.amount == Decimal('50')
        assert entry.reason == ''
        assert entry.entry_type == EntryTypeEnum.FINE
        assert entry.category == 'Others'
        assert entry.is_paid is True
        assert entry.paid_date >= before
        assert entry.date >= before
        assert RECEIPT_PATTERN.match(entry.receipt_number)

        student = session.query(Student).filter_by(prn='P1').one()
        assert [e.id for e in student.fines] == [entry.id]
        assert student.total_fines == 50.0

    def test_explicit_fields(self, session, make_student):
        make_student('P1')
        call_day = datetime.utcnow().strftime('%Y%m%d')
        entry = add_payment_to_student(session, 'P1', '30.50', reason=' Committee ', entry_type='FEE',
                                       category='Committee Fees', entry_date='2024-01-21', notify=False)
        after_day = datetime.utcnow().strftime('%Y%m%d')

        # Receipt carries the day of the call, not the charge date
        assert entry.receipt_number[4:12] in {call_day, after_day}
        assert not entry.receipt_number.startswith('RCP-20240121-')
        assert entry.entry_type == EntryTypeEnum.FEE
        assert entry.reason == 'Committee'
        assert entry.category == 'Committee Fees'
        assert entry.date == datetime(2024, 1, 21)
        assert entry.to_dict()['type'] == 'fee'

    def test_entries_keep_insertion_order(self, session, make_student):
        make_student('P1')
        ids = [add_payment_to_student(session, 'P1', n, notify=False).id for n in (5, 6, 7)]
        student = session.query(Student).filter_by(prn='P1').one()
        assert [e.id for e in student.fines] == ids

    @pytest.mark.parametrize("amount", [0, -1, 'ten', '0.001', '100000000'])
    def test_invalid_amount_writes_nothing(self, session, make_student, amount):
        make_student('P1')
        with pytest.raises(ValidationError):
            add_payment_to_student(session, 'P1', amount, notify=False)
        assert session.query(LedgerEntry).count() == 0

    def test_stored_amount_matches_validated_amount(self, session, make_student):
        make_student('P1')
        entry = add_payment_to_student(session, 'P1', '10.005', notify=False)
        session.expire_all()

        stored = session.query(LedgerEntry).filter_by(id=entry.id).one()
        assert stored.amount == Decimal('10.01')
        assert get_financial_summary(session)['financial']['total_income'] == 10.01

    def test_non_text_reason_and_category(self, session, make_student):
        make_student('P1')
        entry = add_payment_to_student(session, 'P1', 5, reason=42, category=7, notify=False)
        assert entry.reason == '42'
        assert entry.category == '7'

    def test_invalid_amount_checked_before_lookup(self, session):
        with pytest.raises(ValidationError):
            add_payment_to_student(session, 'NOPE', -1, notify=False)

    def test_unknown_student(self, session):
        with pytest.raises(StudentNotFoundError) as exc_info:
            add_payment_to_student(session, 'missing', 10, notify=False)
        assert exc_info.value.prn == 'MISSING'
        assert session.query(LedgerEntry).count() == 0

    def test_invalid_type(self, session, make_student):
        make_student('P1')
        with pytest.raises(ValidationError):
            add_payment_to_student(session, 'P1', 10, entry_type='donation', notify=False)


class TestReceiptNotification:

    def test_sent_when_email_on_file(self, session, make_student, no_email):
        make_student('P1', name='Asha', email='asha@example.com')

        entry = add_payment_to_student(session, 'P1', 50, reason='Late')

        assert len(no_email) == 1
        student, sent_entry = no_email[0]
        assert student['email'] == 'asha@example.com'
        assert sent_entry['receipt_number'] == entry.receipt_number
        assert sent_entry['amount'] == 50.0

    def test_skipped_without_email(self, session, make_student, no_email):
        make_student('P1')
        add_payment_to_student(session, 'P1', 50)
        assert no_email == []

    def test_skipped_when_disabled(self, session, make_student, no_email):
        make_student('P1', email='asha@example.com')
        add_payment_to_student(session, 'P1', 50, notify=False)
        assert no_email == []


class TestLedgerQueries:

    def test_mark_fine_as_paid(self, session, make_student):
        student = make_student('P1')
        entry = LedgerEntry(amount=Decimal('20'), receipt_number='RCP-20240101-12345',
                            entry_type=EntryTypeEnum.FINE, is_paid=False)
        student.fines.append(entry)
        session.commit()
        assert student.unpaid_fines == 20.0

        paid = mark_fine_as_paid(session, 'P1', entry.id)

        assert paid.is_paid is True
        assert paid.paid_date is not None
        assert student.unpaid_fines == 0.0

    def test_mark_unknown_entry(self, session, make_student):
        make_student('P1')
        with pytest.raises(RecordNotFoundError):
            mark_fine_as_paid(session, 'P1', 999)

    def test_entry_of_another_student_is_not_found(self, session, make_student):
        make_student('P1')
        make_student('P2')
        entry = add_payment_to_student(session, 'P1', 10, notify=False)
        with pytest.raises(RecordNotFoundError):
            mark_fine_as_paid(session, 'P2', entry.id)

    def test_student_fines_newest_first(self, session, make_student):
        make_student('P1', name='Asha')
        add_payment_to_student(session, 'P1', 10, entry_date='2024-01-01', notify=False)
        add_payment_to_student(session, 'P1', 20, entry_date='2024-03-01', notify=False)
        add_payment_to_student(session, 'P1', 30, entry_date='2024-02-01', notify=False)

        data = get_student_fines(session, 'P1')

        assert [f['amount'] for f in data['fines']] == [20.0, 30.0, 10.0]
        assert data['summary'] == {'total_fines': 60.0, 'fine_count': 3, 'unpaid_fines': 0.0}
        assert data['student']['name'] == 'Asha'

    def test_list_students(self, session, make_student):
        for n in range(3):
            make_student(f'P{n}')
        add_payment_to_student(session, 'P1', 10, notify=False)

        page = list_students(session, page=1, limit=2)
        assert len(page['students']) == 2
        assert page['pagination'] == {
            'current_page': 1, 'total_pages': 2, 'total_students': 3,
            'has_next_page': True, 'has_prev_page': False,
        }

        with_fines = list_students(session, has_fines=True)
        assert [s['prn'] for s in with_fines['students']] == ['P1']

    def test_delete_student_removes_ledger(self, session, make_student):
        make_student('P1')
        add_payment_to_student(session, 'P1', 10, notify=False)

        assert delete_student(session, 'P1')['prn'] == 'P1'
        assert session.query(Student).count() == 0
        assert session.query(LedgerEntry).count() == 0


class TestCategories:

    def test_create_and_list(self, session):
        create_category(session, 'Library Fine', 'fine', 'Overdue books')
        create_category(session, 'Event Fees', 'fee')

        assert [c.name for c in list_categories(session, category_type='fee')] == ['Event Fees']
        assert len(list_categories(session)) == 2

    def test_duplicate_name(self, session):
        create_category(session, 'Lab Fine')
        with pytest.raises(ValidationError, match='already exists'):
            create_category(session, 'Lab Fine')

    def test_blank_name(self, session):
        with pytest.raises(ValidationError):
            create_category(session, '   ')
        with pytest.raises(ValidationError):
            create_category(session, None)

    def test_non_text_values_are_coerced(self, session):
        category = create_category(session, 2024, 'fee', 500)
        assert category.name == '2024'
        assert category.description == '500'

        update_category(session, category.id, {'name': 7, 'description': 8})
        assert category.name == '7'
        assert category.description == '8'

    def test_update_and_deactivate(self, session):
        category = create_category(session, 'Lab Fine')
        update_category(session, category.id, {'name': 'Lab Damage', 'is_active': False})

        assert category.name == 'Lab Damage'
        assert list_categories(session, active_only=True) == []

    def test_delete(self, session):
        category = create_category(session, 'Lab Fine')
        delete_category(session, category.id)
        assert list_categories(session) == []
        with pytest.raises(RecordNotFoundError):
            delete_category(session, category.id)
