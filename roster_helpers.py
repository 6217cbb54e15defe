"""
Roster Import Helper Functions
Parses loosely-structured student CSV exports, maps their columns onto the
student fields, and reconciles each row against the existing roster.

Uploads usually come straight out of a spreadsheet: a title line or two above
the real header, header names that vary between departments ("PRN Number",
"prn", "PRN No."), and columns we do not care about. Rows are applied one at a
time and committed individually, so a bad row never takes the rest of the
batch down with it. Existing ledgers are never touched by an import.
"""

import csv
import io
import logging
import re
from dataclasses import dataclass, field, fields
from typing import Dict, Iterator, List, Optional

from sqlalchemy.orm import Session

from models import Student

logger = logging.getLogger(__name__)

# Only the first few lines are searched for the header row
HEADER_SCAN_LIMIT = 5
# Upper bound on per-row error details kept in a BatchResult
MAX_ERROR_DETAILS = 100

MISSING_FIELDS_MESSAGE = 'Missing required fields (PRN Number or Student Name)'

# Declared order matters: the first alias that matches wins
FIELD_ALIASES = {
    'prn': ('prn number', 'prn', 'prnnumber'),
    'name': ('student name', 'name', 'studentname'),
    'academic_year': ('academic year', 'academicyear'),
    'semester': ('semester',),
    'year': ('year',),
    'division': ('division', 'department'),
    'roll_no': ('roll no', 'rollno', 'roll'),
    'phone': ('mobile number', 'mobile', 'phone'),
    'email': ('email id', 'email', 'emailid'),
}


class TabularParseError(ValueError):
    """The upload could not be read as delimited rows at all."""


# ===== TABULAR PARSING =====

def normalize_header(header: str) -> str:
    """Lower-case a header cell and collapse whitespace/punctuation runs to one space."""
    return re.sub(r'[\W_]+', ' ', header.strip().lower()).strip()


def find_header_index(lines: List[str]) -> int:
    """Index of the first line that looks like the real header, 0 if none does."""
    for index, line in enumerate(lines[:HEADER_SCAN_LIMIT]):
        line_lower = line.lower()
        if 'prn' in line_lower and ('name' in line_lower or 'student' in line_lower):
            return index
    return 0


def parse_tabular_records(content: str) -> Iterator[Dict[str, str]]:
    """
    Yield one dict per data row, keyed by normalized header name.

    Blank lines are dropped, noise above the detected header is skipped, and
    cell values are trimmed. Cells beyond the header width and columns with an
    empty header are discarded. Raises TabularParseError on malformed input.
    """
    lines = [line for line in re.split(r'\r?\n', content) if line.strip()]
    if not lines:
        return

    header_index = find_header_index(lines)
    if header_index:
        logger.info(f"Found header row at line {header_index + 1}: {lines[header_index][:100]}")

    try:
        header_cells = next(csv.reader([lines[header_index]], strict=True))
        fieldnames = [normalize_header(cell) for cell in header_cells]
        reader = csv.DictReader(
            io.StringIO('\n'.join(lines[header_index + 1:])),
            fieldnames=fieldnames,
            strict=True,
        )
        for raw_row in reader:
            row = {}
            for key, value in raw_row.items():
                if not key or value is None:
                    continue
                row[key] = value.strip() if isinstance(value, str) else value
            yield row
    except csv.Error as e:
        raise TabularParseError(f"Could not parse CSV content: {e}") from e


# ===== FIELD RESOLUTION =====

def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def get_value(row: Dict[str, str], *possible_keys: str) -> Optional[str]:
    """
    Find a value by alias: exact key first, then a row key containing the
    alias (or contained in it). Empty values count as absent.
    """
    for key in possible_keys:
        if key in row:
            return _clean(row[key])
        for row_key in row:
            if key in row_key or row_key in key:
                return _clean(row[row_key])
    return None


@dataclass
class StudentRow:
    """Canonical, typed form of one roster row"""
    prn: Optional[str] = None
    name: Optional[str] = None
    academic_year: Optional[str] = None
    semester: Optional[str] = None
    year: Optional[str] = None
    division: Optional[str] = None
    roll_no: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None

    @property
    def department(self) -> Optional[str]:
        # Roster exports carry the department in the division column
        return self.division

    @property
    def is_complete(self) -> bool:
        return bool(self.prn and self.name)


def resolve_student_row(row: Dict[str, str]) -> StudentRow:
    values = {name: get_value(row, *aliases) for name, aliases in FIELD_ALIASES.items()}
    if values['prn']:
        values['prn'] = values['prn'].upper()
    return StudentRow(**values)


# ===== RECONCILIATION =====

# Fields that only overwrite existing data when the upload provides them
OPTIONAL_STUDENT_FIELDS = ('academic_year', 'semester', 'year', 'division',
                           'roll_no', 'department', 'email', 'phone')


@dataclass
class BatchResult:
    total_records: int = 0
    new_students: int = 0
    updated_students: int = 0
    errors: int = 0
    error_details: List[Dict[str, str]] = field(default_factory=list)

    def add_error(self, prn: str, message: str):
        self.errors += 1
        if len(self.error_details) < MAX_ERROR_DETAILS:
            self.error_details.append({'prn': prn, 'error': message})

    def to_dict(self) -> dict:
        data = {f.name: getattr(self, f.name) for f in fields(self) if f.name != 'error_details'}
        if self.error_details:
            data['error_details'] = list(self.error_details)
        return data


def reconcile_student_row(session: Session, student_row: StudentRow) -> bool:
    """
    Create the student or merge the row into the existing record.

    Name is always overwritten; optional fields only when the row has a
    value. The ledger is left alone. Commits and returns True when a new
    student was created.
    """
    existing = session.query(Student).filter_by(prn=student_row.prn).first()

    if existing:
        existing.name = student_row.name
        for field_name in OPTIONAL_STUDENT_FIELDS:
            value = getattr(student_row, field_name)
            if value:
                setattr(existing, field_name, value)
        session.commit()
        return False

    student = Student(
        prn=student_row.prn,
        name=student_row.name,
        is_active=True,
        **{field_name: getattr(student_row, field_name) for field_name in OPTIONAL_STUDENT_FIELDS}
    )
    session.add(student)
    session.commit()
    return True


def decode_upload(raw_content) -> str:
    if isinstance(raw_content, str):
        return raw_content
    try:
        return raw_content.decode('utf-8-sig')
    except UnicodeDecodeError as e:
        raise TabularParseError(f"File is not valid UTF-8 text: {e}") from e


def import_students_csv(session: Session, raw_content) -> BatchResult:
    """
    Ingest a roster upload and return the batch outcome.

    The whole file is parsed before anything is written, so malformed input
    fails the call with TabularParseError and leaves the roster untouched.
    After that, rows are applied strictly in file order; a later row for the
    same PRN wins over an earlier one.
    """
    rows = list(parse_tabular_records(decode_upload(raw_content)))
    result = BatchResult(total_records=len(rows))

    if rows:
        logger.debug(f"CSV headers detected: {list(rows[0].keys())}")

    for row in rows:
        student_row = resolve_student_row(row)

        if not student_row.is_complete:
            logger.warning(f"Skipping row - missing PRN or Name: prn={student_row.prn!r} name={student_row.name!r}")
            result.add_error(student_row.prn or 'N/A', MISSING_FIELDS_MESSAGE)
            continue

        try:
            created = reconcile_student_row(session, student_row)
        except Exception as e:
            session.rollback()
            logger.warning(f"Failed to import student {student_row.prn}: {e}")
            result.add_error(student_row.prn or 'Unknown', str(e))
            continue

        if created:
            result.new_students += 1
        else:
            result.updated_students += 1

    logger.info(
        f"Roster import complete: {result.total_records} rows, {result.new_students} new, "
        f"{result.updated_students} updated, {result.errors} errors"
    )
    return result
