import pytest

from roster_helpers import get_value, normalize_header, parse_tabular_records, resolve_student_row


def resolve(content):
    return [resolve_student_row(row) for row in parse_tabular_records(content)]


class TestAliases:

    @pytest.mark.parametrize("header, expected", [
        ("  PRN   No. ", "prn no"),
        ("prn_number", "prn number"),
        ("Email-ID", "email id"),
        ("Roll/No#", "roll no"),
    ])
    def test_header_punctuation_collapses(self, header, expected):
        assert normalize_header(header) == expected

    @pytest.mark.parametrize("prn_header", ["PRN Number", "PRN", "PRNNumber", "prn_number", "PRN No."])
    def test_prn_spellings(self, prn_header):
        student = resolve(f"{prn_header},Student Name\nab123,Asha")[0]
        assert student.prn == 'AB123'

    @pytest.mark.parametrize("name_header", ["Student Name", "Name", "StudentName", "Name of Student"])
    def test_name_spellings(self, name_header):
        student = resolve(f"PRN,{name_header}\nP1,Asha Patil")[0]
        assert student.name == 'Asha Patil'

    def test_all_fields(self):
        content = (
            "PRN Number,Student Name,Academic Year,Semester,Year,Division,Roll No,Mobile Number,Email ID\n"
            "p7,Ravi,2024-25,5,TE,Computer,42,9876543210,ravi@example.com"
        )
        student = resolve(content)[0]

        assert student.prn == 'P7'
        assert student.academic_year == '2024-25'
        assert student.semester == '5'
        assert student.year == 'TE'
        assert student.division == 'Computer'
        assert student.department == 'Computer'
        assert student.roll_no == '42'
        assert student.phone == '9876543210'
        assert student.email == 'ravi@example.com'

    def test_department_header_fills_division(self):
        student = resolve("PRN,Name,Department\nP1,A,Mechanical")[0]
        assert student.division == 'Mechanical'
        assert student.department == 'Mechanical'

    def test_spellings_resolve_identically(self):
        a = resolve("PRN Number,Student Name,Email ID,Mobile\nP1,Asha,a@x.com,123")[0]
        b = resolve("prn,name,emailid,phone\nP1,Asha,a@x.com,123")[0]
        assert a == b


class TestGetValue:

    def test_exact_match_preferred(self):
        row = {'academic year': '2024-25', 'year': 'SE'}
        assert get_value(row, 'year') == 'SE'

    def test_substring_takes_first_matching_column(self):
        row = {'academic year': '2024-25', 'class': 'SE'}
        assert get_value(row, 'year') == '2024-25'

    def test_aliases_tried_in_order(self):
        row = {'mobile': '111', 'phone': '222'}
        assert get_value(row, 'mobile number', 'mobile', 'phone') == '111'

    def test_empty_value_is_absent(self):
        assert get_value({'email': '   '}, 'email') is None
        assert get_value({'email': ''}, 'email') is None

    def test_missing_column(self):
        assert get_value({'prn': 'P1'}, 'email id', 'email') is None


class TestCompleteness:

    def test_complete_row(self):
        assert resolve("PRN,Name\nP1,A")[0].is_complete

    @pytest.mark.parametrize("line", [",A", "P1,", " , "])
    def test_incomplete_rows(self, line):
        student = resolve("PRN,Name\n" + line)[0]
        assert not student.is_complete

    def test_optional_fields_absent(self):
        student = resolve("PRN,Name\nP1,A")[0]
        assert student.email is None
        assert student.division is None
        assert student.department is None
