"""
Unit tests for client-side pre-checks.

覆盖：手机号规范化 / 边界、dosage 格式化、年龄、新患者表单、随访、药品行。
"""
import pytest

from frontdesk.exceptions import ValidationError
from frontdesk.types import FollowUp, Medicine, PatientDraft
from frontdesk.validators import (
    format_dosage,
    is_valid_mobile,
    normalize_mobile,
    parse_age,
    to_e164,
    validate_follow_up,
    validate_medicines,
    validate_notes,
    validate_patient_draft,
)


class TestNormalizeMobile:

    @pytest.mark.parametrize('raw', [
        '9876543210',
        '+919876543210',
        '919876543210',
        '+91 98765-43210',
        '(987) 654 3210',
    ])
    def test_valid_numbers_normalize_to_ten_digits(self, raw):
        assert normalize_mobile(raw) == '9876543210'

    def test_too_short(self):
        with pytest.raises(ValidationError) as exc_info:
            normalize_mobile('98765')
        assert exc_info.value.fields['mobile'] == 'Mobile number is too short'

    def test_too_long(self):
        with pytest.raises(ValidationError) as exc_info:
            normalize_mobile('98765432101')
        assert exc_info.value.fields['mobile'] == 'Mobile number is too long'

    def test_bad_leading_digit(self):
        with pytest.raises(ValidationError) as exc_info:
            normalize_mobile('5876543210')
        assert 'must start with 6, 7, 8 or 9' in exc_info.value.message

    def test_other_country_code_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            normalize_mobile('+449876543210')
        assert exc_info.value.fields['mobile'] == 'Only +91 mobile numbers are supported'

    @pytest.mark.parametrize('raw', ['', '   ', None])
    def test_required(self, raw):
        with pytest.raises(ValidationError) as exc_info:
            normalize_mobile(raw)
        assert exc_info.value.fields['mobile'] == 'Mobile number is required'

    def test_letters_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            normalize_mobile('98765abc10')
        assert exc_info.value.fields['mobile'] == 'Mobile number may contain digits only'

    def test_is_valid_mobile(self):
        assert is_valid_mobile('6000000000') is True
        assert is_valid_mobile('5999999999') is False

    def test_to_e164(self):
        assert to_e164('9876543210') == '+919876543210'


class TestFormatDosage:

    @pytest.mark.parametrize('raw, expected', [
        ('101', '1-0-1'),
        ('1-0-1', '1-0-1'),
        ('1 1 1', '1-1-1'),
        ('10', '1-0'),
        ('1012', '1-0-1'),
        ('abc', ''),
        ('', ''),
        (None, ''),
    ])
    def test_format(self, raw, expected):
        assert format_dosage(raw) == expected


class TestParseAge:

    def test_blank_is_none(self):
        assert parse_age('') is None
        assert parse_age(None) is None

    def test_numeric_string(self):
        assert parse_age('42') == 42

    def test_garbage_passes_through(self):
        assert parse_age('abc') == 'abc'


class TestValidatePatientDraft:

    def test_valid_draft_returns_local_number(self):
        draft = PatientDraft(mobile='+919876543210', name='Asha', gender='F', age='30')
        assert validate_patient_draft(draft) == '9876543210'

    def test_collects_every_field_error(self):
        draft = PatientDraft(mobile='123', name='  ', gender='', age='abc')

        with pytest.raises(ValidationError) as exc_info:
            validate_patient_draft(draft)

        fields = exc_info.value.fields
        assert set(fields) == {'name', 'mobile', 'gender', 'age'}
        assert fields['gender'] == 'Gender is required'
        assert fields['age'] == 'Age must be a valid number'

    def test_negative_age_rejected(self):
        draft = PatientDraft(mobile='9876543210', name='Asha', gender='F', age=-1)
        with pytest.raises(ValidationError) as exc_info:
            validate_patient_draft(draft)
        assert 'age' in exc_info.value.fields

    def test_age_optional(self):
        draft = PatientDraft(mobile='9876543210', name='Asha', gender='M')
        assert validate_patient_draft(draft) == '9876543210'


class TestValidateFollowUp:

    @pytest.mark.parametrize('follow_up', [
        None,
        FollowUp(value=None, unit='days'),
        FollowUp(value='', unit='weeks'),
        FollowUp(value=0, unit='days'),
        FollowUp(value='0', unit='days'),
        FollowUp(value=' 0 ', unit='weeks'),
    ])
    def test_missing_value_collapses_to_none(self, follow_up):
        assert validate_follow_up(follow_up) is None

    def test_numeric_string_converted(self):
        assert validate_follow_up(FollowUp(value='2', unit='weeks')) == FollowUp(value=2, unit='weeks')

    def test_negative_value_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_follow_up(FollowUp(value=-3, unit='days'))
        assert 'followUp' in exc_info.value.fields

    def test_unknown_unit_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_follow_up(FollowUp(value=3, unit='years'))
        assert 'followUpUnit' in exc_info.value.fields


class TestValidateNotes:

    def test_none_is_empty(self):
        assert validate_notes(None) == ''

    @pytest.mark.parametrize('notes', [123, ['fever'], {'text': 'fever'}])
    def test_non_text_rejected(self, notes):
        with pytest.raises(ValidationError) as exc_info:
            validate_notes(notes)
        assert exc_info.value.fields == {'notes': 'Notes must be text'}


class TestValidateMedicines:

    def test_valid_rows_pass(self):
        validate_medicines([Medicine(name='A', dosage='1-0-1', duration='5 days')])

    def test_row_errors_keyed_by_position_and_id(self):
        good = Medicine(name='A', dosage='1-0-1', duration='5 days')
        bad = Medicine(name='B', dosage='2 times', duration='')

        with pytest.raises(ValidationError) as exc_info:
            validate_medicines([good, bad])

        detail = exc_info.value.detail
        assert detail['fields'] == {
            'medicine_1_dosage': 'Dosage must look like 1-0-1',
            'medicine_1_duration': 'Duration is required',
        }
        assert detail['medicine_errors'] == {
            bad.id: {'dosage': 'Dosage must look like 1-0-1', 'duration': 'Duration is required'},
        }

    def test_missing_dosage(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_medicines([Medicine(name='A', dosage='', duration='5 days')])
        assert exc_info.value.fields == {'medicine_0_dosage': 'Dosage is required'}
