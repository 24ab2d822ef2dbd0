"""
REST API 字段 ↔ 领域对象。

只做格式转换，不做校验；校验在 validators.py。
"""

from datetime import date

from django.utils.dateparse import parse_datetime

from ..types import (
    Appointment,
    FollowUp,
    Medicine,
    Patient,
    Prescription,
    Visit,
    WAITING,
)

GENDER_TO_API = {'M': 'MALE', 'F': 'FEMALE'}
GENDER_FROM_API = {'MALE': 'M', 'M': 'M', 'FEMALE': 'F', 'F': 'F'}

UNIT_TO_API = {'days': 'DAYS', 'weeks': 'WEEKS', 'months': 'MONTHS'}
UNIT_FROM_API = {v: k for k, v in UNIT_TO_API.items()}


def _dt(value):
    if not value:
        return None
    if isinstance(value, str):
        return parse_datetime(value)
    return value


def gender_from_api(value):
    if not value:
        return None
    return GENDER_FROM_API.get(str(value).upper())


def age_to_date_of_birth(age, today=None):
    """按年龄估算出生日期：当前年份减 age 的 1 月 1 日。"""
    if age is None or age < 0:
        return None
    today = today or date.today()
    return date(today.year - age, 1, 1).isoformat()


# ── Patient ────────────────────────────────────────────────────────────────

def patient_from_api(data: dict) -> Patient:
    age = data.get('age')
    return Patient(
        id=str(data['id']),
        name=data.get('name') or '',
        mobile=data.get('mobile_number') or '',
        age=age if isinstance(age, int) and not isinstance(age, bool) else None,
        gender=gender_from_api(data.get('gender')),
        created_at=_dt(data.get('created_at')),
    )


def patient_to_api(name, mobile, gender, age=None) -> dict:
    return {
        'name': name,
        'mobile_number': mobile,
        'gender': GENDER_TO_API.get(gender, 'MALE'),
        'date_of_birth': age_to_date_of_birth(age),
    }


# ── Visit ──────────────────────────────────────────────────────────────────

def visit_from_api(data: dict) -> Visit:
    patient = data.get('patient')
    patient_id = data.get('patient_id') or (patient or {}).get('id')
    return Visit(
        id=str(data['id']),
        patient_id=str(patient_id) if patient_id else '',
        status=data.get('visit_status') or WAITING,
        date=_dt(data.get('visit_date') or data.get('created_at')),
        doctor_id=data.get('doctor_id'),
        clinic_id=data.get('clinic_id'),
        notes=data.get('notes') or '',
        visit_reason=data.get('visit_reason') or '',
        prescription_id=data.get('prescription_id') or None,
    )


def visit_to_api(patient_id, clinic_id, doctor_id, visit_reason, status) -> dict:
    return {
        'patient_id': patient_id,
        'clinic_id': clinic_id,
        'doctor_id': doctor_id,
        'visit_reason': visit_reason or '',
        'visit_status': status,
    }


# ── Prescription ───────────────────────────────────────────────────────────

def prescription_from_api(data: dict) -> Prescription:
    medicines = [
        Medicine(
            id=str(item['id']) if item.get('id') else Medicine().id,
            name=item.get('medicine') or '',
            dosage=item.get('dosage') or '',
            duration=item.get('duration') or '',
            notes=item.get('notes') or '',
        )
        for item in data.get('prescription_items') or []
    ]

    follow_up = None
    if data.get('follow_up') and data.get('follow_up_unit'):
        follow_up = FollowUp(
            value=data['follow_up'],
            unit=UNIT_FROM_API.get(data['follow_up_unit'], 'days'),
        )

    return Prescription(
        id=str(data['id']) if data.get('id') else None,
        medicines=medicines,
        follow_up=follow_up,
        notes=data.get('notes') or '',
    )


def prescription_to_api(prescription: Prescription) -> dict:
    """
    领域处方 → 请求体。

    占位行在这里再过滤一次，notes 始终是字符串（后端不接受 null）。
    """
    follow_up = prescription.follow_up
    return {
        'follow_up': follow_up.value if follow_up else None,
        'follow_up_unit': UNIT_TO_API[follow_up.unit] if follow_up else None,
        'notes': prescription.notes or '',
        'prescription_items': [
            {
                'medicine': med.name.strip(),
                'dosage': med.dosage.strip(),
                'duration': med.duration.strip(),
                'notes': (med.notes or '').strip(),
            }
            for med in prescription.medicines
            if not med.is_placeholder
        ],
    }


def whatsapp_payload(patient_id, visit_id, mobile, prescription: Prescription) -> dict:
    follow_up = prescription.follow_up
    return {
        'patientId': patient_id,
        'visitId': visit_id,
        'mobile': mobile,
        'prescription': {
            'medicines': [
                {
                    'name': med.name,
                    'dosage': med.dosage,
                    'duration': med.duration,
                    'notes': med.notes or '',
                }
                for med in prescription.medicines
                if not med.is_placeholder
            ],
            'followUp': (
                {'value': follow_up.value, 'unit': follow_up.unit} if follow_up else None
            ),
        },
    }


# ── Appointment ────────────────────────────────────────────────────────────

def appointment_from_api(data: dict) -> Appointment:
    doctor = data.get('doctor') or {}
    return Appointment(
        id=str(data['id']),
        name=data.get('name') or '',
        mobile=data.get('mobile_number') or '',
        doctor_id=doctor.get('id') or data.get('doctor_id'),
        appointment_date_time=_dt(data.get('appointment_date_time')),
        status=data.get('appointment_status') or 'WAITING',
    )
