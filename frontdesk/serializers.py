"""
Serializers — 领域对象 ↔ JSON-able dict。

输出：serialize_*，只做格式化。
输入：parse_*，把请求体转换成领域对象，只做形状转换（去空白、dosage 规范化）；
真正的业务校验在 binder.prepare() / validators 里。
"""

from .stepper import VISIT_STEPS, allowed_actions, step
from .types import FollowUp, Medicine, PatientDraft, Prescription
from .validators import format_dosage


def _iso(value):
    return value.isoformat() if value else None


# ── 输出 ───────────────────────────────────────────────────────────────────

def serialize_patient(patient):
    if patient is None:
        return None
    return {
        'id': patient.id,
        'name': patient.name,
        'mobile': patient.mobile,
        'age': patient.age,
        'gender': patient.gender,
        'created_at': _iso(patient.created_at),
    }


def serialize_resolution(resolution):
    """resolve() 的结果：找到 → patient；找不到 → 预填手机号的 draft。"""
    if resolution.found:
        return {
            'found': True,
            'match_count': resolution.match_count,
            'patient': serialize_patient(resolution.patient),
        }
    draft = resolution.draft
    return {
        'found': False,
        'match_count': 0,
        'draft': {
            'mobile': draft.mobile,
            'name': draft.name,
            'gender': draft.gender,
            'age': draft.age,
        },
    }


def serialize_medicine(medicine):
    return {
        'id': medicine.id,
        'name': medicine.name,
        'dosage': medicine.dosage,
        'duration': medicine.duration,
        'notes': medicine.notes,
    }


def with_blank_row(medicines):
    """编辑列表末尾始终保留一行空白占位行。"""
    rows = list(medicines)
    if not rows or not rows[-1].is_placeholder:
        rows.append(Medicine())
    return rows


def serialize_prescription(prescription, editable=False):
    if prescription is None:
        return None
    medicines = with_blank_row(prescription.medicines) if editable else prescription.medicines
    follow_up = prescription.follow_up
    return {
        'id': prescription.id,
        'medicines': [serialize_medicine(m) for m in medicines],
        'follow_up': {'value': follow_up.value, 'unit': follow_up.unit} if follow_up else None,
        'notes': prescription.notes,
    }


def serialize_visit(visit):
    """visit + 由它推导出的步骤和可用操作。"""
    return {
        'id': visit.id,
        'patient_id': visit.patient_id,
        'status': visit.status,
        'date': _iso(visit.date),
        'doctor_id': visit.doctor_id,
        'clinic_id': visit.clinic_id,
        'notes': visit.notes,
        'visit_reason': visit.visit_reason,
        'prescription_id': visit.prescription_id,
        'prescription': serialize_prescription(visit.prescription, editable=True),
        'step': step(visit),
        'steps': VISIT_STEPS,
        'allowed_actions': allowed_actions(visit),
    }


def serialize_visit_list(visits):
    return {
        'count': len(visits),
        'visits': [serialize_visit(v) for v in visits],
    }


def serialize_save_result(result):
    return {'prescription_id': result.prescription_id, 'action': result.action}


def serialize_delivery_outcome(outcome):
    body = {
        'visit': serialize_visit(outcome.visit),
        'save': serialize_save_result(outcome.save),
        'next_screen': outcome.next_screen,
    }
    if outcome.message:
        body['message'] = outcome.message
    return body


def serialize_print_job(job):
    return {
        'visit': serialize_visit(job.visit),
        'patient': serialize_patient(job.patient),
        'prescription': serialize_prescription(job.prescription),
        'prescription_id': job.prescription_id,
        'next_screen': 'print-preview',
        'download_url': f'/api/visits/{job.visit.id}/print/',
    }


def serialize_appointment(appointment):
    return {
        'id': appointment.id,
        'name': appointment.name,
        'mobile': appointment.mobile,
        'doctor_id': appointment.doctor_id,
        'appointment_date_time': _iso(appointment.appointment_date_time),
        'status': appointment.status,
    }


# ── 输入 ───────────────────────────────────────────────────────────────────

def _text(value):
    if value is None:
        return ''
    return str(value).strip()


def parse_patient_draft(data) -> PatientDraft:
    return PatientDraft(
        mobile=_text(data.get('mobile')),
        name=_text(data.get('name')),
        gender=_text(data.get('gender')).upper(),
        age=data.get('age'),
    )


def parse_medicine(data) -> Medicine:
    medicine = Medicine(
        name=_text(data.get('name')),
        dosage=format_dosage(_text(data.get('dosage'))),
        duration=_text(data.get('duration')),
        notes=_text(data.get('notes')),
    )
    if data.get('id'):
        medicine.id = str(data['id'])
    return medicine


def parse_follow_up(data):
    """没有 value 的随访原样交给 validators，由它折叠成 None。"""
    if not data:
        return None
    if not isinstance(data, dict):
        return FollowUp(value=data, unit='days')
    return FollowUp(value=data.get('value'), unit=_text(data.get('unit')) or 'days')


def parse_prescription_draft(data) -> Prescription:
    """请求体 → 处方草稿。占位行保留，由 binder.prepare() 统一丢弃。"""
    return Prescription(
        medicines=[parse_medicine(m) for m in data.get('medicines') or [] if isinstance(m, dict)],
        follow_up=parse_follow_up(data.get('follow_up')),
        notes=_text(data.get('notes')),
    )
