"""
后端字段错误 → 表单字段名。

后端 error.details 形如：
  {"mobile_number": ["Invalid"], "prescription_items.0.dosage": ["Bad format"]}
转换后：
  {"mobile": "Invalid", "medicine_0_dosage": "Bad format"}
"""

import re

FIELD_NAME_MAP = {
    # Appointment
    'appointment_date_time': 'appointmentDateTime',
    'appointment_status': 'appointmentStatus',
    'doctor_id': 'doctor',
    # Patient
    'mobile_number': 'mobile',
    'name': 'name',
    'age': 'age',
    'gender': 'gender',
    'date_of_birth': 'dateOfBirth',
    # Visit
    'patient_id': 'patient',
    'visit_id': 'visit',
    'visit_reason': 'visitReason',
    'visit_status': 'visitStatus',
    'visit_date': 'visitDate',
    # Prescription
    'prescription_id': 'prescription',
    'follow_up': 'followUp',
    'follow_up_unit': 'followUpUnit',
    'notes': 'notes',
    'prescription_items': 'medicines',
    # Common
    'clinic_id': 'clinic',
}

# 药品行字段：API 名 → Medicine 属性名
MEDICINE_FIELD_MAP = {
    'medicine': 'name',
    'dosage': 'dosage',
    'duration': 'duration',
    'notes': 'notes',
}

MEDICINE_KEY_RE = re.compile(r"^medicine_(\d+)_(\w+)$")


def _first_message(messages) -> str:
    if isinstance(messages, (list, tuple)):
        return str(messages[0]) if messages else ''
    if isinstance(messages, str):
        return messages
    return ''


def extract_validation_errors(details) -> dict:
    """后端 details → {form_field: message}。无法识别的结构返回空 dict。"""
    errors = {}
    if not isinstance(details, dict):
        return errors

    for field, messages in details.items():
        message = _first_message(messages)
        if not message:
            continue

        parts = str(field).split('.')
        if 'prescription_items' in parts:
            idx = parts.index('prescription_items')
            rest = parts[idx + 1:]
            if rest and rest[0].isdigit():
                api_field = rest[1] if len(rest) > 1 else parts[-1]
                errors[f"medicine_{rest[0]}_{api_field}"] = message
                continue

        last = parts[-1]
        errors[FIELD_NAME_MAP.get(last, last)] = message

    return errors


def medicine_errors_by_row(fields: dict, medicines: list) -> dict:
    """
    medicine_<index>_<field> → {medicine.id: {attr: message}}。

    index 指向发给后端的（已过滤）列表，所以要用同一个列表回查行 id。
    """
    by_row = {}
    for key, message in fields.items():
        match = MEDICINE_KEY_RE.match(key)
        if not match:
            continue
        index = int(match.group(1))
        if index >= len(medicines):
            continue
        attr = MEDICINE_FIELD_MAP.get(match.group(2), match.group(2))
        by_row.setdefault(medicines[index].id, {})[attr] = message
    return by_row
