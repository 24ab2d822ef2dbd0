"""
客户端预检。

这里抛出的 ValidationError 一定发生在网络请求之前；
字段级错误统一放在 detail['fields']，key 是表单字段名。
"""

import re

from django.conf import settings

from .exceptions import ValidationError
from .types import FOLLOW_UP_UNITS, GENDERS, FollowUp, Medicine, PatientDraft

# ── 共用校验正则 ────────────────────────────────────────────────────────────
_PHONE_NOISE_RE = re.compile(r"[\s\-()]")
_DIGITS_RE = re.compile(r"^[0-9]+$")
MOBILE_RE = re.compile(r"^[6-9][0-9]{9}$")
DOSAGE_RE = re.compile(r"^\d-\d-\d$")

MOBILE_LENGTH = 10
MOBILE_LEADING_DIGITS = "6789"


def _country_code() -> str:
    return str(getattr(settings, 'PHONE_COUNTRY_CODE', '91'))


def _mobile_error(message):
    return ValidationError(message=message, detail={'fields': {'mobile': message}})


def normalize_mobile(raw: str) -> str:
    """
    手机号 → 10 位本地号码（比较和搜索都用它）。

    接受可选国家码前缀（+91 / 91），空格、横线、括号会被忽略。
    不合法直接抛 ValidationError，调用方不应再发起查询。
    """
    if raw is None or not str(raw).strip():
        raise _mobile_error('Mobile number is required')

    cleaned = _PHONE_NOISE_RE.sub('', str(raw))
    code = _country_code()

    if cleaned.startswith('+'):
        if not cleaned.startswith(f"+{code}"):
            raise _mobile_error(f"Only +{code} mobile numbers are supported")
        cleaned = cleaned[len(code) + 1:]
    elif len(cleaned) == MOBILE_LENGTH + len(code) and cleaned.startswith(code):
        cleaned = cleaned[len(code):]

    if not _DIGITS_RE.match(cleaned):
        raise _mobile_error('Mobile number may contain digits only')
    if len(cleaned) < MOBILE_LENGTH:
        raise _mobile_error('Mobile number is too short')
    if len(cleaned) > MOBILE_LENGTH:
        raise _mobile_error('Mobile number is too long')
    if cleaned[0] not in MOBILE_LEADING_DIGITS:
        raise _mobile_error('Mobile number must start with 6, 7, 8 or 9')

    return cleaned


def is_valid_mobile(raw: str) -> bool:
    try:
        normalize_mobile(raw)
    except ValidationError:
        return False
    return True


def to_e164(local_number: str) -> str:
    """10 位本地号码 → +<国家码><号码>。"""
    return f"+{_country_code()}{local_number}"


def format_dosage(value: str) -> str:
    """
    把输入整理成 X-Y-Z（例如 "101" → "1-0-1"）。

    只保留数字，最多 3 位，自动插入横线。
    """
    digits = re.sub(r"\D", "", value or "")[:3]
    return "-".join(digits)


def parse_age(value):
    """'' / None → None；其它必须是非负整数，否则返回原值交给校验报错。"""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return value


def validate_patient_draft(draft: PatientDraft) -> str:
    """
    新建患者表单校验。返回规范化后的 10 位手机号。

    - name   必填
    - mobile 必须合法
    - gender 必填，M / F
    - age    可选，填了就必须是非负整数
    """
    errors = {}
    local_number = None

    if not (draft.name or '').strip():
        errors['name'] = 'Name is required'

    try:
        local_number = normalize_mobile(draft.mobile)
    except ValidationError as exc:
        errors.update(exc.fields)

    if draft.gender not in GENDERS:
        errors['gender'] = 'Gender is required'

    age = parse_age(draft.age)
    if age is not None and (not isinstance(age, int) or isinstance(age, bool) or age < 0):
        errors['age'] = 'Age must be a valid number'

    if errors:
        raise ValidationError(
            message='Please fix the highlighted fields.',
            detail={'fields': errors},
        )
    return local_number


def validate_follow_up(follow_up):
    """
    随访可选。没有 value 时视为"无随访"，不会生成 0 值记录。

    Returns:
        FollowUp 或 None
    """
    if follow_up is None:
        return None

    value = follow_up.value
    if isinstance(value, str):
        value = value.strip()
        if value.isdigit():
            value = int(value)
    # "0" 和 0 一样按无随访处理
    if value in (None, '', 0) and not isinstance(value, bool):
        return None

    errors = {}
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        errors['followUp'] = 'Follow-up value must be a positive whole number'
    if follow_up.unit not in FOLLOW_UP_UNITS:
        errors['followUpUnit'] = 'Follow-up unit must be days, weeks or months'

    if errors:
        raise ValidationError(
            message='Invalid follow-up.',
            detail={'fields': errors},
        )
    return FollowUp(value=value, unit=follow_up.unit)


def validate_notes(notes) -> str:
    """问诊备注必须是文本；None 视为空备注。"""
    if notes is None:
        return ''
    if not isinstance(notes, str):
        message = 'Notes must be text'
        raise ValidationError(message=message, detail={'fields': {'notes': message}})
    return notes


def validate_medicines(medicines: list[Medicine]) -> None:
    """
    逐行校验已过滤的药品列表（不含占位行）。

    错误 key 用过滤后列表的位置：medicine_<index>_<field>，
    与后端 prescription_items.<index>.<field> 的映射保持一致。
    """
    errors = {}
    medicine_errors = {}

    for index, medicine in enumerate(medicines):
        row = {}
        if not (medicine.dosage or '').strip():
            row['dosage'] = 'Dosage is required'
        elif not DOSAGE_RE.match(medicine.dosage.strip()):
            row['dosage'] = 'Dosage must look like 1-0-1'
        if not (medicine.duration or '').strip():
            row['duration'] = 'Duration is required'

        for field_name, message in row.items():
            errors[f"medicine_{index}_{field_name}"] = message
        if row:
            medicine_errors[medicine.id] = row

    if errors:
        raise ValidationError(
            message='Please complete every medicine row.',
            detail={'fields': errors, 'medicine_errors': medicine_errors},
        )
