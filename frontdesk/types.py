"""
领域对象 — 核心流程唯一认识的标准格式。

后端 gateway（REST / Local）负责把外部数据转换成这些 dataclass，
resolver / visits / binder / stepper / delivery 只消费它们，永远不碰原始 JSON。
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

# ── Visit 状态 ──────────────────────────────────────────────────────────────
WAITING = 'WAITING'
IN_PROGRESS = 'IN_PROGRESS'
COMPLETED = 'COMPLETED'
VISIT_STATUSES = (WAITING, IN_PROGRESS, COMPLETED)

# ── Appointment 状态（与 Visit 状态无关的独立枚举）────────────────────────
APPOINTMENT_WAITING = 'WAITING'
CHECKED_IN = 'CHECKED_IN'
NO_SHOW = 'NO_SHOW'
APPOINTMENT_STATUSES = (APPOINTMENT_WAITING, CHECKED_IN, NO_SHOW)

FOLLOW_UP_UNITS = ('days', 'weeks', 'months')
GENDERS = ('M', 'F')


def new_medicine_id() -> str:
    return f"medicine_{uuid.uuid4().hex[:12]}"


@dataclass
class Patient:
    id: str
    name: str
    mobile: str                         # 带国家码，例如 +919876543210
    age: Optional[int] = None
    gender: Optional[str] = None        # 'M' | 'F'
    created_at: Optional[datetime] = None


@dataclass
class PatientDraft:
    """新建患者表单。resolver 查不到时预填手机号返回给调用方。"""

    mobile: str = ''
    name: str = ''
    gender: str = ''
    age: Optional[int] = None


@dataclass
class Resolution:
    """resolve() 的结果：要么 patient，要么 draft。"""

    patient: Optional[Patient] = None
    draft: Optional[PatientDraft] = None
    match_count: int = 0

    @property
    def found(self) -> bool:
        return self.patient is not None


@dataclass
class FollowUp:
    value: int
    unit: str                           # days | weeks | months


@dataclass
class Medicine:
    name: str = ''
    dosage: str = ''                    # 规范格式 D-D-D，例如 1-0-1
    duration: str = ''
    notes: str = ''
    id: str = field(default_factory=new_medicine_id)

    @property
    def is_placeholder(self) -> bool:
        """名字为空的行是 UI 占位行，保存前丢弃。"""
        return not (self.name or '').strip()


@dataclass
class Prescription:
    medicines: list[Medicine] = field(default_factory=list)
    follow_up: Optional[FollowUp] = None
    notes: str = ''
    id: Optional[str] = None


@dataclass
class Visit:
    """
    一次就诊。

    prescription_id  有且仅当处方至少保存过一次，binder 只看它决定 create / update。
    prescription     已加载的处方快照（可选），stepper 用它判断进度。
    """

    id: str
    patient_id: str
    status: str = WAITING
    date: Optional[datetime] = None
    doctor_id: Optional[str] = None
    clinic_id: Optional[str] = None
    notes: str = ''
    visit_reason: str = ''
    prescription_id: Optional[str] = None
    prescription: Optional[Prescription] = field(default=None, repr=False)


@dataclass
class SaveResult:
    prescription_id: str
    action: str                         # 'create' | 'update'


@dataclass
class Appointment:
    id: str
    name: str
    mobile: str
    doctor_id: Optional[str] = None
    appointment_date_time: Optional[datetime] = None
    status: str = APPOINTMENT_WAITING


@dataclass
class WhatsAppResult:
    success: bool
    message: str = ''


@dataclass
class PrintJob:
    """
    打印预览。

    prescription_id 来自准备预览时那次保存的返回值，确认打印时必须原样带回，
    否则不允许把 visit 标记为 COMPLETED。
    """

    visit: Visit
    patient: Optional[Patient]
    prescription: Prescription
    prescription_id: str


@dataclass
class DeliveryOutcome:
    visit: Visit
    save: SaveResult
    next_screen: str                    # 'visit-list' | 'print-preview'
    message: str = ''
