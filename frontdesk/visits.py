"""
Visit 状态机。

    WAITING --start--> IN_PROGRESS --complete--> COMPLETED

- 新建 visit 一律 WAITING，调用方传什么都不会直接进 IN_PROGRESS
- start 不做幂等检查：对 IN_PROGRESS 再调用一次会再写一次后端
- complete 必须带上本次调用链里保存处方返回的 prescription_id
- 任何写失败都直接抛出，内存里的 Visit 对象不会被改动（没有乐观更新）
- 备注 last-write-wins，没有冲突检测
"""

import logging
from typing import Optional

from .exceptions import BlockError, ValidationError
from .gateway import BaseClinicBackend
from .types import COMPLETED, IN_PROGRESS, WAITING, Patient, Visit
from .validators import validate_notes

logger = logging.getLogger(__name__)


class VisitLifecycle:

    def __init__(self, backend: BaseClinicBackend, clinic_id: Optional[str] = None):
        self.backend = backend
        self.clinic_id = clinic_id

    # ── 读取 ───────────────────────────────────────────────────────────────

    def get(self, visit_id: str, with_prescription: bool = False) -> Visit:
        """Fetch a visit; optionally attach the linked prescription snapshot."""
        visit = self.backend.get_visit(visit_id)
        if with_prescription:
            self.attach_prescription(visit)
        return visit

    def attach_prescription(self, visit: Visit) -> Visit:
        """写操作返回的 visit 不带处方快照，补上之后 stepper 才能算对步骤。"""
        if visit.prescription_id and visit.prescription is None:
            visit.prescription = self.backend.get_prescription(visit.prescription_id)
        return visit

    # ── 创建 ───────────────────────────────────────────────────────────────

    def create(self, patient_id: str, doctor_id=None, reason: str = '', status: Optional[str] = None) -> Visit:
        """
        新建 visit，初始状态固定为 WAITING。

        status 只是调用方的提示（"即时就诊"入口会显式传 WAITING），其他值被忽略。
        """
        if not patient_id:
            raise ValidationError(
                message='Patient is required',
                detail={'fields': {'patient': 'Patient is required'}},
            )
        if status not in (None, WAITING):
            logger.warning("[Visit] 忽略初始状态提示 %s，新 visit 一律 WAITING", status)

        visit = self.backend.create_visit(
            patient_id=patient_id,
            status=WAITING,
            clinic_id=self.clinic_id,
            doctor_id=doctor_id,
            visit_reason=reason or '',
        )
        logger.info("[Visit] 创建完成 id=%s patient=%s", visit.id, patient_id)
        return visit

    def open_for_patient(self, patient: Patient, doctor_id=None, reason: str = '') -> Visit:
        """选中已有患者：有进行中的 visit 就复用，否则新建一个 WAITING。"""
        active = self.backend.list_patient_visits(patient.id, status=IN_PROGRESS, limit=1)
        if active:
            logger.info("[Visit] 复用进行中的 visit id=%s", active[0].id)
            return self.attach_prescription(active[0])
        return self.create(patient.id, doctor_id=doctor_id, reason=reason)

    # ── 状态迁移 ───────────────────────────────────────────────────────────

    def start(self, visit: Visit) -> Visit:
        """WAITING → IN_PROGRESS（开始问诊）。"""
        if visit.status == COMPLETED:
            raise BlockError(
                message='Visit is already completed',
                code='INVALID_TRANSITION',
                detail={'visit_id': visit.id, 'from': visit.status, 'to': IN_PROGRESS},
            )
        if visit.status == IN_PROGRESS:
            logger.warning("[Visit] visit=%s 已经是 IN_PROGRESS，仍然重新写入", visit.id)

        updated = self.backend.update_visit_status(visit.id, IN_PROGRESS)
        logger.info("[Visit] visit=%s %s → %s", visit.id, visit.status, updated.status)
        return self.attach_prescription(updated)

    def complete(self, visit: Visit, prescription_id: Optional[str]) -> Visit:
        """
        IN_PROGRESS → COMPLETED。

        prescription_id 必须来自同一调用链里 binder.save() 的返回值；
        已经 COMPLETED 的 visit 直接返回，不再写后端。
        """
        if not prescription_id:
            raise ValidationError(
                message='Please add at least one medicine',
                code='VALIDATION_ERROR',
                detail={'fields': {'medicines': 'At least one medicine is required'}},
            )
        if visit.status == COMPLETED:
            return visit
        self.ensure_completable(visit)

        updated = self.backend.update_visit_status(visit.id, COMPLETED)
        logger.info("[Visit] visit=%s 已完成 prescription=%s", visit.id, prescription_id)
        return updated

    def ensure_completable(self, visit: Visit) -> None:
        """终结动作的前置检查，在任何副作用之前调用。"""
        if visit.status not in (IN_PROGRESS, COMPLETED):
            raise BlockError(
                message='Start the consultation before finishing the visit',
                code='INVALID_TRANSITION',
                detail={'visit_id': visit.id, 'from': visit.status, 'to': COMPLETED},
            )

    # ── 备注 ───────────────────────────────────────────────────────────────

    def save_notes(self, visit: Visit, notes: str) -> Visit:
        """问诊备注，last-write-wins。COMPLETED 之后不允许再改。"""
        if visit.status == COMPLETED:
            raise BlockError(
                message='Notes cannot be changed after the visit is completed',
                code='INVALID_TRANSITION',
                detail={'visit_id': visit.id},
            )
        updated = self.backend.update_visit_notes(visit.id, validate_notes(notes))
        return self.attach_prescription(updated)

    def autosave_notes(self, visit: Visit, notes: str, access_token: Optional[str] = None) -> None:
        """
        备注自动保存：丢给 Celery，不等结果、不重试。

        离开页面不会取消已经提交的保存。
        """
        notes = validate_notes(notes)
        if visit.status == COMPLETED:
            return
        from frontdesk.tasks import autosave_visit_notes
        autosave_visit_notes.delay(visit.id, notes, access_token)
