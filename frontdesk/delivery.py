"""
Delivery Dispatcher — 三个终结动作。

共同前提：先保存处方，拿到 prescription_id 之后才允许把 visit 标记为 COMPLETED。
保存和改状态严格串行，任何一步失败都不会进入下一步。

  finish          保存 → COMPLETED → 回到 visit 列表
  prepare_print   保存 → 打印预览（不改状态）
  confirm_print   预览里点打印 → COMPLETED
  send_whatsapp   保存 → 发送 → 成功才 COMPLETED；失败保持 IN_PROGRESS，由用户手动重试
"""

import logging
from typing import Optional

from .binder import PrescriptionBinder
from .exceptions import BlockError, DeliveryError
from .gateway import BaseClinicBackend
from .types import DeliveryOutcome, Patient, Prescription, PrintJob, Visit
from .visits import VisitLifecycle

logger = logging.getLogger(__name__)


class DeliveryDispatcher:

    def __init__(
        self,
        backend: BaseClinicBackend,
        binder: PrescriptionBinder,
        lifecycle: VisitLifecycle,
        session=None,
    ):
        self.backend = backend
        self.binder = binder
        self.lifecycle = lifecycle
        self.session = session

    def _notify(self, kind, title, description=''):
        if self.session is not None:
            self.session.notify(kind, title, description)

    def finish(self, visit: Visit, draft: Prescription) -> DeliveryOutcome:
        """Save the prescription, complete the visit, go back to the visit list."""
        self.lifecycle.ensure_completable(visit)
        saved = self.binder.save(visit, draft)
        completed = self.lifecycle.complete(visit, saved.prescription_id)

        self._notify('success', 'Visit completed')
        return DeliveryOutcome(visit=completed, save=saved, next_screen='visit-list')

    def prepare_print(self, visit: Visit, draft: Prescription, patient: Optional[Patient] = None) -> PrintJob:
        """保存处方并生成打印预览。到达预览不改变 visit 状态。"""
        saved = self.binder.save(visit, draft)
        prescription = self.backend.get_prescription(saved.prescription_id)
        if patient is None:
            patient = self.backend.get_patient(visit.patient_id)

        # 预览里的 visit 要带上刚保存的处方，步骤条才会停在 Print
        previewed = self.backend.get_visit(visit.id)
        previewed.prescription_id = previewed.prescription_id or saved.prescription_id
        previewed.prescription = prescription

        self._notify('success', 'Prescription saved')
        return PrintJob(
            visit=previewed,
            patient=patient,
            prescription=prescription,
            prescription_id=saved.prescription_id,
        )

    def confirm_print(self, visit: Visit, prescription_id: str) -> Visit:
        """
        预览页的打印按钮。

        prescription_id 必须是 prepare_print 保存时返回的那个，并且仍然是该 visit 绑定的处方。
        """
        linked = self.binder.linked_prescription_id(visit)
        if not prescription_id or prescription_id != linked:
            raise BlockError(
                message='Save the prescription before printing',
                code='PRESCRIPTION_NOT_SAVED',
                detail={'visit_id': visit.id, 'prescription_id': prescription_id},
            )

        completed = self.lifecycle.complete(visit, prescription_id)
        self._notify('success', 'Visit completed')
        return completed

    def send_whatsapp(self, visit: Visit, draft: Prescription, patient: Optional[Patient] = None) -> DeliveryOutcome:
        """保存 → WhatsApp → COMPLETED。发送失败抛 DeliveryError，visit 不动。"""
        self.lifecycle.ensure_completable(visit)
        saved = self.binder.save(visit, draft)
        if patient is None:
            patient = self.backend.get_patient(visit.patient_id)
        prescription = self.backend.get_prescription(saved.prescription_id)

        result = self.backend.send_prescription_whatsapp(
            patient_id=patient.id,
            visit_id=visit.id,
            mobile=patient.mobile,
            prescription=prescription,
        )
        if not result.success:
            logger.warning("[Delivery] visit=%s WhatsApp 发送失败: %s", visit.id, result.message)
            raise DeliveryError(
                message=result.message or 'Could not send prescription on WhatsApp',
                detail={
                    'visit_id': visit.id,
                    'prescription_id': saved.prescription_id,
                    'retry_allowed': True,
                },
            )

        completed = self.lifecycle.complete(visit, saved.prescription_id)
        self._notify('success', 'Prescription sent on WhatsApp', result.message)
        return DeliveryOutcome(
            visit=completed,
            save=saved,
            next_screen='visit-list',
            message=result.message,
        )


def render_print_preview(job: PrintJob) -> str:
    """打印预览的纯文本版本（下载 / 打印机直出用）。"""
    patient = job.patient
    lines = [
        'PRESCRIPTION',
        '=' * 40,
        f"Patient: {patient.name if patient else '-'}",
        f"Mobile:  {patient.mobile if patient else '-'}",
    ]
    if patient and (patient.age is not None or patient.gender):
        lines.append(f"Age/Sex: {patient.age if patient.age is not None else '-'} / {patient.gender or '-'}")
    if job.visit.date:
        lines.append(f"Date:    {job.visit.date.strftime('%Y-%m-%d')}")
    if job.visit.notes:
        lines += ['', 'Notes:', job.visit.notes.strip()]

    lines += ['', 'Rx']
    for index, med in enumerate(job.prescription.medicines, start=1):
        line = f"{index}. {med.name}  {med.dosage}  x {med.duration}"
        if med.notes:
            line += f"  ({med.notes})"
        lines.append(line)

    follow_up = job.prescription.follow_up
    if follow_up:
        lines += ['', f"Follow-up after {follow_up.value} {follow_up.unit}"]
    if job.prescription.notes:
        lines += ['', f"Advice: {job.prescription.notes}"]
    return '\n'.join(lines) + '\n'
