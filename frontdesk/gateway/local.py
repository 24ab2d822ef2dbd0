"""
LocalBackend — Django ORM 实现，替代旧的 localStorage 镜像。

用于离线 / 开发 / 测试。行为与 RestBackend 对齐：
- 查不到抛 NotFoundError
- 只接受 CLINIC_BACKEND=local 显式选择，不做自动降级
"""

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import Q

from .. import models
from ..exceptions import NotFoundError
from ..types import (
    Appointment,
    FollowUp,
    Medicine,
    Patient,
    Prescription,
    Visit,
    WAITING,
    WhatsAppResult,
)
from .base import BaseClinicBackend
from .mapping import UNIT_FROM_API, UNIT_TO_API

logger = logging.getLogger(__name__)


def _patient(row) -> Patient:
    return Patient(
        id=str(row.id),
        name=row.name,
        mobile=row.mobile_number,
        age=row.age,
        gender=row.gender or None,
        created_at=row.created_at,
    )


def _visit(row) -> Visit:
    return Visit(
        id=str(row.id),
        patient_id=str(row.patient_id),
        status=row.visit_status,
        date=row.created_at,
        doctor_id=row.doctor_id,
        clinic_id=row.clinic_id,
        notes=row.notes,
        visit_reason=row.visit_reason,
        prescription_id=str(row.prescription_id) if row.prescription_id else None,
    )


def _prescription(row) -> Prescription:
    follow_up = None
    if row.follow_up and row.follow_up_unit:
        follow_up = FollowUp(value=row.follow_up, unit=UNIT_FROM_API[row.follow_up_unit])
    return Prescription(
        id=str(row.id),
        medicines=[
            Medicine(
                id=str(item.id),
                name=item.medicine,
                dosage=item.dosage,
                duration=item.duration,
                notes=item.notes,
            )
            for item in row.items.all()
        ],
        follow_up=follow_up,
        notes=row.notes,
    )


def _appointment(row) -> Appointment:
    return Appointment(
        id=str(row.id),
        name=row.name,
        mobile=row.mobile_number,
        doctor_id=row.doctor_id,
        appointment_date_time=row.appointment_date_time,
        status=row.appointment_status,
    )


class LocalBackend(BaseClinicBackend):

    name = "local"

    def _get(self, model, pk, label):
        try:
            return model.objects.get(pk=pk)
        except (model.DoesNotExist, DjangoValidationError, ValueError, TypeError):
            # 非法 UUID 也当作不存在
            raise NotFoundError(
                message=f"{label} not found",
                detail={f"{label.lower()}_id": str(pk)},
            )

    # ── Patient ────────────────────────────────────────────────────────────

    def search_patients(self, query, limit=20):
        rows = models.Patient.objects.filter(
            Q(mobile_number__endswith=query) | Q(name__icontains=query)
        ).order_by('-created_at')[:limit]
        return [_patient(r) for r in rows]

    def get_patient(self, patient_id):
        return _patient(self._get(models.Patient, patient_id, 'Patient'))

    def create_patient(self, name, mobile, gender, age=None):
        row = models.Patient.objects.create(
            name=name,
            mobile_number=mobile,
            gender=gender or '',
            age=age,
        )
        logger.info("[Local] Patient 创建完成 id=%s", row.id)
        return _patient(row)

    # ── Visit ──────────────────────────────────────────────────────────────

    def create_visit(self, patient_id, status, clinic_id=None, doctor_id=None, visit_reason=''):
        patient = self._get(models.Patient, patient_id, 'Patient')
        row = models.Visit.objects.create(
            patient=patient,
            visit_status=status,
            clinic_id=clinic_id,
            doctor_id=doctor_id,
            visit_reason=visit_reason or '',
        )
        return _visit(row)

    def get_visit(self, visit_id):
        return _visit(self._get(models.Visit, visit_id, 'Visit'))

    def list_patient_visits(self, patient_id, status=None, limit=20):
        rows = models.Visit.objects.filter(patient_id=patient_id)
        if status:
            rows = rows.filter(visit_status=status)
        return [_visit(r) for r in rows.order_by('-created_at')[:limit]]

    def list_waiting_visits(self):
        rows = models.Visit.objects.filter(visit_status=WAITING).order_by('created_at')
        return [_visit(r) for r in rows]

    def update_visit_status(self, visit_id, status):
        row = self._get(models.Visit, visit_id, 'Visit')
        row.visit_status = status
        row.save(update_fields=['visit_status', 'updated_at'])
        return _visit(row)

    def update_visit_notes(self, visit_id, notes):
        row = self._get(models.Visit, visit_id, 'Visit')
        row.notes = notes
        row.save(update_fields=['notes', 'updated_at'])
        return _visit(row)

    # ── Prescription ───────────────────────────────────────────────────────

    def _write_items(self, row, prescription):
        row.items.all().delete()
        kept = [m for m in prescription.medicines if not m.is_placeholder]
        models.PrescriptionItem.objects.bulk_create([
            models.PrescriptionItem(
                prescription=row,
                position=position,
                medicine=med.name.strip(),
                dosage=med.dosage.strip(),
                duration=med.duration.strip(),
                notes=(med.notes or '').strip(),
            )
            for position, med in enumerate(kept)
        ])

    def _apply_header(self, row, prescription):
        follow_up = prescription.follow_up
        row.follow_up = follow_up.value if follow_up else None
        row.follow_up_unit = UNIT_TO_API[follow_up.unit] if follow_up else None
        row.notes = prescription.notes or ''

    @transaction.atomic
    def create_prescription(self, visit_id, prescription):
        visit = self._get(models.Visit, visit_id, 'Visit')
        row = models.Prescription()
        self._apply_header(row, prescription)
        row.save()
        self._write_items(row, prescription)

        visit.prescription = row
        visit.save(update_fields=['prescription', 'updated_at'])
        return str(row.id)

    @transaction.atomic
    def update_prescription(self, prescription_id, prescription):
        row = self._get(models.Prescription, prescription_id, 'Prescription')
        self._apply_header(row, prescription)
        row.save()
        self._write_items(row, prescription)

    def get_prescription(self, prescription_id):
        return _prescription(self._get(models.Prescription, prescription_id, 'Prescription'))

    # ── Messaging ──────────────────────────────────────────────────────────

    def send_prescription_whatsapp(self, patient_id, visit_id, mobile, prescription):
        # 本地模式没有接入消息通道，只记录
        logger.info(
            "[Local] WhatsApp 处方 visit=%s mobile=%s medicines=%d",
            visit_id, mobile, len(prescription.medicines),
        )
        return WhatsAppResult(success=True, message='Prescription sent on WhatsApp')

    # ── Appointment ────────────────────────────────────────────────────────

    def get_appointment(self, appointment_id):
        return _appointment(self._get(models.Appointment, appointment_id, 'Appointment'))

    def update_appointment_status(self, appointment_id, status):
        row = self._get(models.Appointment, appointment_id, 'Appointment')
        row.appointment_status = status
        row.save(update_fields=['appointment_status', 'updated_at'])
        return _appointment(row)
