"""
前台队列和预约相关的小服务。

预约状态（WAITING / CHECKED_IN / NO_SHOW）和 visit 状态是两套独立的枚举，
签到不会自动创建 visit。
"""

import logging

from .exceptions import BlockError
from .gateway import BaseClinicBackend
from .types import APPOINTMENT_WAITING, CHECKED_IN, NO_SHOW, Appointment

logger = logging.getLogger(__name__)


def waiting_queue(backend: BaseClinicBackend):
    """排队中的 visit，先到先看。"""
    visits = backend.list_waiting_visits()
    return sorted(visits, key=lambda v: (v.date is None, v.date))


def next_waiting_visit(backend: BaseClinicBackend):
    queue = waiting_queue(backend)
    return queue[0] if queue else None


def _transition_appointment(backend: BaseClinicBackend, appointment_id, target) -> Appointment:
    appointment = backend.get_appointment(appointment_id)
    if appointment.status != APPOINTMENT_WAITING:
        raise BlockError(
            message=f"Appointment is already {appointment.status.replace('_', ' ').lower()}",
            code='INVALID_TRANSITION',
            detail={
                'appointment_id': appointment.id,
                'from': appointment.status,
                'to': target,
            },
        )

    updated = backend.update_appointment_status(appointment.id, target)
    logger.info("[Appointment] id=%s %s → %s", appointment.id, appointment.status, updated.status)
    return updated


def check_in_appointment(backend: BaseClinicBackend, appointment_id) -> Appointment:
    """患者到店：WAITING → CHECKED_IN。"""
    return _transition_appointment(backend, appointment_id, CHECKED_IN)


def mark_no_show(backend: BaseClinicBackend, appointment_id) -> Appointment:
    return _transition_appointment(backend, appointment_id, NO_SHOW)
