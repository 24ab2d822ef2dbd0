"""
Prescription Binder — 保存处方时决定 create 还是 update。

判断依据只有 visit → prescription 的单向引用：
  visit.prescription_id 为空  → POST /visits/:id/prescription，返回的新 id 即成为该 visit 的处方
  visit.prescription_id 存在  → PUT  /visits/prescription/:id

两道保护（后端没有幂等键）：
1. in-flight 锁：同一 visit 同时只允许一个保存，第二个直接 409 SAVE_IN_PROGRESS
2. link 缓存：create 成功后记录 visit_id → prescription_id，
   调用方手里旧的 Visit 对象再保存也会走 update，不会产生第二张处方
"""

import logging
from contextlib import contextmanager
from dataclasses import replace

from django.conf import settings
from django.core.cache import cache

from .exceptions import BackendError, BlockError, FieldValidationError, ValidationError
from .gateway import BaseClinicBackend
from .gateway.errors import medicine_errors_by_row
from .types import Prescription, SaveResult, Visit
from .validators import validate_follow_up, validate_medicines

logger = logging.getLogger(__name__)

LOCK_KEY = "frontdesk:prescription-save:{visit_id}"
LINK_KEY = "frontdesk:prescription-link:{visit_id}"


def prepare(draft: Prescription) -> Prescription:
    """
    可编辑草稿 → 可持久化处方。

    - 丢掉名字为空的占位行；一行都不剩 → ValidationError
    - 剩下的每一行 dosage / duration 必填，dosage 必须是 D-D-D
    - 随访没有 value 时折叠成"无随访"

    纯函数，同一个草稿调用多少次结果都一样。
    """
    medicines = [
        replace(m, name=m.name.strip(), dosage=m.dosage.strip(), duration=m.duration.strip(),
                notes=(m.notes or '').strip())
        for m in draft.medicines
        if not m.is_placeholder
    ]
    if not medicines:
        raise ValidationError(
            message='Please add at least one medicine',
            detail={'fields': {'medicines': 'At least one medicine is required'}},
        )

    validate_medicines(medicines)
    follow_up = validate_follow_up(draft.follow_up)

    return Prescription(
        medicines=medicines,
        follow_up=follow_up,
        notes=(draft.notes or '').strip(),
        id=draft.id,
    )


class PrescriptionBinder:

    def __init__(self, backend: BaseClinicBackend, lock_seconds=None):
        self.backend = backend
        self.lock_seconds = lock_seconds or getattr(settings, 'PRESCRIPTION_SAVE_LOCK_SECONDS', 30)
        self.link_seconds = getattr(settings, 'PRESCRIPTION_LINK_SECONDS', 86400)

    def linked_prescription_id(self, visit: Visit):
        """visit 当前绑定的处方 id（对象上的值优先，其次是本进程记录的 link）。"""
        return visit.prescription_id or cache.get(LINK_KEY.format(visit_id=visit.id))

    @contextmanager
    def _in_flight(self, visit: Visit):
        key = LOCK_KEY.format(visit_id=visit.id)
        if not cache.add(key, 1, timeout=self.lock_seconds):
            raise BlockError(
                message='Prescription is already being saved',
                code='SAVE_IN_PROGRESS',
                detail={'visit_id': visit.id},
            )
        try:
            yield
        finally:
            cache.delete(key)

    def save(self, visit: Visit, draft: Prescription) -> SaveResult:
        """
        保存处方并绑定到 visit。

        Returns:
            SaveResult(prescription_id, action='create' | 'update')

        Raises:
            ValidationError:      本地校验失败，没有发出请求
            FieldValidationError: 后端拒绝字段，detail['medicine_errors'] 按行 id 归位
            BlockError:           同一 visit 正在保存
            BackendError:         网络 / 后端失败
        """
        prescription = prepare(draft)

        with self._in_flight(visit):
            prescription_id = self.linked_prescription_id(visit)
            try:
                if prescription_id:
                    self.backend.update_prescription(prescription_id, prescription)
                    result = SaveResult(prescription_id=prescription_id, action='update')
                else:
                    created_id = self.backend.create_prescription(visit.id, prescription)
                    if not created_id:
                        raise BackendError(
                            message='Failed to create prescription',
                            code='PRESCRIPTION_CREATE_ERROR',
                        )
                    cache.set(LINK_KEY.format(visit_id=visit.id), created_id, timeout=self.link_seconds)
                    result = SaveResult(prescription_id=created_id, action='create')
            except FieldValidationError as exc:
                exc.detail = dict(exc.detail or {})
                exc.detail['medicine_errors'] = medicine_errors_by_row(
                    exc.fields, prescription.medicines,
                )
                raise

        logger.info(
            "[Binder] visit=%s 处方 %s 完成 prescription=%s medicines=%d",
            visit.id, result.action, result.prescription_id, len(prescription.medicines),
        )
        return result
