"""
Patient Resolver — 手机号 → 已有患者 / 新建患者草稿。

自身不持有状态；搜索是只读的，建档是单独一步并且要过完整表单校验。
"""

import logging

from .exceptions import ValidationError
from .gateway import BaseClinicBackend
from .types import Patient, PatientDraft, Resolution
from .validators import normalize_mobile, parse_age, to_e164, validate_patient_draft

logger = logging.getLogger(__name__)


class PatientResolver:

    def __init__(self, backend: BaseClinicBackend, search_limit: int = 20):
        self.backend = backend
        self.search_limit = search_limit

    def resolve(self, mobile: str) -> Resolution:
        """
        按规范化手机号查找患者。

        - 手机号不合法 → ValidationError，不发起查询
        - 多个结果时取第一个（不做消歧，记录日志，match_count 交给前端）
        - 查不到 → 返回预填了手机号的 PatientDraft
        """
        local_number = normalize_mobile(mobile)
        results = self.backend.search_patients(local_number, limit=self.search_limit)

        # 后端按姓名/手机号模糊匹配，这里只认手机号完全一致的
        matches = [
            p for p in results
            if _same_number(p.mobile, local_number)
        ]

        if not matches:
            logger.info("[Resolver] 未找到患者，返回新建草稿")
            return Resolution(draft=PatientDraft(mobile=local_number))

        if len(matches) > 1:
            logger.warning(
                "[Resolver] 手机号匹配到 %d 个患者，取第一个 id=%s",
                len(matches), matches[0].id,
            )
        return Resolution(patient=matches[0], match_count=len(matches))

    def register(self, draft: PatientDraft) -> Patient:
        """校验表单后建档。mobile 以带国家码的格式保存。"""
        local_number = validate_patient_draft(draft)
        patient = self.backend.create_patient(
            name=draft.name.strip(),
            mobile=to_e164(local_number),
            gender=draft.gender,
            age=parse_age(draft.age),
        )
        logger.info("[Resolver] 新患者建档完成 id=%s", patient.id)
        return patient


def _same_number(stored: str, local_number: str) -> bool:
    try:
        return normalize_mobile(stored) == local_number
    except ValidationError:
        # 历史数据里的脏号码不参与匹配
        return False
