import logging

from celery import shared_task

from .exceptions import BaseAppException

logger = logging.getLogger(__name__)


@shared_task(ignore_result=True)
def autosave_visit_notes(visit_id: str, notes: str, access_token=None):
    """
    备注自动保存（fire-and-forget）。

    策略：
      - 不重试，失败只记日志；下一次自动保存或手动保存会覆盖
      - last-write-wins，不做冲突检测
      - visit 已经 COMPLETED 时跳过
    """
    from frontdesk.gateway import get_backend
    from frontdesk.session import ClinicSession
    from frontdesk.types import COMPLETED

    logger.info("[Celery][autosave_visit_notes] visit_id=%s 长度=%d", visit_id, len(notes or ''))

    session = ClinicSession(access_token=access_token)
    try:
        backend = get_backend(session)
        visit = backend.get_visit(visit_id)
        if visit.status == COMPLETED:
            logger.info("[Celery] visit_id=%s 已完成，跳过备注保存", visit_id)
            return
        backend.update_visit_notes(visit_id, notes or '')
        logger.info("[Celery] visit_id=%s 备注已保存", visit_id)
    except BaseAppException as exc:
        logger.warning("[Celery] visit_id=%s 备注自动保存失败 (%s): %s", visit_id, exc.code, exc.message)
    finally:
        session.teardown()
