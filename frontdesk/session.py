"""
ClinicSession — 一次用户操作的显式状态。

取代旧前端里散落的全局单例（localStorage 里的 token、全局 toast 队列）：
- access_token  转发给 REST 后端
- clinic_id     新建 visit 时使用
- notices       本次操作产生的提示（前端渲染成 toast）

生命周期由 bootstrap() / teardown() 明确界定，通过构造参数注入到各个服务。
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Optional

from django.conf import settings

logger = logging.getLogger(__name__)


@dataclass
class Notice:
    kind: str                   # success | error | info
    title: str
    description: str = ''

    def as_dict(self):
        body = {'type': self.kind, 'title': self.title}
        if self.description:
            body['description'] = self.description
        return body


@dataclass
class ClinicSession:
    access_token: Optional[str] = None
    clinic_id: Optional[str] = None
    notices: list[Notice] = field(default_factory=list)
    active: bool = True

    def notify(self, kind, title, description=''):
        self.notices.append(Notice(kind=kind, title=title, description=description))

    def drain(self) -> list[dict]:
        """取出并清空所有提示。"""
        out = [n.as_dict() for n in self.notices]
        self.notices.clear()
        return out

    def teardown(self):
        """登出 / 请求结束：丢弃 token 和未发送的提示。"""
        self.access_token = None
        self.notices.clear()
        self.active = False

    @classmethod
    def from_request(cls, request) -> 'ClinicSession':
        header = request.META.get('HTTP_AUTHORIZATION', '')
        token = header[7:].strip() if header.startswith('Bearer ') else None
        clinic_id = request.META.get('HTTP_X_CLINIC_ID') or getattr(settings, 'CLINIC_ID', None)
        return cls(access_token=token or None, clinic_id=clinic_id or None)


@contextmanager
def bootstrap(request):
    """
    Usage:
        with bootstrap(request) as session:
            ...
    """
    session = ClinicSession.from_request(request)
    try:
        yield session
    finally:
        session.teardown()
