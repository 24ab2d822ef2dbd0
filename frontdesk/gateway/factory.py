"""
工厂函数：根据 settings.CLINIC_BACKEND 返回对应的后端实例。

新增后端只需：
  1. 新建 XxxBackend(BaseClinicBackend) 类
  2. 在此处 _build_registry() 加一行
  不需要修改 resolver / visits / binder / delivery。

后端选择只看配置，不做运行时探测或自动降级。
"""

from django.conf import settings

from ..exceptions import BackendError
from .base import BaseClinicBackend


def _build_registry() -> dict[str, type[BaseClinicBackend]]:
    # 延迟导入，避免 Django 启动前触发 ORM import
    from .local import LocalBackend
    from .rest import RestBackend

    return {
        "rest":  RestBackend,
        "local": LocalBackend,
    }


def get_backend(session=None) -> BaseClinicBackend:
    """
    从 settings.CLINIC_BACKEND 读取后端类型，返回实例。

    Args:
        session: ClinicSession，REST 后端用它的 access_token

    Raises:
        BackendError: CLINIC_BACKEND 未知
    """
    name = getattr(settings, "CLINIC_BACKEND", "rest")
    registry = _build_registry()
    backend_cls = registry.get(name)

    if backend_cls is None:
        raise BackendError(
            message=f"Unknown CLINIC_BACKEND: {name!r}.",
            code="UNKNOWN_BACKEND",
            detail={"known_backends": list(registry.keys())},
            http_status=500,
        )

    if name == "rest":
        return backend_cls(
            base_url=settings.CLINIC_API_BASE_URL,
            access_token=getattr(session, "access_token", None),
            timeout=settings.CLINIC_API_TIMEOUT,
        )
    return backend_cls()
