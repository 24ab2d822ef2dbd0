from .base import BaseClinicBackend
from .factory import get_backend

__all__ = ["BaseClinicBackend", "get_backend"]
