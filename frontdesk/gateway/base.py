"""
BaseClinicBackend — 所有后端实现的抽象基类。

每个新后端只需：
1. 继承 BaseClinicBackend
2. 实现下面全部方法
3. 在 factory.py 的 _build_registry() 注册一行

核心流程（resolver / visits / binder / delivery）完全不知道背后是 REST 还是本地库。

约定：
- 入参、返回值都是 frontdesk.types 里的领域对象
- 查不到抛 NotFoundError；后端拒绝字段抛 FieldValidationError；
  其他失败抛 BackendError 及其子类
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..types import Appointment, Patient, Prescription, Visit, WhatsAppResult


class BaseClinicBackend(ABC):

    name: str = ""

    # ── Patient ────────────────────────────────────────────────────────────

    @abstractmethod
    def search_patients(self, query: str, limit: int = 20) -> list[Patient]:
        """按姓名或手机号搜索。GET /patients/search?query=&limit="""

    @abstractmethod
    def get_patient(self, patient_id: str) -> Patient:
        """GET /patient/:id"""

    @abstractmethod
    def create_patient(self, name: str, mobile: str, gender: str, age: Optional[int] = None) -> Patient:
        """POST /patient（mobile 已经是带国家码的格式）"""

    # ── Visit ──────────────────────────────────────────────────────────────

    @abstractmethod
    def create_visit(
        self,
        patient_id: str,
        status: str,
        clinic_id: Optional[str] = None,
        doctor_id: Optional[str] = None,
        visit_reason: str = '',
    ) -> Visit:
        """POST /visits"""

    @abstractmethod
    def get_visit(self, visit_id: str) -> Visit:
        """GET /visits/:id"""

    @abstractmethod
    def list_patient_visits(self, patient_id: str, status: Optional[str] = None, limit: int = 20) -> list[Visit]:
        """GET /visits/patient/:patientId，最新的在前。"""

    @abstractmethod
    def list_waiting_visits(self) -> list[Visit]:
        """GET /visits/waiting，最早的在前。"""

    @abstractmethod
    def update_visit_status(self, visit_id: str, status: str) -> Visit:
        """PUT /visits/:id"""

    @abstractmethod
    def update_visit_notes(self, visit_id: str, notes: str) -> Visit:
        """PATCH /visits/:id/notes"""

    # ── Prescription ───────────────────────────────────────────────────────

    @abstractmethod
    def create_prescription(self, visit_id: str, prescription: Prescription) -> str:
        """POST /visits/:visitId/prescription，返回新处方 id。"""

    @abstractmethod
    def update_prescription(self, prescription_id: str, prescription: Prescription) -> None:
        """PUT /visits/prescription/:prescriptionId"""

    @abstractmethod
    def get_prescription(self, prescription_id: str) -> Prescription:
        """GET /visits/prescription/:prescriptionId"""

    # ── Messaging ──────────────────────────────────────────────────────────

    @abstractmethod
    def send_prescription_whatsapp(
        self, patient_id: str, visit_id: str, mobile: str, prescription: Prescription,
    ) -> WhatsAppResult:
        """
        把处方发到患者 WhatsApp。

        业务失败（对方号码不可达等）返回 WhatsAppResult(success=False)，
        传输失败抛 NetworkError。
        """

    # ── Appointment ────────────────────────────────────────────────────────

    @abstractmethod
    def get_appointment(self, appointment_id: str) -> Appointment:
        """GET /appointments/:id"""

    @abstractmethod
    def update_appointment_status(self, appointment_id: str, status: str) -> Appointment:
        """PUT /appointments/:id"""
