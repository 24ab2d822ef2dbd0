"""
RestBackend — 真实后端（JSON over HTTPS）。

响应必须是统一 envelope：
  {"success": true,  "data": ...}
  {"success": false, "error": {"code", "message", "statusCode", "details"}}

不是这个结构就是 PARSE_ERROR，这里不猜测"数组 / data / results"之类的变体。
环境变量：CLINIC_API_BASE_URL、CLINIC_API_TIMEOUT
"""

import logging
from typing import Optional

import requests

from ..exceptions import (
    BackendError,
    FieldValidationError,
    NetworkError,
    NotFoundError,
    ParseError,
)
from ..types import WhatsAppResult
from . import mapping
from .base import BaseClinicBackend
from .errors import extract_validation_errors

logger = logging.getLogger(__name__)


class RestBackend(BaseClinicBackend):

    name = "rest"

    def __init__(self, base_url: str, access_token: Optional[str] = None, timeout: float = 10.0, http=None):
        self.base_url = base_url.rstrip('/')
        self.access_token = access_token
        self.timeout = timeout
        self._http = http or requests.Session()

    # ── transport ──────────────────────────────────────────────────────────

    def _headers(self) -> dict:
        headers = {'Accept': 'application/json', 'Content-Type': 'application/json'}
        if self.access_token:
            headers['Authorization'] = f"Bearer {self.access_token}"
        return headers

    def _request(self, method: str, path: str, payload=None, params=None):
        url = f"{self.base_url}{path}"
        logger.debug("[REST] %s %s", method, url)

        try:
            response = self._http.request(
                method,
                url,
                json=payload,
                params=params,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("[REST] %s %s 网络失败: %s", method, url, exc)
            raise NetworkError(
                message='Network request failed. Please try again.',
                detail={'reason': str(exc)},
            ) from exc

        if response.status_code == 204:
            return None

        try:
            body = response.json()
        except ValueError:
            if not response.ok:
                raise BackendError(
                    message=f"Server returned {response.status_code}",
                    detail={'status_code': response.status_code},
                )
            raise ParseError(
                message='Expected a JSON response from the server.',
                detail={'status_code': response.status_code},
            )

        if not isinstance(body, dict) or 'success' not in body:
            raise ParseError(
                message='Malformed response envelope.',
                detail={'status_code': response.status_code},
            )

        if not response.ok or not body['success']:
            self._raise_for_envelope(body, response.status_code)

        return body.get('data')

    def _raise_for_envelope(self, body: dict, status_code: int):
        error = body.get('error') or {}
        code = error.get('code') or 'HTTP_ERROR'
        message = error.get('message') or body.get('message') or f"HTTP {status_code}"
        details = error.get('details')

        if code == 'NOT_FOUND' or status_code == 404:
            raise NotFoundError(message=message, detail={'status_code': status_code})

        fields = extract_validation_errors(details)
        if fields:
            raise FieldValidationError(
                message=message,
                detail={'fields': fields, 'status_code': status_code},
            )

        raise BackendError(message=message, code=code, detail={'status_code': status_code})

    def _require(self, data, what: str) -> dict:
        if not isinstance(data, dict) or not data.get('id'):
            raise ParseError(message=f"Response did not contain a {what}.")
        return data

    def _require_list(self, data, what: str) -> list:
        if not isinstance(data, list):
            raise ParseError(message=f"Expected a list of {what}.")
        return data

    # ── Patient ────────────────────────────────────────────────────────────

    def search_patients(self, query, limit=20):
        data = self._request('GET', '/patients/search', params={'query': query, 'limit': limit})
        return [mapping.patient_from_api(p) for p in self._require_list(data, 'patients')]

    def get_patient(self, patient_id):
        data = self._request('GET', f"/patient/{patient_id}")
        return mapping.patient_from_api(self._require(data, 'patient'))

    def create_patient(self, name, mobile, gender, age=None):
        payload = mapping.patient_to_api(name, mobile, gender, age)
        data = self._request('POST', '/patient', payload=payload)
        patient = mapping.patient_from_api(self._require(data, 'patient'))
        if patient.age is None:
            patient.age = age
        return patient

    # ── Visit ──────────────────────────────────────────────────────────────

    def create_visit(self, patient_id, status, clinic_id=None, doctor_id=None, visit_reason=''):
        payload = mapping.visit_to_api(patient_id, clinic_id, doctor_id, visit_reason, status)
        data = self._request('POST', '/visits', payload=payload)
        return mapping.visit_from_api(self._require(data, 'visit'))

    def get_visit(self, visit_id):
        data = self._request('GET', f"/visits/{visit_id}")
        return mapping.visit_from_api(self._require(data, 'visit'))

    def list_patient_visits(self, patient_id, status=None, limit=20):
        params = {'limit': limit}
        if status:
            params['status'] = status
        data = self._request('GET', f"/visits/patient/{patient_id}", params=params)
        return [mapping.visit_from_api(v) for v in self._require_list(data, 'visits')]

    def list_waiting_visits(self):
        data = self._request('GET', '/visits/waiting')
        return [mapping.visit_from_api(v) for v in self._require_list(data, 'visits')]

    def update_visit_status(self, visit_id, status):
        data = self._request('PUT', f"/visits/{visit_id}", payload={'visit_status': status})
        return mapping.visit_from_api(self._require(data, 'visit'))

    def update_visit_notes(self, visit_id, notes):
        self._request('PATCH', f"/visits/{visit_id}/notes", payload={'notes': notes})
        return self.get_visit(visit_id)

    # ── Prescription ───────────────────────────────────────────────────────

    def create_prescription(self, visit_id, prescription):
        data = self._request(
            'POST', f"/visits/{visit_id}/prescription",
            payload=mapping.prescription_to_api(prescription),
        )
        return str(self._require(data, 'prescription id')['id'])

    def update_prescription(self, prescription_id, prescription):
        self._request(
            'PUT', f"/visits/prescription/{prescription_id}",
            payload=mapping.prescription_to_api(prescription),
        )

    def get_prescription(self, prescription_id):
        data = self._request('GET', f"/visits/prescription/{prescription_id}")
        if not isinstance(data, dict):
            raise ParseError(message='Response did not contain a prescription.')
        prescription = mapping.prescription_from_api(data)
        prescription.id = prescription.id or str(prescription_id)
        return prescription

    # ── Messaging ──────────────────────────────────────────────────────────

    def send_prescription_whatsapp(self, patient_id, visit_id, mobile, prescription):
        payload = mapping.whatsapp_payload(patient_id, visit_id, mobile, prescription)
        try:
            data = self._request('POST', '/whatsapp/prescription', payload=payload)
        except NetworkError:
            raise
        except (BackendError, FieldValidationError) as exc:
            return WhatsAppResult(success=False, message=exc.message)
        message = (data or {}).get('message') if isinstance(data, dict) else None
        return WhatsAppResult(success=True, message=message or 'Prescription sent on WhatsApp')

    # ── Appointment ────────────────────────────────────────────────────────

    def get_appointment(self, appointment_id):
        data = self._request('GET', f"/appointments/{appointment_id}")
        return mapping.appointment_from_api(self._require(data, 'appointment'))

    def update_appointment_status(self, appointment_id, status):
        data = self._request(
            'PUT', f"/appointments/{appointment_id}",
            payload={'appointment_status': status},
        )
        return mapping.appointment_from_api(self._require(data, 'appointment'))
