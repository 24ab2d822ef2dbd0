"""
Shared fixtures for all tests.

factory-boy factories live here so both unit/ and integration/ can import them.
所有测试默认走 LocalBackend（ORM），不访问真实的诊所 API。
"""
import pytest
from django.core.cache import cache
from django.test import Client

import factory
from frontdesk.gateway.local import LocalBackend
from frontdesk.models import Appointment, Patient, Prescription, PrescriptionItem, Visit
from frontdesk.types import FollowUp, Medicine
from frontdesk.types import Prescription as PrescriptionDraft


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

class PatientFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Patient

    name = 'Asha Verma'
    mobile_number = factory.Sequence(lambda n: f'+91987650{n:04d}')
    age = 34
    gender = 'F'


class VisitFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Visit

    patient = factory.SubFactory(PatientFactory)
    visit_status = 'WAITING'
    clinic_id = 'clinic-1'
    notes = ''


class PrescriptionFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Prescription

    notes = ''


class PrescriptionItemFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = PrescriptionItem

    prescription = factory.SubFactory(PrescriptionFactory)
    position = factory.Sequence(lambda n: n)
    medicine = 'Paracetamol 500mg'
    dosage = '1-0-1'
    duration = '5 days'


class AppointmentFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Appointment

    name = 'Ravi Kumar'
    mobile_number = '+919812345678'
    appointment_status = 'WAITING'


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def clinic_settings(settings):
    """测试一律用 LocalBackend，并清空 in-flight 锁 / prescription link 缓存。"""
    settings.CLINIC_BACKEND = 'local'
    settings.CLINIC_ID = 'clinic-1'
    settings.PHONE_COUNTRY_CODE = '91'
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client():
    """Django test client for integration tests."""
    return Client()


@pytest.fixture
def local_backend():
    return LocalBackend()


@pytest.fixture
def draft():
    """可保存的处方草稿：一行有效药品 + 末尾一行空白占位行。"""
    return PrescriptionDraft(
        medicines=[
            Medicine(name='Paracetamol 500mg', dosage='1-0-1', duration='5 days'),
            Medicine(),
        ],
        follow_up=FollowUp(value=7, unit='days'),
        notes='Drink plenty of water',
    )


@pytest.fixture
def prescription_payload():
    """Request body for the prescription / finish / print / whatsapp endpoints."""
    return {
        'medicines': [
            {'name': 'Paracetamol 500mg', 'dosage': '101', 'duration': '5 days'},
            {'name': '', 'dosage': '', 'duration': ''},
        ],
        'follow_up': {'value': 7, 'unit': 'days'},
        'notes': 'Drink plenty of water',
    }
