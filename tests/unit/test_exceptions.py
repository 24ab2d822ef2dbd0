"""
Unit tests for exception classes and unified_exception_handler.

不需要数据库，纯 Python 测试：
1. BaseAppException 默认值
2. 各子类的默认 type / code / http_status
3. 构造时覆盖 code / http_status
4. fields 属性
5. unified_exception_handler 把异常转成统一 envelope
"""
import pytest
from rest_framework.exceptions import ParseError as DRFParseError
from rest_framework.exceptions import ValidationError as DRFValidationError

from frontdesk.exception_handler import unified_exception_handler
from frontdesk.exceptions import (
    BackendError,
    BaseAppException,
    BlockError,
    DeliveryError,
    FieldValidationError,
    NetworkError,
    NotFoundError,
    ParseError,
    ValidationError,
)


# -------------------------------------------------------------------
# Exception classes
# -------------------------------------------------------------------

class TestBaseAppException:

    def test_defaults(self):
        exc = BaseAppException('something broke')
        assert exc.message == 'something broke'
        assert exc.type == 'error'
        assert exc.code == 'UNKNOWN_ERROR'
        assert exc.http_status == 500
        assert exc.detail is None

    def test_override_code_and_status(self):
        exc = BaseAppException('bad', code='CUSTOM_CODE', http_status=418)
        assert exc.code == 'CUSTOM_CODE'
        assert exc.http_status == 418

    def test_fields_empty_without_detail(self):
        assert BaseAppException('bad').fields == {}
        assert BaseAppException('bad', detail=['x']).fields == {}

    def test_fields_from_detail(self):
        exc = ValidationError('bad', detail={'fields': {'mobile': 'Mobile number is required'}})
        assert exc.fields == {'mobile': 'Mobile number is required'}


@pytest.mark.parametrize('exc_cls, type_, code, status', [
    (ValidationError, 'validation_error', 'VALIDATION_ERROR', 400),
    (FieldValidationError, 'validation_error', 'FIELD_VALIDATION_ERROR', 400),
    (NotFoundError, 'not_found', 'NOT_FOUND', 404),
    (BlockError, 'block', 'BUSINESS_BLOCK', 409),
    (BackendError, 'backend', 'HTTP_ERROR', 502),
    (NetworkError, 'backend', 'NETWORK_ERROR', 503),
    (ParseError, 'backend', 'PARSE_ERROR', 502),
    (DeliveryError, 'delivery', 'WHATSAPP_SEND_FAILED', 502),
])
def test_subclass_defaults(exc_cls, type_, code, status):
    exc = exc_cls('x')
    assert exc.type == type_
    assert exc.code == code
    assert exc.http_status == status


def test_field_validation_error_is_a_validation_error():
    assert issubclass(FieldValidationError, ValidationError)


def test_network_and_parse_are_backend_errors():
    assert issubclass(NetworkError, BackendError)
    assert issubclass(ParseError, BackendError)


def test_block_custom_code_keeps_status():
    exc = BlockError('busy', code='SAVE_IN_PROGRESS')
    assert exc.code == 'SAVE_IN_PROGRESS'
    assert exc.http_status == 409


# -------------------------------------------------------------------
# unified_exception_handler
# -------------------------------------------------------------------

class TestUnifiedExceptionHandler:

    def test_block_error_envelope(self):
        exc = BlockError('Prescription is already being saved', code='SAVE_IN_PROGRESS',
                         detail={'visit_id': 'v1'})
        response = unified_exception_handler(exc, {})

        assert response.status_code == 409
        assert response.data == {
            'success': False,
            'error': {
                'type': 'block',
                'code': 'SAVE_IN_PROGRESS',
                'message': 'Prescription is already being saved',
                'statusCode': 409,
                'details': {'visit_id': 'v1'},
            },
        }

    def test_no_details_key_when_none(self):
        response = unified_exception_handler(NotFoundError('Visit not found'), {})

        assert response.status_code == 404
        assert 'details' not in response.data['error']

    def test_field_errors_are_kept(self):
        exc = FieldValidationError('Invalid', detail={'fields': {'medicine_0_dosage': 'bad'}})
        response = unified_exception_handler(exc, {})

        assert response.status_code == 400
        assert response.data['error']['details']['fields'] == {'medicine_0_dosage': 'bad'}

    def test_drf_validation_error(self):
        response = unified_exception_handler(DRFValidationError({'mobile': ['required']}), {})

        assert response.status_code == 400
        assert response.data['success'] is False
        assert response.data['error']['type'] == 'validation_error'
        assert response.data['error']['code'] == 'VALIDATION_ERROR'
        assert 'mobile' in response.data['error']['details']['fields']

    def test_drf_parse_error(self):
        response = unified_exception_handler(DRFParseError('Malformed JSON'), {})

        assert response.status_code == 400
        assert response.data['error']['code'] == 'PARSE_ERROR'
        assert response.data['error']['message'] == 'Malformed JSON'

    def test_unknown_exception_not_handled(self):
        """非 APIException / BaseAppException 交给 DRF 默认处理，返回 None → 500。"""
        assert unified_exception_handler(RuntimeError('boom'), {}) is None
