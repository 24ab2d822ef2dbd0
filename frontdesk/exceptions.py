"""
统一异常体系。

所有业务异常继承 BaseAppException，包含：
- type:        错误类型标识（validation_error / not_found / block / backend / delivery）
- code:        业务错误码（VALIDATION_ERROR / FIELD_VALIDATION_ERROR / NOT_FOUND / ...）
- message:     人类可读的描述（前端直接作为 toast 标题展示）
- detail:      可选的附加信息（dict / list / None），字段级错误放在 detail['fields']
- http_status: HTTP 状态码

核心流程只管 raise，exception_handler 统一捕获并格式化成 envelope。
"""


class BaseAppException(Exception):
    """所有业务异常的基类。"""

    type = 'error'
    code = 'UNKNOWN_ERROR'
    http_status = 500

    def __init__(self, message, code=None, detail=None, http_status=None):
        self.message = message
        if code is not None:
            self.code = code
        if http_status is not None:
            self.http_status = http_status
        self.detail = detail
        super().__init__(message)

    @property
    def fields(self):
        """字段级错误 {form_field: message}，没有则返回空 dict。"""
        if isinstance(self.detail, dict):
            return self.detail.get('fields') or {}
        return {}


class ValidationError(BaseAppException):
    """客户端预检失败，一定没有发出任何网络请求。400。"""

    type = 'validation_error'
    code = 'VALIDATION_ERROR'
    http_status = 400


class FieldValidationError(ValidationError):
    """
    后端拒绝了具体字段。

    detail['fields'] 已经过字段名映射（mobile_number → mobile，
    prescription_items.0.dosage → medicine_0_dosage）。
    """

    code = 'FIELD_VALIDATION_ERROR'


class NotFoundError(BaseAppException):
    """Patient / Visit / Prescription / Appointment 不存在。404。"""

    type = 'not_found'
    code = 'NOT_FOUND'
    http_status = 404


class BlockError(BaseAppException):
    """业务规则阻止操作（非法状态迁移、并发保存）。409。"""

    type = 'block'
    code = 'BUSINESS_BLOCK'
    http_status = 409


class BackendError(BaseAppException):
    """后端返回非 2xx 或业务失败。502。"""

    type = 'backend'
    code = 'HTTP_ERROR'
    http_status = 502


class NetworkError(BackendError):
    """传输层失败（连接不上、超时）。前端提示用户重试。"""

    code = 'NETWORK_ERROR'
    http_status = 503


class ParseError(BackendError):
    """响应不是 JSON，或者不是约定的 envelope 结构。"""

    code = 'PARSE_ERROR'


class DeliveryError(BaseAppException):
    """
    处方已保存，但外发（WhatsApp）失败。

    visit 保持 IN_PROGRESS，用户可以手动重试，不做自动重试。
    """

    type = 'delivery'
    code = 'WHATSAPP_SEND_FAILED'
    http_status = 502
