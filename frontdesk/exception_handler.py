"""
统一异常处理器。

挂到 DRF 的 EXCEPTION_HANDLER setting 上。
成功和失败用同一个 envelope，前端只看 success 字段：

成功：
{
    "success": true,
    "data":    { ... },
    "notices": [ {"type": "success", "title": "Visit completed"} ]
}

失败：
{
    "success": false,
    "error": {
        "type":       "validation_error" | "not_found" | "block" | "backend" | "delivery",
        "code":       "SAVE_IN_PROGRESS",
        "message":    "Prescription is already being saved",
        "statusCode": 409,
        "details":    { ... }  // 可选；字段级错误在 details.fields
    }
}
"""

import logging

from rest_framework.exceptions import APIException
from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_default_handler

from .exceptions import BaseAppException

logger = logging.getLogger(__name__)


def error_body(type_, code, message, status_code, details=None):
    error = {
        'type': type_,
        'code': code,
        'message': message,
        'statusCode': status_code,
    }
    if details is not None:
        error['details'] = details
    return {'success': False, 'error': error}


def unified_exception_handler(exc, context):
    """
    DRF exception handler entry point.

    优先级：
    1. BaseAppException 及其子类 → 统一格式
    2. DRF 自带的 ValidationError → 转成 validation_error
    3. 其他 DRF APIException（ParseError / MethodNotAllowed ...）→ 用它自己的状态码包一层
    4. 其他异常 → 交给 DRF 默认处理（返回 None，由 Django 500）
    """

    # --- 1. 我们自己的异常体系 ---
    if isinstance(exc, BaseAppException):
        if exc.http_status >= 500:
            logger.warning("[API] %s %s: %s", exc.type, exc.code, exc.message)
        body = error_body(exc.type, exc.code, exc.message, exc.http_status, exc.detail)
        return Response(body, status=exc.http_status)

    # --- 2. DRF 自带的 ValidationError ---
    if isinstance(exc, DRFValidationError):
        body = error_body(
            'validation_error', 'VALIDATION_ERROR', 'Request validation failed', 400,
            {'fields': exc.detail},
        )
        return Response(body, status=400)

    # --- 3. 其他 DRF 异常 ---
    if isinstance(exc, APIException):
        code = exc.get_codes()
        if not isinstance(code, str):
            code = exc.default_code
        body = error_body('error', code.upper(), str(exc.detail), exc.status_code)
        return Response(body, status=exc.status_code)

    # --- 4. 其他的交给 DRF 默认处理 ---
    return drf_default_handler(exc, context)
