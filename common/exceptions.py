"""
Таксономия ошибок API и единый формат ответа об ошибке.

Сервисы поднимают исключения DRF: ``ValidationError`` (400), ``NotFound`` (404),
``PermissionDenied`` (403) и ``Conflict`` (409). Обработчик приводит любое из них
к виду ``{"message": "...", "errors": <detail>}``, чтобы клиент мог сразу
показать сообщение пользователю.
"""
from typing import Any

from rest_framework import status
from rest_framework.exceptions import APIException, NotFound, PermissionDenied, ValidationError
from rest_framework.views import exception_handler

__all__ = ['Conflict', 'NotFound', 'PermissionDenied', 'ValidationError', 'envelope_exception_handler']


class Conflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'The request conflicts with the current state of the resource.'
    default_code = 'conflict'


def first_message(detail: Any) -> str:
    """Достаёт первое человекочитаемое сообщение из вложенного detail DRF."""
    if isinstance(detail, dict):
        if 'detail' in detail:
            return first_message(detail['detail'])
        for key, value in detail.items():
            message = first_message(value)
            if key == 'non_field_errors':
                return message
            return f'{key}: {message}'
        return ''
    if isinstance(detail, (list, tuple)):
        return first_message(detail[0]) if detail else ''
    return str(detail)


def envelope_exception_handler(exc, context):
    response = exception_handler(exc, context)
    if response is None:
        return None

    response.data = {
        'message': first_message(response.data) or 'Request failed',
        'errors': response.data,
    }
    return response
