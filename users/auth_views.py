"""
Кастомные views для JWT аутентификации с документацией для Swagger.
"""
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from drf_spectacular.utils import extend_schema


@extend_schema(
    tags=['Аутентификация'],
    summary='Получить JWT токены',
    description='''
    Выдаёт пару access/refresh токенов по логину и паролю.

    Access токен передаётся в заголовке `Authorization: Bearer <access_token>`.
    Просроченный access обновляется через `/api/auth/token/refresh/`.
    ''',
    request={
        'application/json': {
            'type': 'object',
            'properties': {
                'username': {'type': 'string'},
                'password': {'type': 'string', 'format': 'password'},
            },
            'required': ['username', 'password'],
        }
    },
    responses={
        200: {
            'description': 'Успешная аутентификация',
            'content': {
                'application/json': {
                    'example': {
                        'access': 'eyJ0eXAiOiJKV1QiLCJhbGciOiJIUzI1NiJ9...',
                        'refresh': 'eyJ0eXAiOiJKV1QiLCJhbGciOiJIUzI1NiJ9...',
                    }
                }
            }
        },
        401: {
            'description': 'Неверные учётные данные',
            'content': {
                'application/json': {
                    'example': {
                        'message': 'No active account found with the given credentials',
                    }
                }
            }
        }
    }
)
class CustomTokenObtainPairView(TokenObtainPairView):
    """Получение JWT токенов для аутентификации"""


@extend_schema(
    tags=['Аутентификация'],
    summary='Обновить access токен',
    description='Обменивает refresh токен на новый access токен. Refresh токен при этом ротируется.',
    request={
        'application/json': {
            'type': 'object',
            'properties': {
                'refresh': {'type': 'string'},
            },
            'required': ['refresh'],
        }
    },
)
class CustomTokenRefreshView(TokenRefreshView):
    """Обновление JWT access токена"""
