"""
Настройки Django для проекта config (Healthcare24R API).

Все значения, зависящие от окружения, читаются из переменных окружения,
для локальной разработки и тестов предусмотрены безопасные значения по умолчанию.

Документация по настройкам:
https://docs.djangoproject.com/en/5.2/ref/settings/
"""

from pathlib import Path
from datetime import timedelta
import os

# Построение путей внутри проекта: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent


def env_bool(name: str, default: str = '0') -> bool:
    return os.environ.get(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


def env_list(name: str, default: str = '') -> list[str]:
    return [item.strip() for item in os.environ.get(name, default).split(',') if item.strip()]


SECRET_KEY = os.environ.get(
    'DJANGO_SECRET_KEY',
    'django-insecure-h24r-dev-only-7s#p0v!k2m$w9q^z3x@e8r1t6y4u',
)

DEBUG = env_bool('DJANGO_DEBUG', '1')

ALLOWED_HOSTS = env_list('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1')


# Определение приложений

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'corsheaders',
    'users',
    'patients',
    'tasks',
    'queries',
    'reports',
    'rest_framework',
    'rest_framework_simplejwt.token_blacklist',
    'drf_spectacular',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'corsheaders.middleware.CorsMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'config.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'config.wsgi.application'

REST_FRAMEWORK = {
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',  # По умолчанию доступ только авторизованным
    ],
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'rest_framework_simplejwt.authentication.JWTAuthentication',
        'rest_framework.authentication.SessionAuthentication',
        'rest_framework.authentication.BasicAuthentication',
    ],
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',
    'DEFAULT_PAGINATION_CLASS': 'common.pagination.DataPagination',
    'PAGE_SIZE': 20,
    # Единый формат ошибок: {"message": ..., "errors": ...}
    'EXCEPTION_HANDLER': 'common.exceptions.envelope_exception_handler',
}

SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(minutes=60),
    'REFRESH_TOKEN_LIFETIME': timedelta(days=7),
    'ROTATE_REFRESH_TOKENS': True,
    'BLACKLIST_AFTER_ROTATION': True,
}

SPECTACULAR_SETTINGS = {
    'TITLE': 'Healthcare24R API',
    'DESCRIPTION': '''
    REST API панели координации ухода на дому Healthcare24R.

    В системе три роли:

    - **Администратор**: пользователи, назначения медсестёр, библиотека шаблонов задач и обращения
    - **Владелец** (учреждение): пациенты и ежедневные шаблоны задач, статус задач за день
    - **Медсестра**: назначенные пациенты и задачи на сегодня, отметки о выполнении

    ## Аутентификация

    JWT токены в заголовке `Authorization: Bearer <access_token>`:
    - `POST /api/auth/token/` - получить access и refresh токены
    - `POST /api/auth/token/refresh/` - обновить access токен

    ## Время

    Моменты времени передаются в ISO-8601 UTC. `scheduledTime` и локальное время - строки "HH:MM"
    в часовом поясе из профиля пользователя.
    ''',
    'VERSION': '1.0.0',
    'SERVE_INCLUDE_SCHEMA': False,
    'COMPONENT_SPLIT_REQUEST': True,
    'SCHEMA_PATH_PREFIX': '/api',
    'TAGS': [
        {'name': 'Пользователи и роли', 'description': 'Учётные записи и роли'},
        {'name': 'Пациенты', 'description': 'Пациенты и назначения медсестёр'},
        {'name': 'Задачи', 'description': 'Шаблоны задач, статус за день и журнал выполнения'},
        {'name': 'Медсестра', 'description': 'Назначенные пациенты, задачи на сегодня, история отметок'},
        {'name': 'Обращения', 'description': 'Обращения в поддержку'},
        {'name': 'Отчеты', 'description': 'Отчёт о соблюдении графика и журнал аудита'},
        {'name': 'Аутентификация', 'description': 'Получение и обновление JWT токенов'},
    ],
}

# База данных
# https://docs.djangoproject.com/en/5.2/ref/settings/#databases

USE_SQLITE = env_bool('USE_SQLITE', '1')

if USE_SQLITE:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / 'db.sqlite3',
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.postgresql',
            'NAME': os.environ.get('POSTGRES_DB', 'healthcare24r'),
            'USER': os.environ.get('POSTGRES_USER', 'h24r_user'),
            'PASSWORD': os.environ.get('POSTGRES_PASSWORD', 'h24r_pass'),
            'HOST': os.environ.get('POSTGRES_HOST', 'localhost'),
            'PORT': os.environ.get('POSTGRES_PORT', '5432'),
        }
    }


# Валидация паролей
# https://docs.djangoproject.com/en/5.2/ref/settings/#auth-password-validators

AUTH_PASSWORD_VALIDATORS = [
    {
        'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator',
    },
]


# Интернационализация
# Серверное время всегда UTC: локальное время считается по часовому поясу из профиля.

LANGUAGE_CODE = 'en-us'

TIME_ZONE = 'UTC'

USE_I18N = True

USE_TZ = True


STATIC_URL = 'static/'

CORS_ALLOWED_ORIGINS = env_list(
    'CORS_ALLOWED_ORIGINS',
    'http://localhost:5173,http://127.0.0.1:5173',
)
CORS_ALLOW_CREDENTIALS = True


# Логирование

LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '%(asctime)s %(levelname)s %(name)s: %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'django': {'handlers': ['console'], 'level': 'WARNING', 'propagate': False},
        'tasks': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
        'patients': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
        'queries': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
        'reports': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
        'common': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
    },
}


# Настройки учёта задач

# Чей часовой пояс используется при оценке опоздания: 'nurse' или 'owner'
TASKS_LATENESS_TIMEZONE = os.environ.get('TASKS_LATENESS_TIMEZONE', 'nurse')

# Запрет повторной отметки одной задачи по одному пациенту за локальные сутки
TASKS_SINGLE_COMPLETION_PER_DAY = env_bool('TASKS_SINGLE_COMPLETION_PER_DAY', '0')

TASKS_ENTRIES_DEFAULT_LIMIT = int(os.environ.get('TASKS_ENTRIES_DEFAULT_LIMIT', '50'))
TASKS_ENTRIES_MAX_LIMIT = int(os.environ.get('TASKS_ENTRIES_MAX_LIMIT', '500'))


# Тип поля первичного ключа по умолчанию
# https://docs.djangoproject.com/en/5.2/ref/settings/#default-auto-field

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'
AUTH_USER_MODEL = 'users.User'
