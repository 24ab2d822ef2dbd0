import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
DEBUG = os.getenv('DEBUG', '0') == '1'
ALLOWED_HOSTS = ['*']

INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'django.contrib.auth',
    'rest_framework',
    'corsheaders',
    'frontdesk',
]

MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.common.CommonMiddleware',
]

ROOT_URLCONF = 'config.urls'
WSGI_APPLICATION = 'config.wsgi.application'

# Database
# 未设置 DATABASE_URL 时用本地 sqlite（离线 / 开发 / 测试）
DATABASE_URL = os.getenv('DATABASE_URL', '')

if DATABASE_URL.startswith('postgresql://'):
    db_parts = DATABASE_URL.replace('postgresql://', '').split('@')
    user_pass = db_parts[0].split(':')
    host_db = db_parts[1].split('/')
    host_port = host_db[0].split(':')

    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.postgresql',
            'NAME': host_db[1],
            'USER': user_pass[0],
            'PASSWORD': user_pass[1] if len(user_pass) > 1 else '',
            'HOST': host_port[0],
            'PORT': host_port[1] if len(host_port) > 1 else '5432',
        }
    }
else:
    sqlite_path = DATABASE_URL.replace('sqlite:///', '') if DATABASE_URL.startswith('sqlite:///') else ''
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': sqlite_path or str(BASE_DIR / 'frontdesk.sqlite3'),
        }
    }

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'
USE_TZ = True
TIME_ZONE = 'UTC'

# CORS
CORS_ALLOW_ALL_ORIGINS = True

# REST Framework
REST_FRAMEWORK = {
    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
    ],
    'DEFAULT_PARSER_CLASSES': [
        'rest_framework.parsers.JSONParser',
    ],
    'DEFAULT_AUTHENTICATION_CLASSES': [],
    'DEFAULT_PERMISSION_CLASSES': [],
    'UNAUTHENTICATED_USER': None,
    'EXCEPTION_HANDLER': 'frontdesk.exception_handler.unified_exception_handler',
}

# Cache — 处方保存的 in-flight 锁和 visit → prescription link
# locmem 只在单进程内有效，满了会淘汰 key（锁也会被淘汰）。
# 多 worker 部署必须换成共享缓存（例如 django.core.cache.backends.redis.RedisCache），
# 否则两个进程可以同时保存同一个 visit 的处方。
CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'frontdesk',
        'OPTIONS': {'MAX_ENTRIES': 10000},
    }
}

# Clinic backend
# rest  → 真实的诊所 API（requests）
# local → Django ORM（离线 / 开发 / 测试）
CLINIC_BACKEND = os.getenv('CLINIC_BACKEND', 'rest')
CLINIC_API_BASE_URL = os.getenv('CLINIC_API_BASE_URL', 'http://localhost:3000/api')
CLINIC_API_TIMEOUT = float(os.getenv('CLINIC_API_TIMEOUT', '10'))
CLINIC_ID = os.getenv('CLINIC_ID', '')

PHONE_COUNTRY_CODE = os.getenv('PHONE_COUNTRY_CODE', '91')
PRESCRIPTION_SAVE_LOCK_SECONDS = int(os.getenv('PRESCRIPTION_SAVE_LOCK_SECONDS', '30'))
# create 之后记住 visit → prescription 的时长（秒）
PRESCRIPTION_LINK_SECONDS = int(os.getenv('PRESCRIPTION_LINK_SECONDS', '86400'))

# Logging
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'simple': {
            'format': '%(asctime)s %(levelname)s %(name)s %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'simple',
        },
    },
    'loggers': {
        'frontdesk': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': True,
        },
    },
}

# Celery
CELERY_BROKER_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')
CELERY_RESULT_BACKEND = os.getenv('REDIS_URL', 'redis://localhost:6379/0')
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'
CELERY_TIMEZONE = 'UTC'
# 备注保存不应该跑很久
CELERY_TASK_SOFT_TIME_LIMIT = 30
