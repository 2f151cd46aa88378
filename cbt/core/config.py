"""
設定
環境変数（.env を含む）から読み込む
"""
import os
import re

from dotenv import load_dotenv

load_dotenv()

POSTGRES_URL_PATTERN = re.compile(r'postgresql://([^:]+):([^@]+)@([^:/]+):?(\d+)?/(.+)')


def _parse_database_url(url):
    """DATABASE_URL を (種別, 接続情報dict) に分解する"""
    if url.startswith('postgres://'):
        url = 'postgresql://' + url[len('postgres://'):]

    if not url.startswith('postgresql://'):
        return 'sqlite', {'DB_NAME': url.replace('sqlite:///', '')}

    match = POSTGRES_URL_PATTERN.match(url)
    if not match:
        raise ValueError('Invalid PostgreSQL DATABASE_URL format')
    user, password, host, port, name = match.groups()
    return 'postgresql', {
        'DB_USER': user,
        'DB_PASSWORD': password,
        'DB_HOST': host,
        'DB_PORT': port or '5432',
        'DB_NAME': name,
    }


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY')
    DEBUG = os.environ.get('DEBUG', 'False').lower() == 'true'
    TESTING = False

    # データベース
    DATABASE_URL = os.environ.get('DATABASE_URL') or 'sqlite:///cbt.db'
    DATABASE_TYPE, _db = _parse_database_url(DATABASE_URL)
    DB_USER = _db.get('DB_USER')
    DB_PASSWORD = _db.get('DB_PASSWORD')
    DB_HOST = _db.get('DB_HOST')
    DB_PORT = _db.get('DB_PORT')
    DB_NAME = _db['DB_NAME']
    del _db

    # 初期管理者
    ADMIN_EMAIL = os.environ.get('ADMIN_EMAIL', 'admin@example.com')
    ADMIN_PASSWORD = os.environ.get('ADMIN_PASSWORD')

    # トークン
    TOKEN_ALGORITHM = 'HS256'
    TOKEN_EXPIRE_HOURS = int(os.environ.get('TOKEN_EXPIRE_HOURS', 8))

    DEFAULT_DURATION_MINUTES = 30

    # サーバー
    PORT = int(os.environ.get('PORT', 3000))
    HOST = os.environ.get('HOST', '0.0.0.0')

    @classmethod
    def get_db_config(cls):
        """DatabaseManager に渡す接続設定"""
        if cls.DATABASE_TYPE == 'postgresql':
            return {
                'DATABASE_TYPE': 'postgresql',
                'DB_NAME': cls.DB_NAME,
                'DB_USER': cls.DB_USER,
                'DB_PASSWORD': cls.DB_PASSWORD,
                'DB_HOST': cls.DB_HOST,
                'DB_PORT': cls.DB_PORT
            }
        return {
            'DATABASE_TYPE': 'sqlite',
            'DATABASE': cls.DB_NAME
        }
