import pytest

from app import create_app
from cbt.core.config import Config
from cbt.core.database import DatabaseManager

TEST_SECRET = 'test-secret-key-for-cbt-backend-0123456789'
TEST_ADMIN_EMAIL = 'admin@example.com'
TEST_ADMIN_PASSWORD = 'adminpass'


def make_config(tmp_path, **overrides):
    # テスト用に一時DBへ向ける（PostgreSQL環境が無い場合でも自己完結させる）
    db_path = tmp_path / "test.db"
    attrs = {
        'TESTING': True,
        'DEBUG': False,
        'SECRET_KEY': TEST_SECRET,
        'DATABASE_TYPE': 'sqlite',
        'DATABASE_URL': f"sqlite:///{db_path}",
        'DB_NAME': str(db_path),
        'ADMIN_EMAIL': TEST_ADMIN_EMAIL,
        'ADMIN_PASSWORD': TEST_ADMIN_PASSWORD,
    }
    attrs.update(overrides)
    return type('TestConfig', (Config,), attrs)


def auth_header(token):
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture()
def app(tmp_path):
    return create_app(make_config(tmp_path))


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def admin_token(client):
    res = client.post('/api/login', json={'email': TEST_ADMIN_EMAIL, 'password': TEST_ADMIN_PASSWORD})
    assert res.status_code == 200
    return res.get_json()['token']


@pytest.fixture()
def register_student(client):
    def _register(email='student@example.com', password='studentpass', name='Student'):
        res = client.post('/api/register', json={'name': name, 'email': email, 'password': password})
        assert res.status_code == 200
        return res.get_json()['token']
    return _register


@pytest.fixture()
def db_manager(tmp_path):
    db = DatabaseManager({'DATABASE_TYPE': 'sqlite', 'DATABASE': str(tmp_path / "unit.db")})
    db.init_database()
    return db
