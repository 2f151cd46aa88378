import pytest

from app import create_app
from tests.conftest import TEST_ADMIN_EMAIL, make_config


def test_create_app_with_temp_db(tmp_path):
    flask_app = create_app(make_config(tmp_path))

    assert flask_app is not None
    assert flask_app.config.get("DATABASE_URL") == f"sqlite:///{tmp_path / 'test.db'}"
    assert flask_app.secret_key

    res = flask_app.test_client().get('/health')
    assert res.status_code == 200
    assert res.get_json()['status'] == 'healthy'


def test_missing_secret_key_is_fatal_outside_debug(tmp_path):
    with pytest.raises(ValueError):
        create_app(make_config(tmp_path, SECRET_KEY=None))


def test_missing_admin_password_is_fatal_outside_debug(tmp_path):
    with pytest.raises(ValueError):
        create_app(make_config(tmp_path, ADMIN_PASSWORD=None))


def test_debug_generates_one_time_admin_password(tmp_path):
    flask_app = create_app(make_config(tmp_path, DEBUG=True, SECRET_KEY=None, ADMIN_PASSWORD=None))

    assert flask_app.config['SECRET_KEY']
    admins = flask_app.db_manager.execute_query("SELECT email FROM users WHERE role = 'admin'")
    assert [a['email'] for a in admins] == [TEST_ADMIN_EMAIL]

    # 既定の固定パスワードは存在しない
    res = flask_app.test_client().post(
        '/api/login', json={'email': TEST_ADMIN_EMAIL, 'password': 'admin123'}
    )
    assert res.status_code == 401


def test_admin_bootstrap_runs_once(tmp_path):
    config = make_config(tmp_path)
    create_app(config)
    flask_app = create_app(config)

    admins = flask_app.db_manager.execute_query("SELECT id FROM users WHERE role = 'admin'")
    assert len(admins) == 1


def test_unknown_route_returns_json_error(client):
    res = client.get('/api/nope')
    assert res.status_code == 404
    assert 'error' in res.get_json()


def test_parse_database_url():
    from cbt.core.config import _parse_database_url

    assert _parse_database_url('sqlite:///tmp/x.db') == ('sqlite', {'DB_NAME': 'tmp/x.db'})

    db_type, db = _parse_database_url('postgres://cbt:pw@db.local/cbt')
    assert db_type == 'postgresql'
    assert db == {'DB_USER': 'cbt', 'DB_PASSWORD': 'pw', 'DB_HOST': 'db.local', 'DB_PORT': '5432', 'DB_NAME': 'cbt'}

    with pytest.raises(ValueError):
        _parse_database_url('postgresql://broken')
