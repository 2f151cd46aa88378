"""
CBT（Computer Based Testing）バックエンド - メインアプリケーション
Flask + PostgreSQL/SQLite + トークン認証による試験実施・採点API
"""

import secrets

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
from werkzeug.routing import IntegerConverter

from cbt import __version__
from cbt.core.auth import CredentialStore
from cbt.core.catalog import ExamCatalog
from cbt.core.config import Config
from cbt.core.database import SQL_INT_MAX, DatabaseManager
from cbt.core.errors import CBTError
from cbt.core.ledger import AttemptLedger
from cbt.core.scoring import ScoringEngine
from cbt.routes import admin_bp, auth_bp, exam_bp

API_PREFIX = '/api'


class IdConverter(IntegerConverter):
    """DBの整数列に収まるIDのみマッチさせる"""

    def __init__(self, url_map):
        super().__init__(url_map, max=SQL_INT_MAX)


def create_app(config_class=Config):
    """Application Factory Pattern"""
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.url_map.converters['id'] = IdConverter

    # セキュリティ設定
    admin_password = _configure_security(app, config_class)

    # データベース初期化
    db_manager = _init_database(config_class)

    # アプリケーションコンテキスト設定（各コンポーネントに db_manager を注入）
    app.db_manager = db_manager
    app.credential_store = CredentialStore(
        db_manager,
        app.config['SECRET_KEY'],
        expire_hours=config_class.TOKEN_EXPIRE_HOURS,
        algorithm=config_class.TOKEN_ALGORITHM,
    )
    app.exam_catalog = ExamCatalog(db_manager, config_class.DEFAULT_DURATION_MINUTES)
    app.attempt_ledger = AttemptLedger(db_manager, app.exam_catalog)
    app.scoring_engine = ScoringEngine(app.exam_catalog, app.attempt_ledger)

    # 初期管理者の作成（起動完了前に必ず終わらせる）
    _ensure_admin(app, config_class.ADMIN_EMAIL, admin_password)

    # ルーティング登録
    _register_blueprints(app)
    _register_error_handlers(app)

    @app.route('/health')
    def health_check():
        return jsonify({'status': 'healthy', 'version': __version__})

    return app


def _configure_security(app, config_class):
    """セキュリティ設定。初期管理者のパスワードを返す"""
    if not app.config.get('SECRET_KEY'):
        if config_class.DEBUG:
            app.config['SECRET_KEY'] = 'dev-secret-key-change-in-production'
            app.logger.warning("開発用のSECRET_KEYを使用しています。本番環境では必ず環境変数を設定してください。")
        else:
            raise ValueError("セキュリティエラー: SECRET_KEY環境変数が設定されていません。")

    admin_password = config_class.ADMIN_PASSWORD
    if not admin_password:
        if config_class.DEBUG:
            admin_password = secrets.token_urlsafe(12)
            app.logger.warning(
                f"ADMIN_PASSWORDが未設定のため一時パスワードを生成しました: {admin_password} "
                "（初回ログイン後に変更してください）"
            )
        else:
            raise ValueError("セキュリティエラー: ADMIN_PASSWORD環境変数が設定されていません。")
    return admin_password


def _init_database(config_class):
    """データベース初期化"""
    try:
        db_manager = DatabaseManager(config_class.get_db_config())
        db_manager.init_database()
        return db_manager
    except Exception as e:
        raise RuntimeError(f"データベース初期化エラー: {e}")


def _ensure_admin(app, email, password):
    created = app.credential_store.ensure_admin(email, password)
    if created:
        app.logger.warning(f"初期管理者を作成しました: {created['email']}")


def _register_blueprints(app):
    """ブループリント登録"""
    for blueprint in (auth_bp, admin_bp, exam_bp):
        app.register_blueprint(blueprint, url_prefix=API_PREFIX)


def _register_error_handlers(app):
    """全エラーを {"error": message} 形式で返す"""

    @app.errorhandler(CBTError)
    def handle_app_error(e):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({'error': e.description}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        app.logger.exception(f"Unhandled error: {e}")
        return jsonify({'error': 'Internal server error'}), 500


if __name__ == '__main__':
    app = create_app()
    app.run(host=Config.HOST, port=Config.PORT, debug=Config.DEBUG)
