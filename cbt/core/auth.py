"""
認証（ユーザー登録・ログイン・トークン発行/検証）
"""
import logging
from datetime import datetime, timedelta, timezone
from functools import wraps

import jwt
from flask import current_app, g, request
from pydantic import ValidationError as PydanticValidationError
from werkzeug.security import check_password_hash, generate_password_hash

from .database import INTEGRITY_ERRORS
from .errors import AuthError, ConflictError, ValidationError
from .policy import ROLE_ADMIN, ROLE_STUDENT, require_authenticated, require_role
from .schemas import Claims

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = 'Invalid credentials'


class CredentialStore:
    """ユーザー資格情報の検証とトークン発行"""

    def __init__(self, db_manager, secret_key, expire_hours=8, algorithm='HS256'):
        self.db = db_manager
        self.secret_key = secret_key
        self.expire_hours = expire_hours
        self.algorithm = algorithm
        # 未登録メールでも照合コストを揃えるためのダミーハッシュ
        self._dummy_hash = generate_password_hash('cbt-unused-password')

    @staticmethod
    def _public_user(row):
        return {
            'id': row['id'],
            'name': row['name'],
            'email': row['email'],
            'role': row['role'],
        }

    def get_user(self, user_id):
        rows = self.db.execute_query(
            'SELECT id, name, email, role FROM users WHERE id = ?', (user_id,)
        )
        return self._public_user(rows[0]) if rows else None

    def register(self, name, email, password):
        """新規ユーザー登録（常に student ロール）"""
        email = email.strip() if isinstance(email, str) else None
        if not email or not password or not isinstance(password, str):
            raise ValidationError('email/password required')
        if name is not None and not isinstance(name, str):
            raise ValidationError('name must be a string')

        existing = self.db.execute_query('SELECT id FROM users WHERE email = ?', (email,))
        if existing:
            raise ConflictError('Email already registered')

        password_hash = generate_password_hash(password)
        try:
            user_id = self.db.execute_insert(
                'INSERT INTO users (name, email, password_hash, role) VALUES (?, ?, ?, ?)',
                ((name or '').strip(), email, password_hash, ROLE_STUDENT)
            )
        except INTEGRITY_ERRORS:
            # 事前確認と INSERT の間に同じメールが登録された
            raise ConflictError('Email already registered')

        user = self.get_user(user_id)
        logger.info(f"User registered: id={user_id}")
        return {'user': user, 'token': self.issue_token(user)}

    def login(self, email, password):
        email = email.strip() if isinstance(email, str) else None
        if not email or not password or not isinstance(password, str):
            raise ValidationError('email/password required')

        rows = self.db.execute_query(
            'SELECT id, name, email, role, password_hash FROM users WHERE email = ?', (email,)
        )
        if not rows:
            check_password_hash(self._dummy_hash, password)
            raise AuthError(INVALID_CREDENTIALS)
        if not check_password_hash(rows[0]['password_hash'], password):
            raise AuthError(INVALID_CREDENTIALS)

        user = self._public_user(rows[0])
        return {'user': user, 'token': self.issue_token(user)}

    def issue_token(self, user):
        now = datetime.now(timezone.utc)
        payload = {
            'id': user['id'],
            'role': user['role'],
            'email': user['email'],
            'iat': now,
            'exp': now + timedelta(hours=self.expire_hours),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify_token(self, token):
        """署名と有効期限を検証し Claims を返す"""
        if not token:
            raise AuthError('No token')
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise AuthError('Token expired')
        except jwt.InvalidTokenError:
            raise AuthError('Invalid token')

        try:
            return Claims(id=payload.get('id'), role=payload.get('role'), email=payload.get('email'))
        except PydanticValidationError:
            raise AuthError('Invalid token')

    def ensure_admin(self, email, password):
        """管理者が一人もいなければ作成する。作成したユーザーを返す"""
        admins = self.db.execute_query(
            'SELECT id FROM users WHERE role = ? LIMIT 1', (ROLE_ADMIN,)
        )
        if admins:
            return None

        existing = self.db.execute_query('SELECT id FROM users WHERE email = ?', (email,))
        if existing:
            self.db.execute_query(
                'UPDATE users SET role = ? WHERE id = ?', (ROLE_ADMIN, existing[0]['id'])
            )
            logger.warning(f"Promoted existing user {email} to admin")
            return self.get_user(existing[0]['id'])

        user_id = self.db.execute_insert(
            'INSERT INTO users (name, email, password_hash, role) VALUES (?, ?, ?, ?)',
            ('Admin', email, generate_password_hash(password), ROLE_ADMIN)
        )
        logger.warning(f"Created initial admin account: {email}")
        return self.get_user(user_id)


def _bearer_token():
    auth = request.headers.get('Authorization')
    if not auth:
        return None
    parts = auth.split(' ', 1)
    if len(parts) != 2 or parts[0].lower() != 'bearer':
        raise AuthError('Invalid token')
    return parts[1].strip()


def json_body():
    """リクエストボディのJSONオブジェクト。オブジェクト以外は不正な入力とする"""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('bad payload')
    return data


def login_required(f):
    """トークン認証デコレータ"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        claims = current_app.credential_store.verify_token(token)
        g.claims = require_authenticated(claims)
        return f(*args, **kwargs)
    return decorated_function


def admin_required(f):
    """管理者権限確認デコレータ"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        claims = current_app.credential_store.verify_token(token)
        g.claims = require_role(claims, ROLE_ADMIN)
        return f(*args, **kwargs)
    return decorated_function
