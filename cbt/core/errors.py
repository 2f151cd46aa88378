"""
アプリケーション例外
HTTPステータスと {"error": message} 形式のレスポンスに対応する
"""


class CBTError(Exception):
    """全アプリケーション例外の基底クラス"""
    status_code = 500
    default_message = 'Internal server error'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {'error': self.message}


class ValidationError(CBTError):
    """入力値不足・形式不正"""
    status_code = 400
    default_message = 'bad payload'


class AuthError(CBTError):
    """トークン不正・期限切れ・認証情報誤り"""
    status_code = 401
    default_message = 'Invalid token'


class ForbiddenError(CBTError):
    """認証済みだが権限なし"""
    status_code = 403
    default_message = 'Forbidden'


class NotFoundError(CBTError):
    status_code = 404
    default_message = 'Not found'


class ConflictError(CBTError):
    """一意制約違反・二重提出"""
    status_code = 400
    default_message = 'Conflict'


class InternalError(CBTError):
    status_code = 500
    default_message = 'Internal server error'
