"""
アクセス制御
ロールと所有者による判定のみを行う純粋関数群
"""
from .errors import AuthError, ForbiddenError

ROLE_ADMIN = 'admin'
ROLE_STUDENT = 'student'


def require_authenticated(claims):
    """認証済みであることを確認"""
    if claims is None:
        raise AuthError('No token')
    return claims


def require_role(claims, role):
    """指定ロールであることを確認"""
    require_authenticated(claims)
    if claims.role != role:
        raise ForbiddenError('Admin only' if role == ROLE_ADMIN else f'{role} only')
    return claims


def require_owner(claims, attempt):
    """受験記録の所有者本人であることを確認"""
    require_authenticated(claims)
    if attempt['user_id'] != claims.id:
        raise ForbiddenError('Attempt belongs to another user')
    return claims


def can_view_attempt(claims, attempt):
    return claims is not None and (
        claims.role == ROLE_ADMIN or attempt['user_id'] == claims.id
    )
