"""
ルーティングモジュール
"""
from .auth_routes import auth_bp
from .admin_routes import admin_bp
from .exam_routes import exam_bp

__all__ = ['auth_bp', 'admin_bp', 'exam_bp']
