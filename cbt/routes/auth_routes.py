"""
認証関連のルーティング
"""
from flask import Blueprint, jsonify, current_app

from cbt.core.auth import json_body

auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/register', methods=['POST'])
def register():
    data = json_body()
    result = current_app.credential_store.register(
        data.get('name'), data.get('email'), data.get('password')
    )
    return jsonify(result)


@auth_bp.route('/login', methods=['POST'])
def login():
    data = json_body()
    result = current_app.credential_store.login(data.get('email'), data.get('password'))
    return jsonify(result)
