#!/usr/bin/env python3
"""
CBT バックエンド
起動スクリプト

使用方法:
    python run.py [--port PORT] [--host HOST] [--debug]

例:
    python run.py
    python run.py --port 8080
    python run.py --host 0.0.0.0 --port 3000 --debug
"""

import argparse
import logging
import sys

from app import create_app
from cbt.core.config import Config


def main():
    """アプリケーションを起動"""
    parser = argparse.ArgumentParser(description='CBT バックエンド')
    parser.add_argument('--host', default=Config.HOST, help=f'ホストアドレス (デフォルト: {Config.HOST})')
    parser.add_argument('--port', type=int, default=Config.PORT, help=f'ポート番号 (デフォルト: {Config.PORT})')
    parser.add_argument('--debug', action='store_true', help='デバッグモードで起動')

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    if args.debug:
        Config.DEBUG = True

    app = create_app(Config)

    print("=" * 60)
    print("CBT バックエンド")
    print("=" * 60)
    print(f"ホスト: {args.host}")
    print(f"ポート: {args.port}")
    print(f"デバッグモード: {'有効' if args.debug else '無効'}")
    print(f"URL: http://{args.host}:{args.port}/api")
    print("=" * 60)

    try:
        app.run(
            host=args.host,
            port=args.port,
            debug=args.debug,
            use_reloader=False
        )
    except KeyboardInterrupt:
        print("\nアプリケーションを停止しました")
        sys.exit(0)


if __name__ == '__main__':
    main()
