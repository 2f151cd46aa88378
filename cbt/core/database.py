"""
データベース管理クラス（PostgreSQL/SQLite対応）
接続管理とスキーマ初期化を行う
"""
import logging
import sqlite3

import psycopg2
import psycopg2.extras

logger = logging.getLogger(__name__)

# ストアが投げる一意制約・外部キー制約違反
INTEGRITY_ERRORS = (sqlite3.IntegrityError, psycopg2.IntegrityError)

# PostgreSQL の INTEGER / SERIAL に収まる範囲
SQL_INT_MAX = 2 ** 31 - 1


def is_sql_int(value):
    """bool を除く、DBの整数列にそのまま書ける int か"""
    return (
        isinstance(value, int) and not isinstance(value, bool)
        and -SQL_INT_MAX - 1 <= value <= SQL_INT_MAX
    )


class DatabaseManager:
    def __init__(self, config):
        self.db_type = config['DATABASE_TYPE']
        self.config = config

    def get_connection(self):
        if self.db_type == 'postgresql':
            conn = psycopg2.connect(
                host=self.config['DB_HOST'],
                database=self.config['DB_NAME'],
                user=self.config['DB_USER'],
                password=self.config['DB_PASSWORD'],
                port=self.config['DB_PORT']
            )
            conn.autocommit = False
            return conn
        else:
            db_path = self.config.get('DATABASE', 'cbt.db')
            conn = sqlite3.connect(db_path)
            conn.row_factory = sqlite3.Row
            conn.execute('PRAGMA foreign_keys = ON')
            return conn

    def adapt_query(self, query):
        """? プレースホルダをドライバの形式に合わせる"""
        if self.db_type == 'postgresql':
            return query.replace('?', '%s')
        return query

    def _cursor(self, conn):
        if self.db_type == 'postgresql':
            return conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
        return conn.cursor()

    def execute_query(self, query, params=None):
        """SELECT は dict のリスト、それ以外は影響行数を返す"""
        conn = self.get_connection()
        try:
            cur = self._cursor(conn)
            cur.execute(self.adapt_query(query), params or ())
            if query.strip().upper().startswith(('SELECT', 'WITH', 'PRAGMA')):
                result = [dict(row) for row in cur.fetchall()]
            else:
                result = cur.rowcount
                conn.commit()
            cur.close()
            return result
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def execute_insert(self, query, params=None):
        """INSERT を実行し、採番された id を返す"""
        conn = self.get_connection()
        try:
            cur = self._cursor(conn)
            if self.db_type == 'postgresql':
                cur.execute(self.adapt_query(query) + ' RETURNING id', params or ())
                new_id = cur.fetchone()['id']
            else:
                cur.execute(query, params or ())
                new_id = cur.lastrowid
            conn.commit()
            cur.close()
            return new_id
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def init_database(self):
        if self.db_type == 'postgresql':
            self._init_postgresql()
        else:
            self._init_sqlite()

    def _init_postgresql(self):
        queries = [
            """CREATE TABLE IF NOT EXISTS users (
                id SERIAL PRIMARY KEY,
                name VARCHAR(200) NOT NULL DEFAULT '',
                email VARCHAR(255) UNIQUE NOT NULL,
                password_hash VARCHAR(255) NOT NULL,
                role VARCHAR(20) NOT NULL DEFAULT 'student' CHECK (role IN ('student', 'admin')),
                created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
            )""",
            """CREATE TABLE IF NOT EXISTS exams (
                id SERIAL PRIMARY KEY,
                title VARCHAR(300) NOT NULL,
                duration_minutes INTEGER NOT NULL,
                published BOOLEAN NOT NULL DEFAULT FALSE,
                created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
            )""",
            """CREATE TABLE IF NOT EXISTS questions (
                id SERIAL PRIMARY KEY,
                exam_id INTEGER NOT NULL REFERENCES exams(id) ON DELETE CASCADE,
                text TEXT NOT NULL,
                options TEXT NOT NULL,
                answer_index INTEGER NOT NULL
            )""",
            """CREATE TABLE IF NOT EXISTS attempts (
                id SERIAL PRIMARY KEY,
                exam_id INTEGER NOT NULL REFERENCES exams(id),
                user_id INTEGER NOT NULL REFERENCES users(id),
                started_at TEXT NOT NULL,
                submitted_at TEXT,
                score DOUBLE PRECISION,
                answers TEXT
            )""",
            "CREATE INDEX IF NOT EXISTS idx_questions_exam_id ON questions(exam_id)",
            "CREATE INDEX IF NOT EXISTS idx_attempts_exam_id ON attempts(exam_id)",
            "CREATE INDEX IF NOT EXISTS idx_attempts_user_id ON attempts(user_id)",
        ]

        for query in queries:
            self.execute_query(query)
        logger.info("PostgreSQL schema initialized")

    def _init_sqlite(self):
        queries = [
            """CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL DEFAULT '',
                email TEXT UNIQUE NOT NULL,
                password_hash TEXT NOT NULL,
                role TEXT NOT NULL DEFAULT 'student' CHECK (role IN ('student', 'admin')),
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP
            )""",
            """CREATE TABLE IF NOT EXISTS exams (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                title TEXT NOT NULL,
                duration_minutes INTEGER NOT NULL,
                published INTEGER NOT NULL DEFAULT 0,
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP
            )""",
            """CREATE TABLE IF NOT EXISTS questions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                exam_id INTEGER NOT NULL,
                text TEXT NOT NULL,
                options TEXT NOT NULL,  -- JSON配列
                answer_index INTEGER NOT NULL,  -- 0始まりの正解インデックス
                FOREIGN KEY (exam_id) REFERENCES exams (id) ON DELETE CASCADE
            )""",
            """CREATE TABLE IF NOT EXISTS attempts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                exam_id INTEGER NOT NULL,
                user_id INTEGER NOT NULL,
                started_at TEXT NOT NULL,
                submitted_at TEXT,
                score REAL,
                answers TEXT,  -- 提出されたJSONをそのまま保存
                FOREIGN KEY (exam_id) REFERENCES exams (id),
                FOREIGN KEY (user_id) REFERENCES users (id)
            )""",
            "CREATE INDEX IF NOT EXISTS idx_questions_exam_id ON questions(exam_id)",
            "CREATE INDEX IF NOT EXISTS idx_attempts_exam_id ON attempts(exam_id)",
            "CREATE INDEX IF NOT EXISTS idx_attempts_user_id ON attempts(user_id)",
        ]

        for query in queries:
            self.execute_query(query)
        logger.info(f"SQLite schema initialized: {self.config.get('DATABASE')}")
