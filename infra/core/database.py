"""
CloudLink 프로젝트의 SQLite 데이터베이스 관리 시스템

SQLite 데이터베이스 연결을 관리하고 스키마 초기화를 담당합니다.
레이지 싱글톤 패턴으로 구현되어 전역에서 동일한 연결을 사용합니다.
"""

import sqlite3
import threading
from contextlib import contextmanager
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .config import get_config
from .exceptions import DatabaseError
from .logger import get_logger

logger = get_logger(__name__)

SCHEMA_PATH = Path(__file__).parent.parent / "migrations" / "initial_schema.sql"


class DatabaseManager:
    """SQLite 데이터베이스 연결과 쿼리를 관리하는 클래스"""

    def __init__(self, database_path: Optional[str] = None):
        """
        데이터베이스 매니저 초기화

        Args:
            database_path: DB 파일 경로 (None이면 설정값 사용)
        """
        self.database_path = database_path or get_config().database_path
        self._connection: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()

    def _get_connection(self) -> sqlite3.Connection:
        """데이터베이스 연결을 반환 (레이지 초기화)"""
        if self._connection is None:
            with self._lock:
                if self._connection is None:
                    try:
                        connection = sqlite3.connect(
                            self.database_path,
                            check_same_thread=False,
                            timeout=30.0,
                            isolation_level=None,  # 오토커밋 모드
                        )
                        connection.row_factory = sqlite3.Row
                        connection.execute("PRAGMA foreign_keys = ON")
                        connection.execute("PRAGMA journal_mode = WAL")
                    except sqlite3.Error as e:
                        raise DatabaseError(
                            f"데이터베이스 연결 실패: {str(e)}",
                            operation="connect",
                            error_code="DB_CONNECTION_ERROR",
                            details={"database_path": self.database_path},
                        ) from e

                    logger.info(f"데이터베이스 연결 성공: {self.database_path}")
                    self._initialize_schema(connection)
                    self._connection = connection

        return self._connection

    def _initialize_schema(self, connection: sqlite3.Connection) -> None:
        """스키마 SQL 을 실행 (모든 구문이 IF NOT EXISTS 라 반복 실행해도 안전)"""
        try:
            schema_sql = SCHEMA_PATH.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise DatabaseError(
                f"스키마 파일을 찾을 수 없습니다: {SCHEMA_PATH}",
                operation="load_schema_file",
            ) from e

        statements = [stmt.strip() for stmt in schema_sql.split(";") if stmt.strip()]
        try:
            for statement in statements:
                connection.execute(statement)
        except sqlite3.Error as e:
            raise DatabaseError(
                f"스키마 실행 실패: {str(e)}", operation="execute_schema"
            ) from e

        logger.debug(f"스키마 확인 완료: {len(statements)}개 구문")

    @contextmanager
    def get_cursor(self):
        """커서를 안전하게 사용하기 위한 컨텍스트 매니저"""
        connection = self._get_connection()
        with self._lock:
            cursor = connection.cursor()
            try:
                yield cursor
            finally:
                cursor.close()

    def execute_query(
        self,
        query: str,
        params: Union[tuple, dict, None] = None,
    ) -> int:
        """
        INSERT/UPDATE/DELETE 쿼리를 실행합니다.

        Returns:
            영향받은 행 수
        """
        try:
            with self.get_cursor() as cursor:
                cursor.execute(query, params or ())
                return cursor.rowcount

        except sqlite3.Error as e:
            logger.error(f"쿼리 실행 실패: {query[:100]}...")
            raise DatabaseError(
                f"쿼리 실행 실패: {str(e)}",
                operation="execute_query",
                details={"query": query[:200]},
            ) from e

    def fetch_one(
        self, query: str, params: Union[tuple, dict, None] = None
    ) -> Optional[sqlite3.Row]:
        """
        단일 행을 조회합니다.

        Args:
            query: SELECT 쿼리
            params: 쿼리 매개변수

        Returns:
            조회된 행 또는 None
        """
        try:
            with self.get_cursor() as cursor:
                cursor.execute(query, params or ())
                return cursor.fetchone()

        except sqlite3.Error as e:
            raise DatabaseError(
                f"단일 행 조회 실패: {str(e)}",
                operation="fetch_one",
                details={"query": query[:200]},
            ) from e

    def fetch_all(
        self, query: str, params: Union[tuple, dict, None] = None
    ) -> List[sqlite3.Row]:
        """
        모든 행을 조회합니다.

        Args:
            query: SELECT 쿼리
            params: 쿼리 매개변수

        Returns:
            조회된 행들의 리스트
        """
        try:
            with self.get_cursor() as cursor:
                cursor.execute(query, params or ())
                return cursor.fetchall()

        except sqlite3.Error as e:
            raise DatabaseError(
                f"전체 행 조회 실패: {str(e)}",
                operation="fetch_all",
                details={"query": query[:200]},
            ) from e

    def insert(self, table: str, data: Dict[str, Any]) -> int:
        """
        테이블에 데이터를 삽입합니다.

        Returns:
            삽입된 행의 rowid
        """
        columns = list(data.keys())
        placeholders = ", ".join(["?" for _ in columns])
        query = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"

        try:
            with self.get_cursor() as cursor:
                cursor.execute(query, list(data.values()))
                return cursor.lastrowid

        except sqlite3.Error as e:
            raise DatabaseError(
                f"데이터 삽입 실패: {str(e)}",
                operation="insert",
                table=table,
            ) from e

    def update(
        self,
        table: str,
        data: Dict[str, Any],
        where_clause: str,
        where_params: Optional[tuple] = None,
    ) -> int:
        """
        테이블의 데이터를 업데이트합니다.

        Args:
            table: 테이블명
            data: 업데이트할 컬럼과 값
            where_clause: ? 플레이스홀더를 사용하는 WHERE 조건절
            where_params: WHERE 절 매개변수

        Returns:
            업데이트된 행 수
        """
        set_clause = ", ".join([f"{col} = ?" for col in data.keys()])
        params = list(data.values()) + list(where_params or ())
        query = f"UPDATE {table} SET {set_clause} WHERE {where_clause}"

        try:
            with self.get_cursor() as cursor:
                cursor.execute(query, params)
                return cursor.rowcount

        except sqlite3.Error as e:
            raise DatabaseError(
                f"데이터 업데이트 실패: {str(e)}",
                operation="update",
                table=table,
                details={"where_clause": where_clause},
            ) from e

    def delete(
        self,
        table: str,
        where_clause: str,
        where_params: Optional[tuple] = None,
    ) -> int:
        """
        테이블에서 데이터를 삭제합니다.

        Returns:
            삭제된 행 수
        """
        query = f"DELETE FROM {table} WHERE {where_clause}"

        try:
            with self.get_cursor() as cursor:
                cursor.execute(query, where_params or ())
                return cursor.rowcount

        except sqlite3.Error as e:
            raise DatabaseError(
                f"데이터 삭제 실패: {str(e)}",
                operation="delete",
                table=table,
                details={"where_clause": where_clause},
            ) from e

    @contextmanager
    def transaction(self):
        """트랜잭션을 안전하게 처리하기 위한 컨텍스트 매니저"""
        connection = self._get_connection()

        with self._lock:
            connection.execute("BEGIN")
            try:
                yield connection
                connection.execute("COMMIT")
                logger.debug("트랜잭션 커밋됨")
            except Exception as e:
                connection.execute("ROLLBACK")
                logger.error(f"트랜잭션 롤백됨: {str(e)}")
                raise

    def close(self) -> None:
        """데이터베이스 연결을 종료합니다."""
        if self._connection:
            with self._lock:
                if self._connection:
                    self._connection.close()
                    self._connection = None
                    logger.info("데이터베이스 연결 종료됨")


@lru_cache(maxsize=1)
def get_database_manager() -> DatabaseManager:
    """
    데이터베이스 매니저 인스턴스를 반환하는 레이지 싱글톤 함수

    Returns:
        DatabaseManager: 데이터베이스 매니저 인스턴스
    """
    return DatabaseManager()
