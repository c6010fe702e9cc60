"""
클라우드 연결 데이터 접근

cloud_integrations 는 (organization_id, provider) 당 한 행이며,
Slack/Dropbox 처럼 여러 연결을 가지는 프로바이더는 provider_connections 에
연결 문서를 추가하고 cloud_integrations.connection_id 로 현재 연결을 가리킵니다.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from infra.core import DatabaseManager, get_database_manager, get_logger
from infra.utils.datetime_utils import parse_optional_iso, to_iso, utc_now

from .oauth_schema import CloudConnection, ConnectionType, ProviderConnection

logger = get_logger(__name__)

CONNECTIONS_TABLE = "cloud_integrations"
PROVIDER_CONNECTIONS_TABLE = "provider_connections"

_DATETIME_FIELDS = {
    "token_expires_at", "connected_at", "last_refreshed_at", "last_refresh_error_at",
    "refresh_error_at", "disconnected_at", "updated_at",
}
_BOOL_FIELDS = {"is_active", "requires_reconnection"}


def _to_column(key: str, value: Any) -> Any:
    """파이썬 값을 SQLite 컬럼 값으로 변환"""
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_iso(value)
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (list, tuple)):
        return json.dumps(list(value))
    if isinstance(value, Enum):
        return value.value
    return value


def _serialize(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {key: _to_column(key, value) for key, value in fields.items()}


def _row_to_dict(row) -> Dict[str, Any]:
    data = dict(row)
    for key in _DATETIME_FIELDS:
        if key in data:
            data[key] = parse_optional_iso(data[key])
    for key in _BOOL_FIELDS:
        if key in data:
            data[key] = bool(data[key])
    if "scopes" in data:
        data["scopes"] = json.loads(data["scopes"] or "[]")
    return data


class ConnectionRepository:
    """cloud_integrations / provider_connections 접근"""

    def __init__(self, db: Optional[DatabaseManager] = None):
        self.db = db or get_database_manager()

    def get_connection(self, organization_id: str, provider: str) -> Optional[CloudConnection]:
        """조직/프로바이더 연결 조회"""
        row = self.db.fetch_one(
            f"SELECT * FROM {CONNECTIONS_TABLE} WHERE organization_id = ? AND provider = ?",
            (organization_id, provider),
        )
        return CloudConnection(**_row_to_dict(row)) if row else None

    def list_connections(self, provider: str) -> List[CloudConnection]:
        """프로바이더의 모든 조직 연결"""
        rows = self.db.fetch_all(
            f"SELECT * FROM {CONNECTIONS_TABLE} WHERE provider = ? ORDER BY organization_id",
            (provider,),
        )
        return [CloudConnection(**_row_to_dict(row)) for row in rows]

    def list_all_connections(self) -> List[CloudConnection]:
        """전체 연결 (마이그레이션용)"""
        rows = self.db.fetch_all(
            f"SELECT * FROM {CONNECTIONS_TABLE} ORDER BY organization_id, provider"
        )
        return [CloudConnection(**_row_to_dict(row)) for row in rows]

    def upsert_connection(self, organization_id: str, provider: str, fields: Dict[str, Any]) -> None:
        """
        연결 레코드 병합 저장

        기존 행이 있으면 전달된 필드만 덮어쓰고, 없으면 새로 만듭니다.
        """
        data = _serialize({**fields, "updated_at": utc_now()})

        with self.db.transaction():
            updated = self.db.update(
                CONNECTIONS_TABLE,
                data,
                "organization_id = ? AND provider = ?",
                (organization_id, provider),
            )
            if not updated:
                self.db.insert(
                    CONNECTIONS_TABLE,
                    {"organization_id": organization_id, "provider": provider, **data},
                )

        logger.debug(f"연결 저장: org={organization_id}, provider={provider}, fields={sorted(fields)}")

    def update_connection(self, organization_id: str, provider: str, fields: Dict[str, Any]) -> int:
        """
        기존 연결의 일부 필드 갱신

        Returns:
            갱신된 행 수 (연결이 없으면 0)
        """
        return self.db.update(
            CONNECTIONS_TABLE,
            _serialize({**fields, "updated_at": utc_now()}),
            "organization_id = ? AND provider = ?",
            (organization_id, provider),
        )

    # 다중 연결 문서
    def add_provider_connection(self, connection: ProviderConnection) -> None:
        """다중 연결 프로바이더의 연결 문서 추가"""
        self.db.insert(
            PROVIDER_CONNECTIONS_TABLE,
            _serialize(connection.model_dump()),
        )
        logger.debug(
            f"연결 문서 추가: id={connection.id}, org={connection.organization_id}, provider={connection.provider}"
        )

    def get_provider_connection(self, connection_id: str) -> Optional[ProviderConnection]:
        """연결 문서 조회"""
        row = self.db.fetch_one(
            f"SELECT * FROM {PROVIDER_CONNECTIONS_TABLE} WHERE id = ?", (connection_id,)
        )
        if not row:
            return None
        data = _row_to_dict(row)
        data["connection_type"] = ConnectionType(data["connection_type"])
        return ProviderConnection(**data)

    def list_provider_connections(
        self, organization_id: Optional[str] = None, provider: Optional[str] = None
    ) -> List[ProviderConnection]:
        """연결 문서 목록 (조건 없으면 전체)"""
        clauses, params = [], []
        if organization_id:
            clauses.append("organization_id = ?")
            params.append(organization_id)
        if provider:
            clauses.append("provider = ?")
            params.append(provider)

        query = f"SELECT * FROM {PROVIDER_CONNECTIONS_TABLE}"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY connected_at"

        connections = []
        for row in self.db.fetch_all(query, tuple(params)):
            data = _row_to_dict(row)
            data["connection_type"] = ConnectionType(data["connection_type"])
            connections.append(ProviderConnection(**data))
        return connections

    def update_provider_connection(self, connection_id: str, fields: Dict[str, Any]) -> int:
        """연결 문서 일부 필드 갱신"""
        return self.db.update(
            PROVIDER_CONNECTIONS_TABLE,
            _serialize(fields),
            "id = ?",
            (connection_id,),
        )
