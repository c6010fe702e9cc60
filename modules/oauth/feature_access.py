"""
앱 기능별 OAuth 스코프 관리

각 앱이 프로바이더에서 사용하는 기능을 스코프로 환산하고,
저장된 연결이 기능에 필요한 스코프를 모두 가지고 있는지 검증합니다.
"""

from typing import Dict, Iterable, List, Optional

from infra.core import get_logger

from .connection_repository import ConnectionRepository

logger = get_logger(__name__)

GOOGLE_DRIVE = "https://www.googleapis.com/auth/"

FEATURE_SCOPE_MAP: Dict[str, Dict[str, List[str]]] = {
    "google": {
        "file.upload": [f"{GOOGLE_DRIVE}drive.file"],
        "file.download": [f"{GOOGLE_DRIVE}drive.readonly"],
        "folder.browse": [f"{GOOGLE_DRIVE}drive.readonly"],
        "file.share": [f"{GOOGLE_DRIVE}drive.file"],
        "docs.create": [f"{GOOGLE_DRIVE}documents"],
        "sheets.access": [f"{GOOGLE_DRIVE}spreadsheets"],
        "calendar.read": [f"{GOOGLE_DRIVE}calendar.readonly"],
        "calendar.write": [f"{GOOGLE_DRIVE}calendar"],
        "calendar.events": [f"{GOOGLE_DRIVE}calendar.events"],
        "meet.create": [f"{GOOGLE_DRIVE}meetings.space.created"],
        "meet.read": [f"{GOOGLE_DRIVE}meetings.space.readonly"],
    },
    "box": {
        "file.upload": ["root_readwrite"],
        "file.download": ["root_readonly"],
        "folder.browse": ["root_readonly"],
        "file.share": ["root_readwrite"],
    },
    "dropbox": {
        "file.upload": ["files.content.write", "files.metadata.write"],
        "file.download": ["files.content.read", "files.metadata.read"],
        "folder.browse": ["files.metadata.read"],
        "file.share": ["sharing.read", "sharing.write"],
    },
    "slack": {
        "send.message": ["chat:write", "users:read", "users:read.email", "team:read"],
        "create.channel": ["channels:write", "groups:write"],
        "post.channel": [
            "chat:write", "channels:read", "groups:read", "im:read", "mpim:read",
            "users:read", "users:read.email", "team:read",
        ],
        "upload.file": ["files:write"],
    },
}

_FILE_BASICS = ["file.upload", "file.download"]

APP_FEATURES: Dict[str, Dict[str, List[str]]] = {
    "dashboard": {
        "google": [
            "file.upload", "file.download", "folder.browse", "file.share",
            "calendar.read", "calendar.write", "calendar.events", "meet.create", "meet.read",
        ],
        "box": ["file.upload", "file.download", "folder.browse", "file.share"],
        "dropbox": ["file.upload", "file.download", "folder.browse", "file.share"],
        "slack": ["send.message", "post.channel"],
    },
    "clipshow": {
        "google": ["file.upload", "file.download", "folder.browse", "docs.create"],
        "box": ["file.upload", "file.download", "folder.browse"],
        "dropbox": ["file.upload", "file.download", "folder.browse"],
        "slack": ["send.message", "post.channel"],
    },
    "cns": {
        "google": ["file.upload", "file.download", "folder.browse"],
        "box": _FILE_BASICS,
        "dropbox": _FILE_BASICS,
    },
    "cuesheet": {
        "google": ["file.upload", "file.download", "sheets.access"],
        "box": _FILE_BASICS,
        "dropbox": _FILE_BASICS,
    },
}

# 파일 기본 기능만 쓰는 앱
for _app in ("callsheet", "timecard", "iwm", "addressbook", "mobile", "bridge"):
    APP_FEATURES[_app] = {"google": _FILE_BASICS, "box": _FILE_BASICS, "dropbox": _FILE_BASICS}

# 프로바이더 계정 식별에 항상 필요한 기본 스코프
BASE_SCOPES: Dict[str, List[str]] = {
    "google": [f"{GOOGLE_DRIVE}userinfo.email", f"{GOOGLE_DRIVE}userinfo.profile"],
    "dropbox": ["account_info.read"],
}


def _ordered_unique(scopes: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(scopes))


class FeatureAccessService:
    """기능 ↔ 스코프 매핑과 연결 스코프 검증"""

    def __init__(self, repository: Optional[ConnectionRepository] = None):
        self._repository = repository

    @property
    def repository(self) -> ConnectionRepository:
        if self._repository is None:
            self._repository = ConnectionRepository()
        return self._repository

    @staticmethod
    def get_required_scopes(provider: str, features: Iterable[str]) -> List[str]:
        """기능 목록에 필요한 스코프 (중복 제거, 순서 유지)"""
        scope_map = FEATURE_SCOPE_MAP.get(provider, {})
        return _ordered_unique(
            scope for feature in features for scope in scope_map.get(feature, [])
        )

    @staticmethod
    def get_app_features(app_name: str, provider: str) -> List[str]:
        """앱이 프로바이더에서 사용하는 기능 목록"""
        return list(APP_FEATURES.get(app_name, {}).get(provider, []))

    @classmethod
    def get_all_required_scopes_for_provider(cls, provider: str) -> List[str]:
        """
        모든 앱이 필요로 하는 스코프의 합집합 (OAuth 요청 시 사용)

        Args:
            provider: 프로바이더 이름

        Returns:
            스코프 목록
        """
        scopes = [
            scope
            for app_features in APP_FEATURES.values()
            for scope in cls.get_required_scopes(provider, app_features.get(provider, []))
        ]
        scopes.extend(BASE_SCOPES.get(provider, []))
        return _ordered_unique(scopes)

    def verify_scopes(
        self, organization_id: str, provider: str, features: Iterable[str]
    ) -> Dict[str, object]:
        """
        저장된 연결이 기능에 필요한 스코프를 모두 가지고 있는지 확인

        Returns:
            {"has_access": bool, "missing_scopes": [...]}
        """
        connection = self.repository.get_connection(organization_id, provider)
        if connection is None:
            return {"has_access": False, "missing_scopes": []}

        granted = set(connection.scopes)
        missing = [
            scope for scope in self.get_required_scopes(provider, features)
            if scope not in granted
        ]

        if missing:
            logger.info(
                f"스코프 부족: org={organization_id}, provider={provider}, missing={missing}"
            )
        return {"has_access": not missing, "missing_scopes": missing}
