"""
OAuth 토큰 암호화 모듈

현재 형식: base64(salt[64] || iv[16] || tag[16] || ciphertext)
  - 호출마다 새 salt 로 PBKDF2-HMAC-SHA256(100,000회) 32바이트 키를 유도
  - AES-256-GCM, salt 를 AAD 로 사용
레거시 형식: hex(iv):hex(tag):hex(ciphertext), 키는 SHA-256(secret)
  - 읽기 전용 (새로 쓰는 값은 항상 현재 형식)
"""

import base64
import binascii
import hashlib
import secrets
from functools import lru_cache
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .config import MIN_ENCRYPTION_KEY_LENGTH, get_config
from .exceptions import ConfigurationError, DecryptionError
from .logger import get_logger

logger = get_logger(__name__)

SALT_LENGTH = 64
IV_LENGTH = 16
TAG_LENGTH = 16
KEY_LENGTH = 32
PBKDF2_ITERATIONS = 100_000
MIN_BLOB_LENGTH = SALT_LENGTH + IV_LENGTH + TAG_LENGTH


def generate_state_token() -> str:
    """CSRF 방지용 OAuth state 값 (256비트 난수, 64자리 hex)"""
    return secrets.token_hex(32)


class TokenCipher:
    """토큰 암호화/복호화 서비스"""

    def __init__(self, secret: Optional[str] = None):
        """
        Args:
            secret: 암호화 비밀값 (None이면 첫 사용 시 설정에서 읽음)
        """
        if secret is not None and len(secret) < MIN_ENCRYPTION_KEY_LENGTH:
            raise ConfigurationError(
                f"암호화 비밀값은 최소 {MIN_ENCRYPTION_KEY_LENGTH}자 이상이어야 합니다",
                config_key="ENCRYPTION_KEY",
            )
        self._secret = secret

    @property
    def secret(self) -> str:
        if self._secret is None:
            self._secret = get_config().encryption_key
        return self._secret

    def _derive_key(self, salt: bytes) -> bytes:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=KEY_LENGTH,
            salt=salt,
            iterations=PBKDF2_ITERATIONS,
        )
        return kdf.derive(self.secret.encode("utf-8"))

    def encrypt(self, plaintext: str) -> str:
        """
        평문 토큰을 현재 형식으로 암호화

        Args:
            plaintext: 암호화할 문자열

        Returns:
            base64 인코딩된 암호문
        """
        salt = secrets.token_bytes(SALT_LENGTH)
        iv = secrets.token_bytes(IV_LENGTH)
        key = self._derive_key(salt)

        # AESGCM 은 ciphertext || tag 를 돌려줌
        sealed = AESGCM(key).encrypt(iv, plaintext.encode("utf-8"), salt)
        ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]

        return base64.b64encode(salt + iv + tag + ciphertext).decode("ascii")

    def decrypt(self, blob: str) -> str:
        """
        현재 형식 암호문 복호화

        Raises:
            DecryptionError: base64 오류, 길이 부족, 인증 태그 불일치
        """
        if not blob or not isinstance(blob, str):
            raise DecryptionError("암호문이 비어 있습니다")

        try:
            combined = base64.b64decode(blob, validate=True)
        except (binascii.Error, ValueError) as e:
            raise DecryptionError("암호문이 올바른 base64 형식이 아닙니다") from e

        if len(combined) < MIN_BLOB_LENGTH:
            raise DecryptionError(
                f"암호문 길이가 너무 짧습니다: 최소 {MIN_BLOB_LENGTH}바이트, 실제 {len(combined)}바이트",
                details={"length": len(combined)},
            )

        salt = combined[:SALT_LENGTH]
        iv = combined[SALT_LENGTH:SALT_LENGTH + IV_LENGTH]
        tag = combined[SALT_LENGTH + IV_LENGTH:MIN_BLOB_LENGTH]
        ciphertext = combined[MIN_BLOB_LENGTH:]

        key = self._derive_key(salt)
        try:
            plaintext = AESGCM(key).decrypt(iv, ciphertext + tag, salt)
        except InvalidTag as e:
            raise DecryptionError(
                "토큰 인증에 실패했습니다. 다른 키로 암호화되었거나 손상되었을 수 있습니다"
            ) from e

        return plaintext.decode("utf-8")

    def decrypt_legacy(self, blob: str) -> str:
        """
        레거시 iv:authTag:ciphertext 형식 복호화

        Raises:
            DecryptionError: 형식 오류 또는 인증 태그 불일치
        """
        parts = blob.split(":") if isinstance(blob, str) else []
        if len(parts) != 3 or not all(parts):
            raise DecryptionError(
                "레거시 토큰 형식이 아닙니다 (iv:authTag:ciphertext 필요)",
                details={"parts": len(parts)},
            )

        try:
            iv, tag, ciphertext = (bytes.fromhex(part) for part in parts)
        except ValueError as e:
            raise DecryptionError("레거시 토큰의 hex 인코딩이 올바르지 않습니다") from e

        if len(iv) != IV_LENGTH or len(tag) != TAG_LENGTH:
            raise DecryptionError(
                "레거시 토큰의 IV 또는 인증 태그 길이가 올바르지 않습니다",
                details={"iv_length": len(iv), "tag_length": len(tag)},
            )

        key = hashlib.sha256(self.secret.encode("utf-8")).digest()
        try:
            plaintext = AESGCM(key).decrypt(iv, ciphertext + tag, None)
        except InvalidTag as e:
            raise DecryptionError(
                "레거시 토큰 인증에 실패했습니다. 계정을 다시 연결해 주세요"
            ) from e

        return plaintext.decode("utf-8")

    @staticmethod
    def is_legacy_format(blob: Optional[str]) -> bool:
        """저장된 값이 레거시 형식인지 여부 (base64 에는 ':' 가 나오지 않음)"""
        return bool(blob) and ":" in blob

    def decrypt_stored(self, blob: str) -> str:
        """저장된 토큰을 형식에 맞춰 복호화"""
        if self.is_legacy_format(blob):
            logger.debug("레거시 형식 토큰 복호화")
            return self.decrypt_legacy(blob)
        return self.decrypt(blob)


@lru_cache(maxsize=1)
def get_token_cipher() -> TokenCipher:
    """
    TokenCipher 싱글톤 반환 (비밀값은 첫 암복호화 시점에 읽음)

    Returns:
        TokenCipher: 암호화 서비스 인스턴스
    """
    return TokenCipher()
