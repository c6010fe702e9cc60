"""OAuth 유틸리티"""

from .oauth_url_parser import build_error_redirect, build_success_redirect
from .oauth_validator import OAuthValidator

__all__ = [
    "OAuthValidator",
    "build_success_redirect",
    "build_error_redirect",
]
