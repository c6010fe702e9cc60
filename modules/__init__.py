"""
CloudLink 모듈 패키지
"""

from . import oauth

__all__ = ["oauth"]
