"""내장 OAuth 프로바이더"""

from .box import BoxProvider
from .dropbox import DropboxProvider
from .google import GoogleProvider
from .slack import SlackProvider

__all__ = ["BoxProvider", "DropboxProvider", "GoogleProvider", "SlackProvider"]
