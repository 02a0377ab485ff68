"""SQLAlchemy ORM models.

- login_token.py: LoginToken (one-time bot login links)
- web_session.py: WebSession (server-side browser sessions)
"""

from linklogin.models.base import Base
from linklogin.models.login_token import LoginToken
from linklogin.models.web_session import WebSession

__all__ = ["Base", "LoginToken", "WebSession"]
