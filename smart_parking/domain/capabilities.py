# File: smart_parking/domain/capabilities.py
"""
Capability interfaces for collaborators outside the occupancy core

Authentication, user profiles, mail delivery and event distribution are
injected through these protocols so the core can be exercised without
any concrete framework or network service.
"""

from typing import Optional, Protocol, runtime_checkable

from .events import DomainEvent
from .models import UserInfo, Principal


@runtime_checkable
class TokenIssuer(Protocol):
    """Issues signed tokens for a user email"""

    def issue_token(self, email: str) -> str:
        ...


@runtime_checkable
class TokenVerifier(Protocol):
    """Verifies a token; returns None when it is invalid or expired"""

    def verify_token(self, token: str) -> Optional[Principal]:
        ...


@runtime_checkable
class UserDirectory(Protocol):
    """Read access to user profiles plus password maintenance"""

    def lookup_user(self, email: str) -> Optional[UserInfo]:
        ...

    def check_password(self, email: str, password: str) -> bool:
        ...

    def set_password(self, email: str, new_password: str) -> bool:
        ...


@runtime_checkable
class MailSender(Protocol):

    def send_mail(self, to: str, subject: str, body: str) -> None:
        ...


@runtime_checkable
class EventPublisher(Protocol):
    """Publishes domain events; returns False when delivery failed"""

    def publish(self, event: DomainEvent) -> bool:
        ...
