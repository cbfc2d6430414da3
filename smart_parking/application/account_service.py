# File: smart_parking/application/account_service.py
"""
Account Application Service

User-facing operations that sit next to the occupancy core:
1. Profile lookup for the authenticated user
2. Password recovery (token + mail with a recovery link)
3. Password change, either with the old password or after recovery

All collaborators are capability interfaces, so this service runs the
same against MongoDB/SMTP/JWT adapters and against test doubles.
"""

import logging
from typing import Optional

from ..domain.capabilities import TokenIssuer, UserDirectory, MailSender
from ..domain.errors import MailDeliveryError, RepositoryUnavailableError
from ..domain.models import UserInfo, Principal
from .results import QueryResult, ResultKind, ResultCode

RECOVERY_MAIL_SUBJECT = "Password recovery mail"


def recover_password_mail_content(token: str, recovery_url: str) -> str:
    """Plain text body of the recovery mail"""
    separator = "&" if "?" in recovery_url else "?"
    link = f"{recovery_url}{separator}token={token}"
    return (
        "Hello,\n\n"
        "we received a request to reset the password of your parking account.\n"
        f"Open the following link to choose a new password:\n\n{link}\n\n"
        "If you did not ask for a password reset you can ignore this message.\n"
    )


class AccountService:
    """
    Account use cases

    Args:
        users: Profile and password store
        token_issuer: Issues recovery tokens
        mail_sender: Delivers the recovery mail
        recovery_url: Base URL of the client page that consumes the token
    """

    def __init__(
        self,
        users: UserDirectory,
        token_issuer: TokenIssuer,
        mail_sender: MailSender,
        recovery_url: str
    ):
        self.users = users
        self.token_issuer = token_issuer
        self.mail_sender = mail_sender
        self.recovery_url = recovery_url
        self.logger = logging.getLogger(self.__class__.__name__)

    def get_user_info(self, email: str) -> QueryResult[UserInfo]:
        try:
            user = self.users.lookup_user(email)
        except RepositoryUnavailableError as e:
            self.logger.error(f"User store unavailable looking up {email}: {e}")
            return QueryResult.failure(
                ResultKind.UNAVAILABLE, ResultCode.SERVICE_UNAVAILABLE, "User store is unavailable"
            )

        if user is None:
            return QueryResult.failure(ResultKind.NOT_FOUND, ResultCode.USER_NOT_FOUND, "User not found")
        return QueryResult.ok(user)

    def recover_password(self, email: str) -> QueryResult[None]:
        """Mail a recovery link to an existing user"""
        lookup = self.get_user_info(email)
        if not lookup.success:
            return lookup

        token = self.token_issuer.issue_token(email)
        try:
            self.mail_sender.send_mail(
                email,
                RECOVERY_MAIL_SUBJECT,
                recover_password_mail_content(token, self.recovery_url)
            )
        except MailDeliveryError as e:
            self.logger.error(f"Could not send recovery mail to {email}: {e}")
            return QueryResult.failure(
                ResultKind.UNAVAILABLE, ResultCode.SERVICE_UNAVAILABLE, "Mail delivery failed"
            )

        self.logger.info(f"Password recovery mail sent to {email}")
        return QueryResult.ok(None)

    def change_password(
        self,
        principal: Principal,
        new_password: str,
        old_password: Optional[str] = None
    ) -> QueryResult[None]:
        """
        Change the password of the authenticated user.

        When old_password is given it must match the stored one. Without
        it the verified token alone authorizes the change, which is the
        recovery flow.
        """
        email = principal.email
        try:
            if old_password is not None and not self.users.check_password(email, old_password):
                self.logger.info(f"Wrong password supplied for {email}")
                return QueryResult.failure(ResultKind.FORBIDDEN, ResultCode.WRONG_PASSWORD, "Wrong password")

            if not self.users.set_password(email, new_password):
                return QueryResult.failure(ResultKind.NOT_FOUND, ResultCode.USER_NOT_FOUND, "User not found")
        except RepositoryUnavailableError as e:
            self.logger.error(f"User store unavailable changing password of {email}: {e}")
            return QueryResult.failure(
                ResultKind.UNAVAILABLE, ResultCode.SERVICE_UNAVAILABLE, "User store is unavailable"
            )

        self.logger.info(f"Password changed for {email}")
        return QueryResult.ok(None)
