#!/usr/bin/env python3
"""Unit Tests for JWT handling and the account use cases"""

import unittest
import sys
from pathlib import Path
from unittest.mock import Mock
from datetime import timedelta

import jwt

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from smart_parking.application.account_service import (
    AccountService, RECOVERY_MAIL_SUBJECT, recover_password_mail_content
)
from smart_parking.application.results import ResultKind, ResultCode
from smart_parking.domain.capabilities import TokenIssuer, TokenVerifier, UserDirectory, MailSender
from smart_parking.domain.errors import MailDeliveryError, RepositoryUnavailableError
from smart_parking.domain.models import UserInfo, Principal, utc_now
from smart_parking.infrastructure.auth import JwtTokenService

SECRET = "unit-test-secret-of-sufficient-length"
EMAIL = "anna@example.com"


class TestJwtTokenService(unittest.TestCase):

    def setUp(self):
        self.tokens = JwtTokenService(SECRET, ttl_minutes=60)

    def test_implements_capabilities(self):
        self.assertIsInstance(self.tokens, TokenIssuer)
        self.assertIsInstance(self.tokens, TokenVerifier)

    def test_round_trip(self):
        principal = self.tokens.verify_token(self.tokens.issue_token(EMAIL))
        self.assertEqual(principal.email, EMAIL)
        self.assertGreater(principal.expires_at, utc_now())

    def test_expired_token(self):
        issued_long_ago = JwtTokenService(SECRET, ttl_minutes=60, clock=lambda: utc_now() - timedelta(hours=2))
        self.assertIsNone(self.tokens.verify_token(issued_long_ago.issue_token(EMAIL)))

    def test_wrong_secret(self):
        other = JwtTokenService("another-secret-of-sufficient-length")
        self.assertIsNone(self.tokens.verify_token(other.issue_token(EMAIL)))

    def test_wrong_issuer(self):
        other = JwtTokenService(SECRET, issuer="someone-else")
        self.assertIsNone(self.tokens.verify_token(other.issue_token(EMAIL)))

    def test_missing_or_empty_email_claim(self):
        exp = int((utc_now() + timedelta(hours=1)).timestamp())
        without_email = jwt.encode({"exp": exp, "iss": "parking-system"}, SECRET, algorithm="HS256")
        empty_email = jwt.encode({"exp": exp, "iss": "parking-system", "email": ""}, SECRET, algorithm="HS256")

        self.assertIsNone(self.tokens.verify_token(without_email))
        self.assertIsNone(self.tokens.verify_token(empty_email))

    def test_garbage_token(self):
        self.assertIsNone(self.tokens.verify_token("not-a-jwt"))
        self.assertIsNone(self.tokens.verify_token(""))

    def test_empty_secret_rejected(self):
        with self.assertRaises(ValueError):
            JwtTokenService("")


class TestAccountService(unittest.TestCase):

    def setUp(self):
        self.users = Mock(spec=UserDirectory)
        self.mail_sender = Mock(spec=MailSender)
        self.tokens = JwtTokenService(SECRET)
        self.service = AccountService(
            self.users, self.tokens, self.mail_sender, "https://parking.example.com/recover"
        )
        self.principal = Principal(EMAIL)

    def test_get_user_info(self):
        self.users.lookup_user.return_value = UserInfo(EMAIL, "Anna", "Rossi")
        result = self.service.get_user_info(EMAIL)
        self.assertTrue(result.success)
        self.assertEqual(result.value.surname, "Rossi")

    def test_get_unknown_user(self):
        self.users.lookup_user.return_value = None
        result = self.service.get_user_info(EMAIL)
        self.assertEqual(result.kind, ResultKind.NOT_FOUND)
        self.assertEqual(result.code, ResultCode.USER_NOT_FOUND)

    def test_user_store_unavailable(self):
        self.users.lookup_user.side_effect = RepositoryUnavailableError("down")
        self.assertEqual(self.service.get_user_info(EMAIL).kind, ResultKind.UNAVAILABLE)

    def test_recover_password_mails_a_valid_token(self):
        self.users.lookup_user.return_value = UserInfo(EMAIL, "Anna")
        result = self.service.recover_password(EMAIL)

        self.assertTrue(result.success)
        to, subject, body = self.mail_sender.send_mail.call_args[0]
        self.assertEqual(to, EMAIL)
        self.assertEqual(subject, RECOVERY_MAIL_SUBJECT)

        token = body.split("token=", 1)[1].split()[0]
        self.assertEqual(self.tokens.verify_token(token).email, EMAIL)

    def test_recover_password_unknown_user(self):
        self.users.lookup_user.return_value = None
        result = self.service.recover_password(EMAIL)
        self.assertEqual(result.code, ResultCode.USER_NOT_FOUND)
        self.mail_sender.send_mail.assert_not_called()

    def test_recover_password_mail_failure(self):
        self.users.lookup_user.return_value = UserInfo(EMAIL, "Anna")
        self.mail_sender.send_mail.side_effect = MailDeliveryError("relay refused")
        result = self.service.recover_password(EMAIL)
        self.assertEqual(result.kind, ResultKind.UNAVAILABLE)
        self.assertEqual(result.code, ResultCode.SERVICE_UNAVAILABLE)

    def test_change_password_with_old_password(self):
        self.users.check_password.return_value = True
        self.users.set_password.return_value = True

        self.assertTrue(self.service.change_password(self.principal, "new-secret", "old-secret").success)
        self.users.check_password.assert_called_once_with(EMAIL, "old-secret")
        self.users.set_password.assert_called_once_with(EMAIL, "new-secret")

    def test_change_password_wrong_old_password(self):
        self.users.check_password.return_value = False
        result = self.service.change_password(self.principal, "new-secret", "bad-secret")

        self.assertEqual(result.kind, ResultKind.FORBIDDEN)
        self.assertEqual(result.code, ResultCode.WRONG_PASSWORD)
        self.users.set_password.assert_not_called()

    def test_change_password_after_recovery(self):
        self.users.set_password.return_value = True
        self.assertTrue(self.service.change_password(self.principal, "new-secret").success)
        self.users.check_password.assert_not_called()

    def test_change_password_unknown_user(self):
        self.users.set_password.return_value = False
        self.assertEqual(
            self.service.change_password(self.principal, "new-secret").code, ResultCode.USER_NOT_FOUND
        )


class TestRecoveryMail(unittest.TestCase):

    def test_link_with_query_string(self):
        body = recover_password_mail_content("abc", "https://x.example/recover?lang=it")
        self.assertIn("https://x.example/recover?lang=it&token=abc", body)

    def test_link_without_query_string(self):
        body = recover_password_mail_content("abc", "https://x.example/recover")
        self.assertIn("https://x.example/recover?token=abc", body)


if __name__ == '__main__':
    unittest.main()
