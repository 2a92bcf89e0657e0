import unittest
from unittest.mock import patch

from planning.services import auth_service
from planning.services.auth_service import _encode_jwt, issue_session_token, validate_session_token


class SessionTokenTests(unittest.TestCase):
    def test_round_trip_claims(self):
        token = issue_session_token(user_id=5, role='Trainer', tenant_id=3, trainer_id=9)
        self.assertEqual(
            validate_session_token(token),
            {'user_id': 5, 'role': 'trainer', 'tenant_id': 3, 'trainer_id': 9},
        )

    def test_unknown_role_cannot_be_issued(self):
        with self.assertRaises(ValueError):
            issue_session_token(user_id=5, role='superuser', tenant_id=3)

    def test_missing_claims_are_rejected(self):
        self.assertIsNone(validate_session_token(None))
        self.assertIsNone(validate_session_token(''))
        self.assertIsNone(validate_session_token(_encode_jwt({'sub': 5, 'role': 'admin'})))
        self.assertIsNone(validate_session_token(_encode_jwt({'role': 'admin', 'tenant_id': 3})))
        self.assertIsNone(validate_session_token(_encode_jwt(['not', 'a', 'dict'])))

    def test_signature_depends_on_secret(self):
        token = issue_session_token(user_id=5, role='admin', tenant_id=3)
        with patch.object(auth_service.settings, 'auth_secret', 'rotated-secret'):
            self.assertIsNone(validate_session_token(token))
        self.assertIsNotNone(validate_session_token(token))


if __name__ == '__main__':
    unittest.main()
