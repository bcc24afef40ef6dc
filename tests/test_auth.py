"""Tests for credential checks and session tokens."""

import pytest

from ledger.auth import (
    Identity,
    SessionTokens,
    authenticate,
    hash_password,
    register_user,
    verify_password,
)
from ledger.errors import UserExists, ValidationError
from models import User


class TestPasswords:

    def test_hash_is_not_plaintext(self):
        hashed = hash_password('s3cret')
        assert hashed != 's3cret'
        assert verify_password('s3cret', hashed) is True

    def test_wrong_password_fails(self):
        assert verify_password('guess', hash_password('s3cret')) is False


class TestSessionTokens:

    def test_issue_and_validate(self):
        tokens = SessionTokens('key')
        assert tokens.validate(tokens.issue('alice')) == Identity('alice')

    def test_tampered_token_rejected(self):
        tokens = SessionTokens('key')
        assert tokens.validate(tokens.issue('alice') + 'x') is None

    def test_token_from_other_secret_rejected(self):
        token = SessionTokens('other-key').issue('alice')
        assert SessionTokens('key').validate(token) is None

    def test_expired_token_rejected(self):
        tokens = SessionTokens('key', max_age=-1)
        assert tokens.validate(tokens.issue('alice')) is None

    @pytest.mark.parametrize('token', [None, ''])
    def test_missing_token(self, token):
        assert SessionTokens('key').validate(token) is None


class TestAccounts:

    def test_register_stores_hash(self, app):
        user = register_user('  carol ', 'pw')
        assert user.username == 'carol'
        assert user.password_hash != 'pw'
        assert User.query.count() == 1

    def test_register_duplicate(self, app):
        register_user('carol', 'pw')
        with pytest.raises(UserExists):
            register_user('carol', 'other')

    def test_register_requires_credentials(self, app):
        with pytest.raises(ValidationError):
            register_user('', 'pw')
        with pytest.raises(ValidationError):
            register_user('carol', '')

    def test_authenticate(self, app):
        register_user('carol', 'pw')
        assert authenticate('carol', 'pw').username == 'carol'
        assert authenticate('carol', 'nope') is None
        assert authenticate('nobody', 'pw') is None
