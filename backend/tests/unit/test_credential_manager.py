"""Tests for services.credential_manager."""

from unittest.mock import patch

from services.credential_manager import (
    CREDENTIAL_KEYS,
    SERVICE_NAME,
    delete_credential,
    get_credential,
    set_credential,
)


class TestGetCredential:
    def test_returns_value(self):
        with patch("services.credential_manager.keyring") as mock_keyring:
            mock_keyring.get_password.return_value = "secret123"
            result = get_credential("YODLEE_CLIENT_ID")
        assert result == "secret123"
        mock_keyring.get_password.assert_called_once_with(SERVICE_NAME, "YODLEE_CLIENT_ID")

    def test_returns_none_when_not_found(self):
        with patch("services.credential_manager.keyring") as mock_keyring:
            mock_keyring.get_password.return_value = None
            assert get_credential("YODLEE_CLIENT_ID") is None

    def test_returns_none_on_keyring_exception(self):
        with patch("services.credential_manager.keyring") as mock_keyring:
            mock_keyring.get_password.side_effect = Exception("no backend")
            assert get_credential("YODLEE_SECRET") is None


class TestSetCredential:
    def test_stores_value(self):
        with patch("services.credential_manager.keyring") as mock_keyring:
            result = set_credential("YODLEE_SECRET", "secret123")
        assert result is True
        mock_keyring.set_password.assert_called_once_with(
            SERVICE_NAME, "YODLEE_SECRET", "secret123"
        )

    def test_rejects_non_credential_key(self):
        with patch("services.credential_manager.keyring") as mock_keyring:
            assert set_credential("DATABASE_URL", "sqlite://") is False
        mock_keyring.set_password.assert_not_called()

    def test_rejects_empty_value(self):
        with patch("services.credential_manager.keyring") as mock_keyring:
            assert set_credential("YODLEE_SECRET", "") is False
            assert set_credential("YODLEE_SECRET", "   ") is False
        mock_keyring.set_password.assert_not_called()

    def test_returns_false_on_keyring_exception(self):
        with patch("services.credential_manager.keyring") as mock_keyring:
            mock_keyring.set_password.side_effect = Exception("locked")
            assert set_credential("YODLEE_SECRET", "secret123") is False


class TestDeleteCredential:
    def test_deletes_value(self):
        with patch("services.credential_manager.keyring") as mock_keyring:
            assert delete_credential("YODLEE_CLIENT_ID") is True
        mock_keyring.delete_password.assert_called_once_with(SERVICE_NAME, "YODLEE_CLIENT_ID")

    def test_rejects_non_credential_key(self):
        with patch("services.credential_manager.keyring") as mock_keyring:
            assert delete_credential("LOG_LEVEL") is False
        mock_keyring.delete_password.assert_not_called()


def test_credential_keys_cover_yodlee_secrets():
    assert {"YODLEE_CLIENT_ID", "YODLEE_SECRET", "YODLEE_ADMIN_LOGIN_NAME"} <= CREDENTIAL_KEYS
