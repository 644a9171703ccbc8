"""Tests for DeviceCredentialsFormatter."""

import hashlib
import json

import pytest

from src.fleet.bulk_import.adapters.credentials_formatter import (
    DeviceCredentialsFormatter,
    sha3_hash,
    trim_certificate,
)
from src.fleet.bulk_import.domain.entities import CredentialsType, DeviceCredentials
from src.fleet.core.exceptions import CredentialValidationError

PEM = """-----BEGIN CERTIFICATE-----
MIIBszCCAVmgAwIBAgIU
Zm9vYmFy
-----END CERTIFICATE-----
"""


@pytest.fixture
def formatter():
    return DeviceCredentialsFormatter()


def lwm2m(client: dict, bootstrap: dict | None = None) -> DeviceCredentials:
    payload = {"client": client}
    if bootstrap is not None:
        payload["bootstrap"] = bootstrap
    return DeviceCredentials(
        credentials_type=CredentialsType.LWM2M_CREDENTIALS,
        credentials_value=json.dumps(payload),
    )


NO_SEC_BOOTSTRAP = {
    "bootstrapServer": {"securityMode": "NO_SEC"},
    "lwm2mServer": {"securityMode": "NO_SEC"},
}


class TestHelpers:
    """Tests for hashing and certificate trimming."""

    def test_sha3_hash_joins_parts(self):
        expected = hashlib.sha3_256(b"client|user").hexdigest()
        assert sha3_hash("client", "user") == expected

    def test_trim_certificate(self):
        assert trim_certificate(PEM) == "MIIBszCCAVmgAwIBAgIUZm9vYmFy"


class TestAccessToken:
    """Tests for ACCESS_TOKEN formatting."""

    def test_strips_token(self, formatter):
        credentials = DeviceCredentials(CredentialsType.ACCESS_TOKEN, credentials_id="  tok  ")
        assert formatter.format(credentials).credentials_id == "tok"

    def test_requires_token(self, formatter):
        with pytest.raises(CredentialValidationError):
            formatter.format(DeviceCredentials(CredentialsType.ACCESS_TOKEN, credentials_id=" "))


class TestCertificate:
    """Tests for X509_CERTIFICATE formatting."""

    def test_trims_and_hashes(self, formatter):
        credentials = DeviceCredentials(CredentialsType.X509_CERTIFICATE, credentials_value=PEM)

        formatter.format(credentials)

        assert credentials.credentials_value == "MIIBszCCAVmgAwIBAgIUZm9vYmFy"
        assert credentials.credentials_id == sha3_hash("MIIBszCCAVmgAwIBAgIUZm9vYmFy")

    def test_empty_certificate(self, formatter):
        credentials = DeviceCredentials(
            CredentialsType.X509_CERTIFICATE,
            credentials_value="-----BEGIN CERTIFICATE-----\n-----END CERTIFICATE-----",
        )
        with pytest.raises(CredentialValidationError, match="X509 certificate"):
            formatter.format(credentials)


class TestBasicMqtt:
    """Tests for MQTT_BASIC formatting."""

    def mqtt(self, **values) -> DeviceCredentials:
        return DeviceCredentials(
            CredentialsType.MQTT_BASIC,
            credentials_value=json.dumps(
                {
                    "clientId": values.get("client_id"),
                    "userName": values.get("user_name"),
                    "password": values.get("password"),
                }
            ),
        )

    def test_client_id_and_user_name(self, formatter):
        credentials = formatter.format(self.mqtt(client_id="client", user_name="user"))
        assert credentials.credentials_id == sha3_hash("client", "user")

    def test_client_id_only(self, formatter):
        credentials = formatter.format(self.mqtt(client_id="client"))
        assert credentials.credentials_id == sha3_hash("client")

    def test_user_name_and_password(self, formatter):
        credentials = formatter.format(self.mqtt(user_name="user", password="secret"))
        assert credentials.credentials_id == sha3_hash("user")

    def test_both_empty(self, formatter):
        with pytest.raises(CredentialValidationError, match="Both mqtt client id and user name are empty"):
            formatter.format(self.mqtt(password="secret"))

    def test_password_without_user_name(self, formatter):
        with pytest.raises(CredentialValidationError, match="user name is empty"):
            formatter.format(self.mqtt(client_id="client", password="secret"))

    def test_value_unchanged(self, formatter):
        credentials = self.mqtt(client_id="client", user_name="user", password="secret")
        value = credentials.credentials_value

        formatter.format(credentials)

        assert credentials.credentials_value == value


class TestLwm2m:
    """Tests for LWM2M_CREDENTIALS formatting."""

    def test_no_sec_uses_endpoint(self, formatter):
        credentials = lwm2m(
            {"endpoint": "ep-1", "securityConfigClientMode": "NO_SEC"}, NO_SEC_BOOTSTRAP
        )
        assert formatter.format(credentials).credentials_id == "ep-1"

    def test_psk_uses_identity(self, formatter):
        credentials = lwm2m(
            {"endpoint": "ep-1", "securityConfigClientMode": "PSK", "identity": "id-1", "key": "ab"},
            NO_SEC_BOOTSTRAP,
        )
        assert formatter.format(credentials).credentials_id == "id-1"

    def test_psk_requires_identity(self, formatter):
        credentials = lwm2m(
            {"endpoint": "ep-1", "securityConfigClientMode": "PSK", "key": "ab"}, NO_SEC_BOOTSTRAP
        )
        with pytest.raises(CredentialValidationError, match="PSK identity"):
            formatter.format(credentials)

    def test_psk_requires_key(self, formatter):
        credentials = lwm2m(
            {"endpoint": "ep-1", "securityConfigClientMode": "PSK", "identity": "id-1"},
            NO_SEC_BOOTSTRAP,
        )
        with pytest.raises(CredentialValidationError, match="PSK key"):
            formatter.format(credentials)

    def test_rpk_requires_key(self, formatter):
        credentials = lwm2m(
            {"endpoint": "ep-1", "securityConfigClientMode": "RPK"}, NO_SEC_BOOTSTRAP
        )
        with pytest.raises(CredentialValidationError, match="RPK key"):
            formatter.format(credentials)

    def test_requires_bootstrap(self, formatter):
        credentials = lwm2m({"endpoint": "ep-1", "securityConfigClientMode": "NO_SEC"})
        with pytest.raises(CredentialValidationError, match="bootstrap"):
            formatter.format(credentials)

    def test_invalid_json(self, formatter):
        credentials = DeviceCredentials(
            CredentialsType.LWM2M_CREDENTIALS, credentials_value="{not json"
        )
        with pytest.raises(CredentialValidationError, match="Invalid LwM2M credentials format"):
            formatter.format(credentials)

    def test_unknown_client_mode(self, formatter):
        credentials = lwm2m(
            {"endpoint": "ep-1", "securityConfigClientMode": "FOO"}, NO_SEC_BOOTSTRAP
        )
        with pytest.raises(CredentialValidationError):
            formatter.format(credentials)
