"""Tests for DeviceCredentialsBuilder and credentials type detection."""

import json

import pytest

from src.fleet.bulk_import.adapters.credentials_builder import (
    DeviceCredentialsBuilder,
    detect_credentials_type,
    generate_access_token,
    validate_lwm2m_security_mode,
)
from src.fleet.bulk_import.domain.entities import ColumnType, CredentialsType
from src.fleet.core.exceptions import CredentialValidationError


@pytest.fixture
def builder():
    return DeviceCredentialsBuilder()


class TestDetectCredentialsType:
    """Tests for the credentials priority order."""

    def test_lwm2m_wins_over_x509(self):
        fields = {
            ColumnType.LWM2M_CLIENT_ENDPOINT: "ep-1",
            ColumnType.X509: "MIIB",
            ColumnType.MQTT_USER_NAME: "user",
        }
        assert detect_credentials_type(fields) == CredentialsType.LWM2M_CREDENTIALS

    def test_x509_wins_over_mqtt(self):
        fields = {ColumnType.X509: "MIIB", ColumnType.MQTT_CLIENT_ID: "client"}
        assert detect_credentials_type(fields) == CredentialsType.X509_CERTIFICATE

    @pytest.mark.parametrize(
        "column",
        [ColumnType.MQTT_CLIENT_ID, ColumnType.MQTT_USER_NAME, ColumnType.MQTT_PASSWORD],
    )
    def test_any_mqtt_column_selects_mqtt(self, column):
        fields = {column: "x", ColumnType.ACCESS_TOKEN: "tok"}
        assert detect_credentials_type(fields) == CredentialsType.MQTT_BASIC

    def test_access_token_is_the_fallback(self):
        assert detect_credentials_type({ColumnType.NAME: "dev-1"}) == CredentialsType.ACCESS_TOKEN

    def test_lwm2m_requires_endpoint(self):
        fields = {ColumnType.LWM2M_CLIENT_IDENTITY: "id", ColumnType.LWM2M_CLIENT_KEY: "key"}
        assert detect_credentials_type(fields) == CredentialsType.ACCESS_TOKEN


class TestAccessToken:
    """Tests for ACCESS_TOKEN credentials."""

    def test_uses_token_column(self, builder):
        credentials = builder.build({ColumnType.ACCESS_TOKEN: "my-token"})

        assert credentials.credentials_type == CredentialsType.ACCESS_TOKEN
        assert credentials.credentials_id == "my-token"
        assert credentials.credentials_value is None

    def test_generates_random_token(self, builder):
        first = builder.build({ColumnType.NAME: "dev-1"}).credentials_id
        second = builder.build({ColumnType.NAME: "dev-1"}).credentials_id

        assert len(first) == 20
        assert first.isalnum()
        assert first != second

    def test_token_length_is_configurable(self):
        credentials = DeviceCredentialsBuilder(access_token_length=32).build({})
        assert len(credentials.credentials_id) == 32

    def test_generate_access_token_alphabet(self):
        token = generate_access_token(200)
        assert token.isascii() and token.isalnum()


class TestX509:
    """Tests for X509_CERTIFICATE credentials."""

    def test_keeps_raw_certificate(self, builder):
        cert = "-----BEGIN CERTIFICATE-----\nMIIB\n-----END CERTIFICATE-----"
        credentials = builder.build({ColumnType.X509: cert})

        assert credentials.credentials_type == CredentialsType.X509_CERTIFICATE
        assert credentials.credentials_value == cert


class TestBasicMqtt:
    """Tests for MQTT_BASIC credentials."""

    def test_full_triple(self, builder):
        credentials = builder.build(
            {
                ColumnType.MQTT_CLIENT_ID: "client",
                ColumnType.MQTT_USER_NAME: "user",
                ColumnType.MQTT_PASSWORD: "secret",
            }
        )

        assert credentials.credentials_type == CredentialsType.MQTT_BASIC
        assert json.loads(credentials.credentials_value) == {
            "clientId": "client",
            "userName": "user",
            "password": "secret",
        }

    def test_absent_fields_are_null(self, builder):
        credentials = builder.build({ColumnType.MQTT_USER_NAME: "user"})

        assert json.loads(credentials.credentials_value) == {
            "clientId": None,
            "userName": "user",
            "password": None,
        }


class TestLwm2m:
    """Tests for LWM2M_CREDENTIALS credentials."""

    def test_endpoint_only_uses_no_sec_defaults(self, builder):
        credentials = builder.build({ColumnType.LWM2M_CLIENT_ENDPOINT: "ep-1"})

        assert credentials.credentials_type == CredentialsType.LWM2M_CREDENTIALS
        assert json.loads(credentials.credentials_value) == {
            "client": {"endpoint": "ep-1", "securityConfigClientMode": "NO_SEC"},
            "bootstrap": {
                "bootstrapServer": {"securityMode": "NO_SEC"},
                "lwm2mServer": {"securityMode": "NO_SEC"},
            },
        }

    def test_psk_client_keeps_identity_and_key_only(self, builder):
        credentials = builder.build(
            {
                ColumnType.LWM2M_CLIENT_ENDPOINT: "ep-1",
                ColumnType.LWM2M_CLIENT_SECURITY_CONFIG_MODE: "psk",
                ColumnType.LWM2M_CLIENT_IDENTITY: "id-1",
                ColumnType.LWM2M_CLIENT_KEY: "abcd",
                ColumnType.LWM2M_CLIENT_CERT: "ignored",
            }
        )

        client = json.loads(credentials.credentials_value)["client"]
        assert client == {
            "endpoint": "ep-1",
            "securityConfigClientMode": "PSK",
            "identity": "id-1",
            "key": "abcd",
        }

    def test_x509_client_keeps_cert_only(self, builder):
        credentials = builder.build(
            {
                ColumnType.LWM2M_CLIENT_ENDPOINT: "ep-1",
                ColumnType.LWM2M_CLIENT_SECURITY_CONFIG_MODE: "X509",
                ColumnType.LWM2M_CLIENT_CERT: "MIIB",
                ColumnType.LWM2M_CLIENT_IDENTITY: "ignored",
            }
        )

        client = json.loads(credentials.credentials_value)["client"]
        assert client == {"endpoint": "ep-1", "securityConfigClientMode": "X509", "cert": "MIIB"}

    def test_bootstrap_servers(self, builder):
        credentials = builder.build(
            {
                ColumnType.LWM2M_CLIENT_ENDPOINT: "ep-1",
                ColumnType.LWM2M_BOOTSTRAP_SERVER_SECURITY_MODE: "rpk",
                ColumnType.LWM2M_BOOTSTRAP_SERVER_PUBLIC_KEY_OR_ID: "bs-pub",
                ColumnType.LWM2M_BOOTSTRAP_SERVER_SECRET_KEY: "bs-secret",
                ColumnType.LWM2M_SERVER_CLIENT_PUBLIC_KEY_OR_ID: "srv-pub",
            }
        )

        bootstrap = json.loads(credentials.credentials_value)["bootstrap"]
        assert bootstrap == {
            "bootstrapServer": {
                "securityMode": "RPK",
                "clientPublicKeyOrId": "bs-pub",
                "clientSecretKey": "bs-secret",
            },
            "lwm2mServer": {"securityMode": "NO_SEC", "clientPublicKeyOrId": "srv-pub"},
        }

    @pytest.mark.parametrize(
        "column",
        [
            ColumnType.LWM2M_CLIENT_SECURITY_CONFIG_MODE,
            ColumnType.LWM2M_BOOTSTRAP_SERVER_SECURITY_MODE,
            ColumnType.LWM2M_SERVER_SECURITY_MODE,
        ],
    )
    def test_unknown_security_mode(self, builder, column):
        fields = {ColumnType.LWM2M_CLIENT_ENDPOINT: "ep-1", column: "FOO"}

        with pytest.raises(CredentialValidationError) as exc_info:
            builder.build(fields)

        assert exc_info.value.value == "FOO"
        assert exc_info.value.message == (
            "Unknown LwM2M security mode: FOO, (the mode should be: NO_SEC, PSK, RPK, X509)!"
        )


class TestValidateSecurityMode:
    """Tests for validate_lwm2m_security_mode."""

    @pytest.mark.parametrize("mode", ["NO_SEC", "no_sec", " Psk ", "rpk", "x509"])
    def test_accepts_known_modes_case_insensitively(self, mode):
        assert validate_lwm2m_security_mode(mode) == mode.strip().upper()

    def test_rejects_unknown_mode(self):
        with pytest.raises(CredentialValidationError):
            validate_lwm2m_security_mode("NONE")
