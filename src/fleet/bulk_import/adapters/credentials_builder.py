"""Credentials builder adapter for deriving device credentials from import rows.

This adapter implements ICredentialsBuilder. It decides the single
credentials type of a row from the columns present and encodes the
transport-specific payload:

- ACCESS_TOKEN: the token column, or a generated alphanumeric token
- MQTT_BASIC: JSON {clientId, userName, password}
- X509_CERTIFICATE: the certificate column as-is
- LWM2M_CREDENTIALS: JSON {client, bootstrap} with a mode-specific client
"""

import logging
import secrets
import string
from typing import Any

from ..domain.entities import (
    ColumnType,
    CredentialsType,
    DeviceCredentials,
    Lwm2mSecurityMode,
)
from ..domain.ports import ICredentialsBuilder
from ...core.exceptions import CredentialValidationError
from .credentials_schemas import (
    BasicMqttCredentials,
    Lwm2mBootstrapCredentials,
    Lwm2mDeviceCredentials,
    Lwm2mServerCredentials,
    lwm2m_client_credentials_adapter,
)

logger = logging.getLogger(__name__)

TOKEN_ALPHABET = string.ascii_letters + string.digits
DEFAULT_ACCESS_TOKEN_LENGTH = 20

# Evaluated top to bottom; the first entry with any of its columns present wins.
# The last entry has no columns and always matches.
CREDENTIALS_PRIORITY: tuple[tuple[CredentialsType, frozenset[ColumnType]], ...] = (
    (CredentialsType.LWM2M_CREDENTIALS, frozenset({ColumnType.LWM2M_CLIENT_ENDPOINT})),
    (CredentialsType.X509_CERTIFICATE, frozenset({ColumnType.X509})),
    (
        CredentialsType.MQTT_BASIC,
        frozenset(
            {
                ColumnType.MQTT_CLIENT_ID,
                ColumnType.MQTT_USER_NAME,
                ColumnType.MQTT_PASSWORD,
            }
        ),
    ),
    (CredentialsType.ACCESS_TOKEN, frozenset()),
)

LWM2M_SECURITY_MODE_COLUMNS = (
    ColumnType.LWM2M_CLIENT_SECURITY_CONFIG_MODE,
    ColumnType.LWM2M_BOOTSTRAP_SERVER_SECURITY_MODE,
    ColumnType.LWM2M_SERVER_SECURITY_MODE,
)

LWM2M_CLIENT_COLUMNS = (
    ColumnType.LWM2M_CLIENT_SECURITY_CONFIG_MODE,
    ColumnType.LWM2M_CLIENT_ENDPOINT,
    ColumnType.LWM2M_CLIENT_IDENTITY,
    ColumnType.LWM2M_CLIENT_KEY,
    ColumnType.LWM2M_CLIENT_CERT,
)

LWM2M_BOOTSTRAP_SERVER_COLUMNS = (
    ColumnType.LWM2M_BOOTSTRAP_SERVER_SECURITY_MODE,
    ColumnType.LWM2M_BOOTSTRAP_SERVER_PUBLIC_KEY_OR_ID,
    ColumnType.LWM2M_BOOTSTRAP_SERVER_SECRET_KEY,
)

LWM2M_SERVER_COLUMNS = (
    ColumnType.LWM2M_SERVER_SECURITY_MODE,
    ColumnType.LWM2M_SERVER_CLIENT_PUBLIC_KEY_OR_ID,
    ColumnType.LWM2M_SERVER_CLIENT_SECRET_KEY,
)


def detect_credentials_type(fields: dict[ColumnType, str]) -> CredentialsType:
    """Decide the credentials type of a row from the columns it contains."""
    present = fields.keys()
    for credentials_type, columns in CREDENTIALS_PRIORITY:
        if not columns or not columns.isdisjoint(present):
            return credentials_type
    return CredentialsType.ACCESS_TOKEN


def generate_access_token(length: int = DEFAULT_ACCESS_TOKEN_LENGTH) -> str:
    """Generate a random alphanumeric access token."""
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


def validate_lwm2m_security_mode(mode: str) -> str:
    """Return the canonical (upper-case) form of an LwM2M security mode.

    Raises:
        CredentialValidationError: If the mode is not a known one
    """
    try:
        return Lwm2mSecurityMode(mode.strip().upper()).value
    except ValueError:
        valid = ", ".join(m.value for m in Lwm2mSecurityMode)
        raise CredentialValidationError(
            f"Unknown LwM2M security mode: {mode}, (the mode should be: {valid})!",
            value=mode,
        )


class DeviceCredentialsBuilder(ICredentialsBuilder):
    """Builds DeviceCredentials from import row fields."""

    def __init__(self, access_token_length: int = DEFAULT_ACCESS_TOKEN_LENGTH):
        """Initialize the builder.

        Args:
            access_token_length: Length of generated access tokens
        """
        self.access_token_length = access_token_length

    def build(self, fields: dict[ColumnType, str]) -> DeviceCredentials:
        """Decide the credentials type of the row and build its payload.

        Args:
            fields: Column type to raw string value

        Returns:
            Unformatted DeviceCredentials

        Raises:
            CredentialValidationError: On an unknown LwM2M security mode
            pydantic.ValidationError: On a payload the schemas reject
        """
        credentials_type = detect_credentials_type(fields)
        credentials = DeviceCredentials(credentials_type=credentials_type)

        if credentials_type == CredentialsType.LWM2M_CREDENTIALS:
            credentials.credentials_value = self._build_lwm2m(fields)
        elif credentials_type == CredentialsType.X509_CERTIFICATE:
            credentials.credentials_value = fields.get(ColumnType.X509)
        elif credentials_type == CredentialsType.MQTT_BASIC:
            credentials.credentials_value = self._build_basic_mqtt(fields)
        else:
            credentials.credentials_id = self._build_access_token(fields)

        logger.debug(f"Built {credentials_type.value} credentials")
        return credentials

    def _build_access_token(self, fields: dict[ColumnType, str]) -> str:
        token = fields.get(ColumnType.ACCESS_TOKEN)
        if token is None:
            token = generate_access_token(self.access_token_length)
        return token

    @staticmethod
    def _build_basic_mqtt(fields: dict[ColumnType, str]) -> str:
        mqtt = BasicMqttCredentials(
            client_id=fields.get(ColumnType.MQTT_CLIENT_ID),
            user_name=fields.get(ColumnType.MQTT_USER_NAME),
            password=fields.get(ColumnType.MQTT_PASSWORD),
        )
        return mqtt.model_dump_json(by_alias=True)

    def _build_lwm2m(self, fields: dict[ColumnType, str]) -> str:
        for column in LWM2M_SECURITY_MODE_COLUMNS:
            mode = fields.get(column)
            if mode is not None:
                validate_lwm2m_security_mode(mode)

        client = lwm2m_client_credentials_adapter.validate_python(
            self._collect_values(fields, LWM2M_CLIENT_COLUMNS)
        )

        bootstrap = Lwm2mBootstrapCredentials(
            bootstrap_server=Lwm2mServerCredentials.model_validate(
                self._collect_values(fields, LWM2M_BOOTSTRAP_SERVER_COLUMNS)
            ),
            lwm2m_server=Lwm2mServerCredentials.model_validate(
                self._collect_values(fields, LWM2M_SERVER_COLUMNS)
            ),
        )

        payload = Lwm2mDeviceCredentials(client=client, bootstrap=bootstrap)
        return payload.model_dump_json(by_alias=True, exclude_none=True)

    @staticmethod
    def _collect_values(
        fields: dict[ColumnType, str],
        columns: tuple[ColumnType, ...],
    ) -> dict[str, Any]:
        """Gather row values (or column defaults) under their payload keys."""
        values: dict[str, Any] = {}
        for column in columns:
            value = fields.get(column, column.default_value)
            if value is None or column.key is None:
                continue
            if column in LWM2M_SECURITY_MODE_COLUMNS:
                value = value.strip().upper()
            values[column.key] = value
        return values
