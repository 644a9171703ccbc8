"""Credentials formatter adapter.

This adapter implements ICredentialsFormatter. It canonicalises credentials
before they are persisted and derives ``credentials_id``, the value devices
are looked up by when they connect.
"""

import hashlib
import json
import logging
import re

from pydantic import ValidationError

from ..domain.entities import CredentialsType, DeviceCredentials, Lwm2mSecurityMode
from ..domain.ports import ICredentialsFormatter
from ...core.exceptions import CredentialValidationError
from .credentials_schemas import BasicMqttCredentials, Lwm2mDeviceCredentials

logger = logging.getLogger(__name__)

PEM_ARMOUR_PATTERN = re.compile(r"-----(BEGIN|END) CERTIFICATE-----")
WHITESPACE_PATTERN = re.compile(r"\s+")


def sha3_hash(*parts: str) -> str:
    """SHA3-256 hex digest of the parts joined by '|'."""
    return hashlib.sha3_256("|".join(parts).encode("utf-8")).hexdigest()


def trim_certificate(cert: str) -> str:
    """Strip PEM armour and all whitespace from a certificate."""
    return WHITESPACE_PATTERN.sub("", PEM_ARMOUR_PATTERN.sub("", cert))


class DeviceCredentialsFormatter(ICredentialsFormatter):
    """Normalises device credentials per credentials type."""

    def format(self, credentials: DeviceCredentials) -> DeviceCredentials:
        """Normalise credentials in place.

        Args:
            credentials: Credentials as built from an import row

        Returns:
            The same credentials instance with ``credentials_id`` set

        Raises:
            CredentialValidationError: If the credentials are inconsistent
        """
        credentials_type = credentials.credentials_type

        if credentials_type == CredentialsType.ACCESS_TOKEN:
            self._format_access_token(credentials)
        elif credentials_type == CredentialsType.X509_CERTIFICATE:
            self._format_certificate(credentials)
        elif credentials_type == CredentialsType.MQTT_BASIC:
            self._format_basic_mqtt(credentials)
        elif credentials_type == CredentialsType.LWM2M_CREDENTIALS:
            self._format_lwm2m(credentials)

        return credentials

    @staticmethod
    def _format_access_token(credentials: DeviceCredentials) -> None:
        token = (credentials.credentials_id or "").strip()
        if not token:
            raise CredentialValidationError("Device credentials id should be specified")
        credentials.credentials_id = token

    @staticmethod
    def _format_certificate(credentials: DeviceCredentials) -> None:
        cert = trim_certificate(credentials.credentials_value or "")
        if not cert:
            raise CredentialValidationError("X509 certificate should be specified")
        credentials.credentials_value = cert
        credentials.credentials_id = sha3_hash(cert)

    @staticmethod
    def _format_basic_mqtt(credentials: DeviceCredentials) -> None:
        try:
            mqtt = BasicMqttCredentials.model_validate_json(credentials.credentials_value or "")
        except ValidationError as e:
            raise CredentialValidationError(f"Invalid MQTT credentials format: {e}", cause=e)

        if not mqtt.client_id and not mqtt.user_name:
            raise CredentialValidationError("Both mqtt client id and user name are empty!")
        if mqtt.password and not mqtt.user_name:
            raise CredentialValidationError("Password is specified, but user name is empty!")

        if mqtt.client_id and mqtt.user_name:
            credentials.credentials_id = sha3_hash(mqtt.client_id, mqtt.user_name)
        else:
            credentials.credentials_id = sha3_hash(mqtt.client_id or mqtt.user_name)

    @staticmethod
    def _format_lwm2m(credentials: DeviceCredentials) -> None:
        try:
            raw = json.loads(credentials.credentials_value or "")
        except json.JSONDecodeError as e:
            raise CredentialValidationError(f"Invalid LwM2M credentials format: {e}", cause=e)

        if not isinstance(raw, dict) or "client" not in raw:
            raise CredentialValidationError("LwM2M client credentials should be specified")
        if "bootstrap" not in raw:
            raise CredentialValidationError("LwM2M bootstrap credentials should be specified")

        try:
            lwm2m = Lwm2mDeviceCredentials.model_validate(raw)
        except ValidationError as e:
            raise CredentialValidationError(f"Invalid LwM2M credentials: {e}", cause=e)

        client = lwm2m.client
        mode = Lwm2mSecurityMode(client.security_config_client_mode)
        if not client.endpoint:
            raise CredentialValidationError("LwM2M client endpoint should be specified")

        if mode == Lwm2mSecurityMode.PSK:
            if not client.identity:
                raise CredentialValidationError("LwM2M client PSK identity should be specified")
            if not client.key:
                raise CredentialValidationError("LwM2M client PSK key should be specified")
            credentials.credentials_id = client.identity
        else:
            if mode == Lwm2mSecurityMode.RPK and not client.key:
                raise CredentialValidationError("LwM2M client RPK key should be specified")
            credentials.credentials_id = client.endpoint

        logger.debug(f"Formatted LwM2M credentials for endpoint {client.endpoint}")
