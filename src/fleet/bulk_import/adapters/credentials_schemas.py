"""Pydantic schemas for structured credentials payloads.

The LwM2M client credentials are a discriminated union on
``securityConfigClientMode``: decoding a raw dictionary through it keeps
only the fields the detected mode defines, so a PSK client never carries
a certificate and a NO_SEC client carries nothing but its endpoint.
"""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class BasicMqttCredentials(BaseModel):
    """MQTT basic authentication triple."""

    model_config = ConfigDict(populate_by_name=True)

    client_id: Optional[str] = Field(default=None, alias="clientId")
    user_name: Optional[str] = Field(default=None, alias="userName")
    password: Optional[str] = None


class _Lwm2mClientCredentials(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    endpoint: str


class NoSecClientCredentials(_Lwm2mClientCredentials):
    security_config_client_mode: Literal["NO_SEC"] = Field(alias="securityConfigClientMode")


class PskClientCredentials(_Lwm2mClientCredentials):
    security_config_client_mode: Literal["PSK"] = Field(alias="securityConfigClientMode")
    identity: Optional[str] = None
    key: Optional[str] = None


class RpkClientCredentials(_Lwm2mClientCredentials):
    security_config_client_mode: Literal["RPK"] = Field(alias="securityConfigClientMode")
    key: Optional[str] = None


class X509ClientCredentials(_Lwm2mClientCredentials):
    security_config_client_mode: Literal["X509"] = Field(alias="securityConfigClientMode")
    cert: Optional[str] = None


Lwm2mClientCredentials = Annotated[
    Union[
        NoSecClientCredentials,
        PskClientCredentials,
        RpkClientCredentials,
        X509ClientCredentials,
    ],
    Field(discriminator="security_config_client_mode"),
]

lwm2m_client_credentials_adapter: TypeAdapter = TypeAdapter(Lwm2mClientCredentials)


class Lwm2mServerCredentials(BaseModel):
    """Security settings for one server entry of the bootstrap section."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    security_mode: str = Field(alias="securityMode")
    client_public_key_or_id: Optional[str] = Field(default=None, alias="clientPublicKeyOrId")
    client_secret_key: Optional[str] = Field(default=None, alias="clientSecretKey")


class Lwm2mBootstrapCredentials(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    bootstrap_server: Lwm2mServerCredentials = Field(alias="bootstrapServer")
    lwm2m_server: Lwm2mServerCredentials = Field(alias="lwm2mServer")


class Lwm2mDeviceCredentials(BaseModel):
    """Full LwM2M credentials payload as stored in ``credentials_value``."""

    model_config = ConfigDict(populate_by_name=True)

    client: Lwm2mClientCredentials
    bootstrap: Lwm2mBootstrapCredentials
