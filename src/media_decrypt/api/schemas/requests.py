"""
Pydantic request schemas for API endpoints.

Field names follow the camelCase convention of messaging webhooks;
snake_case names are accepted too.
"""

from pydantic import BaseModel, ConfigDict, Field

from media_decrypt.service import DecodeRequest


class DecodeRequestBody(BaseModel):
    """Body of POST /decode."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    url: str | None = Field(None, description="URL of the encrypted media")
    media_key: str | None = Field(
        None,
        alias="mediaKey",
        description="Base64 media key",
    )
    message_type: str | None = Field(
        None,
        alias="messageType",
        description="Message-type hint",
        examples=["audioMessage"],
    )
    type_tag: str | None = Field(
        None,
        alias="whatsappTypeMessageToDecode",
        description="Strict type tag or HKDF info string",
        examples=["WhatsApp Audio Keys"],
    )
    mimetype: str | None = Field(
        None,
        description="MIME hint",
        examples=["audio/ogg; codecs=opus"],
    )

    def to_decode_request(self) -> DecodeRequest:
        """Normalize into the service's request type."""
        return DecodeRequest(
            url=(self.url or "").strip(),
            media_key=(self.media_key or "").strip(),
            type_hint=self.type_tag or self.message_type,
            mime_type=self.mimetype,
        )
