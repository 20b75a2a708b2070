"""Pydantic models for QR signing"""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SigningRequest(CamelModel):
    # Optional so that a missing field is reported as INVALID_REQUEST by the signer
    user_id: Optional[str] = None
    activity_id: Optional[str] = None


class SignedPayload(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    user_id: str
    activity_id: str
    timestamp: str
    signature: str


class SignResponse(CamelModel):
    payload: SignedPayload
    qr_image: Optional[str] = None
