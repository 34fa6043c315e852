from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PingResponse(BaseModel):
    message: str
    server_time: datetime


class VerifyIPResponse(BaseModel):
    allowed: bool
    reason: str
    clientIP: Optional[str] = None
    ipType: Optional[str] = None
    allDetectedIPs: List[str] = Field(default_factory=list)
    matchedIP: Optional[str] = None
    message: str


class AllowedIPResponse(BaseModel):
    id: int
    ip: str
    type: str
    description: Optional[str] = None
    added_by: str
    active: bool
    added_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AllowedIPListResponse(BaseModel):
    items: List[AllowedIPResponse]
    total: int


class AllowedIPCreateRequest(BaseModel):
    ip: str = Field(..., max_length=64)
    description: Optional[str] = Field(None, max_length=500)


class AllowedIPUpdateRequest(BaseModel):
    description: Optional[str] = Field(None, max_length=500)
    active: Optional[bool] = None


class IPFormatRequest(BaseModel):
    ip: str = Field(..., max_length=64)


class IPFormatResponse(BaseModel):
    valid: bool
    type: Optional[str] = None
    error: Optional[str] = None


class PublicAccessResponse(BaseModel):
    enabled: bool
    enabled_by: Optional[str] = None
    enabled_at: Optional[datetime] = None
    reason: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class PublicAccessUpdateRequest(BaseModel):
    enabled: bool
    reason: Optional[str] = Field(None, max_length=500)


class PhoneValidationRequest(BaseModel):
    phone: str = Field(..., max_length=64)


class PhoneValidationResponse(BaseModel):
    is_valid: bool
    formatted_number: Optional[str] = None
    display_number: Optional[str] = None
    country: Optional[str] = None
    error: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
