from __future__ import annotations

from fastapi import APIRouter

from genoi.core.phone import validate_and_format_phone
from genoi.schemas import PhoneValidationRequest, PhoneValidationResponse

router = APIRouter(prefix="/phone", tags=["phone"])


@router.post("/validate", response_model=PhoneValidationResponse)
def validate_phone(payload: PhoneValidationRequest):
    result = validate_and_format_phone(payload.phone)
    return PhoneValidationResponse.model_validate(result)
