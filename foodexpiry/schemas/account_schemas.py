from typing import Any, Dict
from pydantic import ConfigDict, Field

from foodexpiry.schemas.camel_base_model import CamelCaseBaseModel as BaseModel


class RegistrationData(BaseModel):
    """Sign-up fields held in the verification payload until the code is redeemed."""

    model_config = ConfigDict(extra="allow")

    username: str = Field(..., min_length=1, description="Requested username")
    email: str = Field(..., min_length=3, description="Account email address")

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class VerificationRequestResult(BaseModel):
    success: bool = Field(..., description="Whether a code was issued and sent")
    message: str = Field(..., description="Human-readable outcome")
    email: str = Field(..., description="Address the code was sent to")
