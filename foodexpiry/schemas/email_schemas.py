from typing import Optional
from pydantic import Field

from foodexpiry.schemas.camel_base_model import CamelCaseBaseModel as BaseModel


class RenderedEmail(BaseModel):
    subject: str = Field(..., description="Email subject line")
    text: str = Field(..., description="Plain-text body")
    html: str = Field(..., description="HTML body")


class DeliveryOutcome(BaseModel):
    success: bool = Field(..., description="Whether the message counts as delivered")
    used_fallback: bool = Field(
        False, description="Whether the fallback sink stood in for the transport"
    )
    error: Optional[str] = Field(None, description="Transport failure, if any")
