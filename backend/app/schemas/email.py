"""Email request/response schemas"""
from pydantic import BaseModel, Field
from typing import Optional


class SingleEmail(BaseModel):
    """A validated single email, after defaults are applied."""
    to: str = Field(..., description="Recipient address")
    html: str = Field(..., description="HTML body")
    subject: str = Field(..., description="Subject line")
    from_email: str = Field(..., alias="from", description="Sender address")

    model_config = {"populate_by_name": True}


class EmailResponse(BaseModel):
    """Result of handing a single email to Mailgun."""
    status: str = Field("queued", description="Always 'queued' on success")
    id: Optional[str] = Field(None, description="Mailgun message id")
