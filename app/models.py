
from pydantic import BaseModel, Field
from typing import Any, Dict, Optional

class SubmitRequest(BaseModel):
    proof: str = Field(min_length=1)

class StatusResponse(BaseModel):
    version: str
    key: str
    enabled: bool
    deadline: Optional[str] = None

class ErrorResponse(BaseModel):
    reason: str
    message: str
    details: Optional[Dict[str, Any]] = None
