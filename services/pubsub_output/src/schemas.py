from pydantic import BaseModel
from typing import List, Optional

class PubsubMessage(BaseModel):
    data: str  # base64url

class PublishRequest(BaseModel):
    messages: List[PubsubMessage]

class PublishResponse(BaseModel):
    messageIds: List[str] = []

class ApiError(BaseModel):
    code: Optional[int] = None
    message: Optional[str] = None
    status: Optional[str] = None

class ErrorEnvelope(BaseModel):
    error: ApiError
