from pydantic import BaseModel
from typing import Optional, Any

class APIError(BaseModel):
    code: str
    message: str
    stage: Optional[str] = None
    details: Optional[Any] = None
