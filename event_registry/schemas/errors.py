from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class ErrorOut(BaseModel):
    timestamp: datetime
    detail: str
    error_code: str
    validation_errors: Optional[dict[str, str]] = None
