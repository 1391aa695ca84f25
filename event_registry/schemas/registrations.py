from datetime import datetime

from pydantic import BaseModel


class RegistrationOut(BaseModel):
    id: int
    user_id: int
    username: str
    event_id: int
    event_name: str
    registration_time: datetime
    status: str

    class Config:
        from_attributes = True
