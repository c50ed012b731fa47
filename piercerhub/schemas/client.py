# piercerhub/schemas/client.py
from datetime import datetime

from pydantic import BaseModel

class ClientVisit(BaseModel):
    id: int
    visits: int
    last_visit: datetime | None

    class Config:
        from_attributes = True
