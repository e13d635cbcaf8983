from typing import Optional

from pydantic import BaseModel


class TokenPayload(BaseModel):
    sub: Optional[str] = None
    role: Optional[str] = None


class Actor(BaseModel):
    id: str
    role: str
