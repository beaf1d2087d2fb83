from pydantic import BaseModel
from typing import Optional
from datetime import datetime

class TokenData(BaseModel):
    user_id: Optional[int] = None

class UserResponse(BaseModel):
    user_id: int
    username: Optional[str] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    class Config:
        from_attributes = True
