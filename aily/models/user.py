from typing import Optional
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field


class UserBase(BaseModel):
    email: EmailStr
    name: str = Field(min_length=1)


class UserCreate(UserBase):
    pass


class User(UserBase):
    key: str = Field(alias="_key", serialization_alias="key")
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {
        "populate_by_name": True,
        "extra": "ignore"
    }


class UserRegistered(BaseModel):
    user: User
    aily_id: str
    message: str = "User registered successfully"
