from typing import Optional
from uuid import UUID
from pydantic import BaseModel, EmailStr, Field


# Shared properties
class UserBase(BaseModel):
    email: Optional[EmailStr] = None
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


# Properties to receive via API on creation
class UserCreate(UserBase):
    email: EmailStr
    username: str = Field(min_length=2)
    password: str = Field(min_length=6)


# Properties a user may change on their own profile
class UserUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class UserInDBBase(UserBase):
    id: Optional[UUID] = None
    status: Optional[str] = None
    is_superuser: Optional[bool] = False

    class Config:
        from_attributes = True


# Additional properties to return via API
class User(UserInDBBase):
    pass
