from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserCreate(BaseModel):
    pubkey: str = Field(..., min_length=1, max_length=255, description="Identity the user signs commands with.")
    email: EmailStr | None = Field(None, description="A valid email address.")
    sig: str | None = None


class UserUpdate(BaseModel):
    email: EmailStr | None = Field(None, description="A valid email address.")


class UserResponse(BaseModel):
    id: int
    pubkey: str
    email: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
