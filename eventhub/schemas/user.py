"""Pydantic schemas for Users and auth."""
from __future__ import annotations
from pydantic import BaseModel, Field, field_validator


class UserRegister(BaseModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class UserLogin(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class UserSummary(BaseModel):
    """Display identity of a user, as embedded in events and broadcasts."""

    id: str = Field(validation_alias="user_id")
    name: str
    email: str

    model_config = {"from_attributes": True, "populate_by_name": True}


class TokenOut(BaseModel):
    token: str
    user: UserSummary
