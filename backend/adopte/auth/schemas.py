"""Authentication request schemas."""

from typing import Literal

from pydantic import BaseModel, EmailStr, Field, model_validator

from .models import Role


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=255)


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=255)
    role: Literal["STUDENT", "COMPANY"]
    first_name: str | None = Field(None, alias="firstName", max_length=100)
    last_name: str | None = Field(None, alias="lastName", max_length=100)
    name: str | None = Field(None, max_length=255)
    contact_email: EmailStr | None = Field(None, alias="contactEmail")

    model_config = {"populate_by_name": True}

    @model_validator(mode="after")
    def _profile_fields_for_role(self):
        if self.role == Role.STUDENT and not ((self.first_name or "").strip() and (self.last_name or "").strip()):
            raise ValueError("firstName and lastName are required for students")
        if self.role == Role.COMPANY and not ((self.name or "").strip() and self.contact_email):
            raise ValueError("name and contactEmail are required for companies")
        return self


class OAuthRegistrationRequest(BaseModel):
    role: Literal["STUDENT", "COMPANY"]
    first_name: str | None = Field(None, alias="firstName", max_length=100)
    last_name: str | None = Field(None, alias="lastName", max_length=100)
    name: str | None = Field(None, max_length=255)
    contact_email: EmailStr | None = Field(None, alias="contactEmail")

    model_config = {"populate_by_name": True}


class CompleteLinkRequest(BaseModel):
    choice: Literal["google_only", "keep_both"]


class TwoFactorLoginRequest(BaseModel):
    token: str = Field(..., min_length=6, max_length=8)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., alias="currentPassword", min_length=1)
    new_password: str = Field(..., alias="newPassword", min_length=8, max_length=255)

    model_config = {"populate_by_name": True}


class DeleteAccountRequest(BaseModel):
    password: str | None = None
