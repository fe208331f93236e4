"""Profile request schemas."""

from pydantic import BaseModel, EmailStr, Field


class StudentProfileRequest(BaseModel):
    first_name: str = Field(..., alias="firstName", min_length=1, max_length=100)
    last_name: str = Field(..., alias="lastName", min_length=1, max_length=100)
    school: str | None = Field(None, max_length=255)
    degree: str | None = Field(None, max_length=255)
    skills: list[str] | None = None
    is_open_to_opportunities: bool | None = Field(None, alias="isOpenToOpportunities")
    cv_url: str | None = Field(None, alias="cvUrl", max_length=500)
    is_cv_public: bool | None = Field(None, alias="isCvPublic")

    model_config = {"populate_by_name": True}


class CompanyProfileRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    contact_email: EmailStr = Field(..., alias="contactEmail")
    size: str | None = Field(None, max_length=50)
    sector: str | None = Field(None, max_length=255)
    logo_url: str | None = Field(None, alias="logoUrl", max_length=500)

    model_config = {"populate_by_name": True}
