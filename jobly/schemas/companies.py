from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CompanyOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    handle: str
    name: str
    description: str
    num_employees: int | None = Field(default=None, alias="numEmployees")
    logo_url: str | None = Field(default=None, alias="logoUrl")


class CompanyJobOut(BaseModel):
    id: int
    title: str
    salary: int | None = None
    equity: Decimal | None = None


class CompanyDetailOut(CompanyOut):
    jobs: list[CompanyJobOut] = Field(default_factory=list)


class CompanyCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    handle: str = Field(min_length=1, max_length=25, pattern=r"^[a-z0-9][a-z0-9-]*$")
    name: str = Field(min_length=1)
    description: str
    num_employees: int | None = Field(default=None, ge=0, alias="numEmployees")
    logo_url: str | None = Field(default=None, alias="logoUrl")


class CompanyPatchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    num_employees: int | None = Field(default=None, ge=0, alias="numEmployees")
    logo_url: str | None = Field(default=None, alias="logoUrl")

    @field_validator("name", "description")
    @classmethod
    def _reject_null(cls, value: str | None) -> str:
        if value is None:
            raise ValueError("field may not be null")
        return value


class CompanyEnvelope(BaseModel):
    company: CompanyOut


class CompanyDetailEnvelope(BaseModel):
    company: CompanyDetailOut


class CompaniesOut(BaseModel):
    companies: list[CompanyOut]
