from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class JobOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    title: str
    salary: int | None = None
    equity: Decimal | None = None
    company_handle: str = Field(alias="companyHandle")


class JobCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    title: str = Field(min_length=1)
    salary: int | None = Field(default=None, ge=0)
    equity: Decimal | None = Field(default=None, ge=0, le=1)
    company_handle: str = Field(min_length=1, max_length=25, alias="companyHandle")


class JobPatchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    title: str | None = Field(default=None, min_length=1)
    salary: int | None = Field(default=None, ge=0)
    equity: Decimal | None = Field(default=None, ge=0, le=1)

    @field_validator("title")
    @classmethod
    def _reject_null(cls, value: str | None) -> str:
        if value is None:
            raise ValueError("field may not be null")
        return value


class JobEnvelope(BaseModel):
    job: JobOut


class JobsOut(BaseModel):
    jobs: list[JobOut]
