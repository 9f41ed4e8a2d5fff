from fastapi import APIRouter, Depends, HTTPException, Query, status

from jobly.core.auth import OperationClass, Principal
from jobly.core.security import enforce, get_principal
from jobly.schemas.companies import (
    CompaniesOut,
    CompanyCreateRequest,
    CompanyDetailEnvelope,
    CompanyDetailOut,
    CompanyEnvelope,
    CompanyOut,
    CompanyPatchRequest,
)
from jobly.services.repository import (
    CompanyField,
    RepositoryConflictError,
    RepositoryNotFoundError,
    RepositoryUnavailableError,
    RepositoryValidationError,
    get_repository,
)
from jobly.services.sql import FilterSpec, SparseUpdate

router = APIRouter()


@router.post("", response_model=CompanyEnvelope, status_code=status.HTTP_201_CREATED)
async def create_company(
    payload: CompanyCreateRequest,
    principal: Principal = Depends(get_principal),
    repository=Depends(get_repository),
) -> CompanyEnvelope:
    enforce(principal, OperationClass.ADMIN_ONLY)

    try:
        row = await repository.create_company(
            handle=payload.handle,
            name=payload.name,
            description=payload.description,
            num_employees=payload.num_employees,
            logo_url=payload.logo_url,
        )
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return CompanyEnvelope(company=CompanyOut(**row))


@router.get("", response_model=CompaniesOut)
async def list_companies(
    name_like: str | None = Query(default=None, min_length=1, alias="nameLike"),
    min_employees: int | None = Query(default=None, ge=0, alias="minEmployees"),
    max_employees: int | None = Query(default=None, ge=0, alias="maxEmployees"),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    repository=Depends(get_repository),
) -> CompaniesOut:
    filters = FilterSpec(text=name_like, minimum=min_employees, maximum=max_employees)
    try:
        rows = await repository.list_companies(filters, limit=limit, offset=offset)
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_CONTENT, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return CompaniesOut(companies=[CompanyOut(**row) for row in rows])


@router.get("/{handle}", response_model=CompanyDetailEnvelope)
async def get_company(handle: str, repository=Depends(get_repository)) -> CompanyDetailEnvelope:
    try:
        row = await repository.get_company(handle)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return CompanyDetailEnvelope(company=CompanyDetailOut(**row))


@router.patch("/{handle}", response_model=CompanyEnvelope)
async def patch_company(
    handle: str,
    payload: CompanyPatchRequest,
    principal: Principal = Depends(get_principal),
    repository=Depends(get_repository),
) -> CompanyEnvelope:
    enforce(principal, OperationClass.ADMIN_ONLY)

    try:
        update = SparseUpdate.from_mapping(payload.model_dump(exclude_unset=True, by_alias=True), CompanyField)
        row = await repository.update_company(handle, update)
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_CONTENT, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RepositoryConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return CompanyEnvelope(company=CompanyOut(**row))


@router.delete("/{handle}")
async def delete_company(
    handle: str,
    principal: Principal = Depends(get_principal),
    repository=Depends(get_repository),
) -> dict[str, str]:
    enforce(principal, OperationClass.ADMIN_ONLY)

    try:
        await repository.remove_company(handle)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return {"deleted": handle}
