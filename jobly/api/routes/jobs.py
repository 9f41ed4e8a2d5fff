from fastapi import APIRouter, Depends, HTTPException, Query, status

from jobly.core.auth import OperationClass, Principal
from jobly.core.security import enforce, get_principal
from jobly.schemas.jobs import JobCreateRequest, JobEnvelope, JobOut, JobPatchRequest, JobsOut
from jobly.services.repository import (
    JobField,
    RepositoryNotFoundError,
    RepositoryUnavailableError,
    RepositoryValidationError,
    get_repository,
)
from jobly.services.sql import FilterSpec, SparseUpdate

router = APIRouter()


@router.post("", response_model=JobEnvelope, status_code=status.HTTP_201_CREATED)
async def create_job(
    payload: JobCreateRequest,
    principal: Principal = Depends(get_principal),
    repository=Depends(get_repository),
) -> JobEnvelope:
    enforce(principal, OperationClass.ADMIN_ONLY)

    try:
        row = await repository.create_job(
            title=payload.title,
            salary=payload.salary,
            equity=payload.equity,
            company_handle=payload.company_handle,
        )
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return JobEnvelope(job=JobOut(**row))


@router.get("", response_model=JobsOut)
async def list_jobs(
    title: str | None = Query(default=None, min_length=1),
    min_salary: int | None = Query(default=None, ge=0, alias="minSalary"),
    max_salary: int | None = Query(default=None, ge=0, alias="maxSalary"),
    has_equity: bool = Query(default=False, alias="hasEquity"),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    repository=Depends(get_repository),
) -> JobsOut:
    filters = FilterSpec(
        text=title,
        minimum=min_salary,
        maximum=max_salary,
        flags={"hasEquity": has_equity},
    )
    try:
        rows = await repository.list_jobs(filters, limit=limit, offset=offset)
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_CONTENT, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return JobsOut(jobs=[JobOut(**row) for row in rows])


@router.get("/{job_id}", response_model=JobEnvelope)
async def get_job(job_id: int, repository=Depends(get_repository)) -> JobEnvelope:
    try:
        row = await repository.get_job(job_id)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return JobEnvelope(job=JobOut(**row))


@router.patch("/{job_id}", response_model=JobEnvelope)
async def patch_job(
    job_id: int,
    payload: JobPatchRequest,
    principal: Principal = Depends(get_principal),
    repository=Depends(get_repository),
) -> JobEnvelope:
    enforce(principal, OperationClass.ADMIN_ONLY)

    try:
        update = SparseUpdate.from_mapping(payload.model_dump(exclude_unset=True, by_alias=True), JobField)
        row = await repository.update_job(job_id, update)
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_CONTENT, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return JobEnvelope(job=JobOut(**row))


@router.delete("/{job_id}")
async def delete_job(
    job_id: int,
    principal: Principal = Depends(get_principal),
    repository=Depends(get_repository),
) -> dict[str, str]:
    enforce(principal, OperationClass.ADMIN_ONLY)

    try:
        await repository.remove_job(job_id)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return {"deleted": str(job_id)}
