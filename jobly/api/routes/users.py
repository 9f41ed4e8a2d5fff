from fastapi import APIRouter, Depends, HTTPException, status

from jobly.core.auth import OperationClass, Principal
from jobly.core.config import Settings, get_settings
from jobly.core.security import create_token, enforce, get_principal
from jobly.schemas.users import (
    ApplicationOut,
    UserCreatedOut,
    UserCreateRequest,
    UserDetailEnvelope,
    UserDetailOut,
    UserEnvelope,
    UserOut,
    UserPatchRequest,
    UsersOut,
)
from jobly.services.repository import (
    RepositoryConflictError,
    RepositoryNotFoundError,
    RepositoryUnavailableError,
    RepositoryValidationError,
    UserField,
    get_repository,
)
from jobly.services.sql import SparseUpdate

router = APIRouter()


@router.post("", response_model=UserCreatedOut, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserCreateRequest,
    principal: Principal = Depends(get_principal),
    settings: Settings = Depends(get_settings),
    repository=Depends(get_repository),
) -> UserCreatedOut:
    """Admin-only account creation; unlike /auth/register the new user may be an admin."""
    enforce(principal, OperationClass.ADMIN_ONLY)

    try:
        user = await repository.register_user(
            username=payload.username,
            password=payload.password,
            first_name=payload.first_name,
            last_name=payload.last_name,
            email=payload.email,
            is_admin=payload.is_admin,
        )
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    token = create_token(username=user["username"], is_admin=user["isAdmin"], settings=settings)
    return UserCreatedOut(user=UserOut(**user), token=token)


@router.get("", response_model=UsersOut)
async def list_users(
    principal: Principal = Depends(get_principal),
    repository=Depends(get_repository),
) -> UsersOut:
    enforce(principal, OperationClass.ADMIN_ONLY)

    try:
        rows = await repository.list_users()
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return UsersOut(users=[UserOut(**row) for row in rows])


@router.get("/{username}", response_model=UserDetailEnvelope)
async def get_user(
    username: str,
    principal: Principal = Depends(get_principal),
    repository=Depends(get_repository),
) -> UserDetailEnvelope:
    enforce(principal, OperationClass.SELF_OR_ADMIN, owner=username)

    try:
        row = await repository.get_user(username)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return UserDetailEnvelope(user=UserDetailOut(**row))


@router.patch("/{username}", response_model=UserEnvelope)
async def patch_user(
    username: str,
    payload: UserPatchRequest,
    principal: Principal = Depends(get_principal),
    repository=Depends(get_repository),
) -> UserEnvelope:
    enforce(principal, OperationClass.SELF_OR_ADMIN, owner=username)

    try:
        update = SparseUpdate.from_mapping(payload.model_dump(exclude_unset=True, by_alias=True), UserField)
        row = await repository.update_user(username, update)
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_CONTENT, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return UserEnvelope(user=UserOut(**row))


@router.delete("/{username}")
async def delete_user(
    username: str,
    principal: Principal = Depends(get_principal),
    repository=Depends(get_repository),
) -> dict[str, str]:
    enforce(principal, OperationClass.SELF_OR_ADMIN, owner=username)

    try:
        await repository.remove_user(username)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return {"deleted": username}


@router.post("/{username}/jobs/{job_id}", response_model=ApplicationOut)
async def apply_for_job(
    username: str,
    job_id: int,
    principal: Principal = Depends(get_principal),
    repository=Depends(get_repository),
) -> ApplicationOut:
    enforce(principal, OperationClass.SELF_OR_ADMIN, owner=username)

    try:
        applied = await repository.apply_for_job(username, job_id)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RepositoryConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return ApplicationOut(applied=applied)
