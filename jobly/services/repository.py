from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from enum import Enum
from functools import lru_cache
from typing import Any

import asyncpg  # type: ignore[import-untyped]
from asyncpg import exceptions as pg_exc

from jobly.core.config import get_settings
from jobly.core.security import hash_password, verify_password
from jobly.core.telemetry import repository_span
from jobly.services.errors import (
    RepositoryConflictError,
    RepositoryError,
    RepositoryNotFoundError,
    RepositoryUnavailableError,
    RepositoryValidationError,
)
from jobly.services.sql import (
    FilterColumns,
    FilterSpec,
    FlagPredicate,
    SparseUpdate,
    build_filter,
    sql_for_partial_update,
    where_clause,
)

__all__ = [
    "RepositoryConflictError",
    "RepositoryError",
    "RepositoryNotFoundError",
    "RepositoryUnavailableError",
    "RepositoryValidationError",
    "PostgresRepository",
    "get_repository",
]

logger = logging.getLogger(__name__)


class UserField(str, Enum):
    FIRST_NAME = "firstName"
    LAST_NAME = "lastName"
    PASSWORD = "password"
    EMAIL = "email"


class CompanyField(str, Enum):
    NAME = "name"
    DESCRIPTION = "description"
    NUM_EMPLOYEES = "numEmployees"
    LOGO_URL = "logoUrl"


class JobField(str, Enum):
    TITLE = "title"
    SALARY = "salary"
    EQUITY = "equity"


USER_COLUMNS = {"firstName": "first_name", "lastName": "last_name"}
COMPANY_COLUMNS = {"numEmployees": "num_employees", "logoUrl": "logo_url"}
# jobs expose no renamed, updatable columns
JOB_COLUMNS: dict[str, str] = {}

COMPANY_FILTER_COLUMNS = FilterColumns(text="name", numeric="num_employees")
JOB_FILTER_COLUMNS = FilterColumns(
    text="title",
    numeric="salary",
    flags={"hasEquity": FlagPredicate(column="equity", operator=">", value=Decimal(0))},
)

USER_SELECT = 'username, first_name as "firstName", last_name as "lastName", email, is_admin as "isAdmin"'
COMPANY_SELECT = 'handle, name, description, num_employees as "numEmployees", logo_url as "logoUrl"'
JOB_SELECT = 'id, title, salary, equity, company_handle as "companyHandle"'


class PostgresRepository:
    def __init__(
        self,
        database_url: str | None,
        min_pool_size: int,
        max_pool_size: int,
        bcrypt_work_factor: int,
    ) -> None:
        self.database_url = database_url
        self.min_pool_size = min_pool_size
        self.max_pool_size = max_pool_size
        self.bcrypt_work_factor = bcrypt_work_factor
        self._pool: asyncpg.Pool | None = None

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def ping(self) -> None:
        pool = await self._get_pool()
        try:
            await pool.fetchval("select 1")
        except (OSError, pg_exc.PostgresError) as exc:
            raise RepositoryUnavailableError("database unavailable") from exc

    # users

    async def authenticate(self, username: str, password: str) -> dict[str, Any] | None:
        """Return the user when the password matches its stored hash, else None."""
        pool = await self._get_pool()
        row = await pool.fetchrow(
            f"""
            select {USER_SELECT}, password
            from users
            where username = $1
            """,
            username,
        )
        if not row:
            return None
        if not await asyncio.to_thread(verify_password, password, row["password"]):
            return None
        user = dict(row)
        user.pop("password")
        return user

    async def register_user(
        self,
        *,
        username: str,
        password: str,
        first_name: str,
        last_name: str,
        email: str,
        is_admin: bool = False,
    ) -> dict[str, Any]:
        hashed = await asyncio.to_thread(hash_password, password, self.bcrypt_work_factor)
        pool = await self._get_pool()
        try:
            row = await pool.fetchrow(
                f"""
                insert into users (username, password, first_name, last_name, email, is_admin)
                values ($1, $2, $3, $4, $5, $6)
                returning {USER_SELECT}
                """,
                username,
                hashed,
                first_name,
                last_name,
                email,
                is_admin,
            )
        except pg_exc.UniqueViolationError as exc:
            raise RepositoryConflictError(f"duplicate username: {username}") from exc
        logger.info("user registered username=%s is_admin=%s", username, is_admin)
        return dict(row)

    async def list_users(self) -> list[dict[str, Any]]:
        pool = await self._get_pool()
        rows = await pool.fetch(
            f"""
            select {USER_SELECT}
            from users
            order by username
            """
        )
        return [dict(row) for row in rows]

    async def get_user(self, username: str) -> dict[str, Any]:
        pool = await self._get_pool()
        row = await pool.fetchrow(
            f"""
            select {USER_SELECT}
            from users
            where username = $1
            """,
            username,
        )
        if not row:
            raise RepositoryNotFoundError(f"no user: {username}")
        user = dict(row)
        user["jobs"] = await self.list_applications(username)
        return user

    async def update_user(self, username: str, update: SparseUpdate) -> dict[str, Any]:
        """Apply a partial update.

        A new password is hashed before it is written. The admin flag is not
        an updatable field; it changes only through account creation.
        """
        if update.get(UserField.PASSWORD) is not None:
            hashed = await asyncio.to_thread(hash_password, update.get(UserField.PASSWORD), self.bcrypt_work_factor)
            update.set(UserField.PASSWORD, hashed)

        set_cols, values = sql_for_partial_update(update, USER_COLUMNS)
        pool = await self._get_pool()
        row = await pool.fetchrow(
            f"""
            update users
            set {set_cols}
            where username = ${len(values) + 1}
            returning {USER_SELECT}
            """,
            *values,
            username,
        )
        if not row:
            raise RepositoryNotFoundError(f"no user: {username}")
        logger.info("user updated username=%s fields=%s", username, ",".join(name for name, _ in update))
        return dict(row)

    async def remove_user(self, username: str) -> None:
        pool = await self._get_pool()
        row = await pool.fetchrow("delete from users where username = $1 returning username", username)
        if not row:
            raise RepositoryNotFoundError(f"no user: {username}")
        logger.info("user removed username=%s", username)

    # applications

    async def apply_for_job(self, username: str, job_id: int) -> int:
        pool = await self._get_pool()
        with repository_span("insert", "applications"):
            if not await pool.fetchval("select username from users where username = $1", username):
                raise RepositoryNotFoundError(f"no user: {username}")
            if not await pool.fetchval("select id from jobs where id = $1", job_id):
                raise RepositoryNotFoundError(f"no job: {job_id}")

            try:
                await pool.execute(
                    "insert into applications (username, job_id) values ($1, $2)",
                    username,
                    job_id,
                )
            except pg_exc.UniqueViolationError as exc:
                raise RepositoryConflictError(f"already applied: {username} -> {job_id}") from exc
            except pg_exc.ForeignKeyViolationError as exc:
                # user or job removed between the checks and the insert
                raise RepositoryNotFoundError(f"no user or job: {username} -> {job_id}") from exc
        logger.info("application recorded username=%s job_id=%s", username, job_id)
        return job_id

    async def list_applications(self, username: str) -> list[int]:
        pool = await self._get_pool()
        rows = await pool.fetch(
            """
            select job_id
            from applications
            where username = $1
            order by job_id
            """,
            username,
        )
        return [int(row["job_id"]) for row in rows]

    # companies

    async def create_company(
        self,
        *,
        handle: str,
        name: str,
        description: str,
        num_employees: int | None,
        logo_url: str | None,
    ) -> dict[str, Any]:
        pool = await self._get_pool()
        try:
            row = await pool.fetchrow(
                f"""
                insert into companies (handle, name, description, num_employees, logo_url)
                values ($1, $2, $3, $4, $5)
                returning {COMPANY_SELECT}
                """,
                handle,
                name,
                description,
                num_employees,
                logo_url,
            )
        except pg_exc.UniqueViolationError as exc:
            raise RepositoryConflictError(f"duplicate company: {handle}") from exc
        logger.info("company created handle=%s", handle)
        return dict(row)

    async def list_companies(self, filters: FilterSpec, *, limit: int, offset: int) -> list[dict[str, Any]]:
        predicate, params = build_filter(filters, COMPANY_FILTER_COLUMNS)
        pool = await self._get_pool()
        with repository_span("select", "companies") as span:
            rows = await pool.fetch(
                f"""
                select {COMPANY_SELECT}
                from companies
                {where_clause(predicate)}
                order by name
                limit ${len(params) + 1}
                offset ${len(params) + 2}
                """,
                *params,
                limit,
                offset,
            )
            span.set_attribute("db.response.rows", len(rows))
        return [dict(row) for row in rows]

    async def get_company(self, handle: str) -> dict[str, Any]:
        pool = await self._get_pool()
        row = await pool.fetchrow(
            f"""
            select {COMPANY_SELECT}
            from companies
            where handle = $1
            """,
            handle,
        )
        if not row:
            raise RepositoryNotFoundError(f"no company: {handle}")
        jobs = await pool.fetch(
            """
            select id, title, salary, equity
            from jobs
            where company_handle = $1
            order by id
            """,
            handle,
        )
        company = dict(row)
        company["jobs"] = [dict(job) for job in jobs]
        return company

    async def update_company(self, handle: str, update: SparseUpdate) -> dict[str, Any]:
        set_cols, values = sql_for_partial_update(update, COMPANY_COLUMNS)
        pool = await self._get_pool()
        try:
            row = await pool.fetchrow(
                f"""
                update companies
                set {set_cols}
                where handle = ${len(values) + 1}
                returning {COMPANY_SELECT}
                """,
                *values,
                handle,
            )
        except pg_exc.UniqueViolationError as exc:
            raise RepositoryConflictError(f"duplicate company name for: {handle}") from exc
        if not row:
            raise RepositoryNotFoundError(f"no company: {handle}")
        logger.info("company updated handle=%s", handle)
        return dict(row)

    async def remove_company(self, handle: str) -> None:
        pool = await self._get_pool()
        row = await pool.fetchrow("delete from companies where handle = $1 returning handle", handle)
        if not row:
            raise RepositoryNotFoundError(f"no company: {handle}")
        logger.info("company removed handle=%s", handle)

    # jobs

    async def create_job(
        self,
        *,
        title: str,
        salary: int | None,
        equity: Decimal | None,
        company_handle: str,
    ) -> dict[str, Any]:
        pool = await self._get_pool()
        try:
            row = await pool.fetchrow(
                f"""
                insert into jobs (title, salary, equity, company_handle)
                values ($1, $2, $3, $4)
                returning {JOB_SELECT}
                """,
                title,
                salary,
                equity,
                company_handle,
            )
        except pg_exc.ForeignKeyViolationError as exc:
            raise RepositoryNotFoundError(f"no company: {company_handle}") from exc
        logger.info("job created id=%s company_handle=%s", row["id"], company_handle)
        return dict(row)

    async def list_jobs(self, filters: FilterSpec, *, limit: int, offset: int) -> list[dict[str, Any]]:
        predicate, params = build_filter(filters, JOB_FILTER_COLUMNS)
        pool = await self._get_pool()
        with repository_span("select", "jobs") as span:
            rows = await pool.fetch(
                f"""
                select {JOB_SELECT}
                from jobs
                {where_clause(predicate)}
                order by title, id
                limit ${len(params) + 1}
                offset ${len(params) + 2}
                """,
                *params,
                limit,
                offset,
            )
            span.set_attribute("db.response.rows", len(rows))
        return [dict(row) for row in rows]

    async def get_job(self, job_id: int) -> dict[str, Any]:
        pool = await self._get_pool()
        row = await pool.fetchrow(f"select {JOB_SELECT} from jobs where id = $1", job_id)
        if not row:
            raise RepositoryNotFoundError(f"no job: {job_id}")
        return dict(row)

    async def update_job(self, job_id: int, update: SparseUpdate) -> dict[str, Any]:
        set_cols, values = sql_for_partial_update(update, JOB_COLUMNS)
        pool = await self._get_pool()
        row = await pool.fetchrow(
            f"""
            update jobs
            set {set_cols}
            where id = ${len(values) + 1}
            returning {JOB_SELECT}
            """,
            *values,
            job_id,
        )
        if not row:
            raise RepositoryNotFoundError(f"no job: {job_id}")
        logger.info("job updated id=%s", job_id)
        return dict(row)

    async def remove_job(self, job_id: int) -> None:
        pool = await self._get_pool()
        row = await pool.fetchrow("delete from jobs where id = $1 returning id", job_id)
        if not row:
            raise RepositoryNotFoundError(f"no job: {job_id}")
        logger.info("job removed id=%s", job_id)

    async def _get_pool(self) -> asyncpg.Pool:
        if not self.database_url:
            raise RepositoryUnavailableError("JOBLY_DATABASE_URL is required")

        if self._pool is not None:
            return self._pool

        try:
            self._pool = await asyncpg.create_pool(
                dsn=self.database_url,
                min_size=self.min_pool_size,
                max_size=self.max_pool_size,
                command_timeout=15,
            )
            return self._pool
        except Exception as exc:  # pragma: no cover - depends on environment
            raise RepositoryUnavailableError("database unavailable") from exc


@lru_cache
def get_repository() -> PostgresRepository:
    settings = get_settings()
    return PostgresRepository(
        database_url=settings.database_url,
        min_pool_size=settings.database_pool_min_size,
        max_pool_size=settings.database_pool_max_size,
        bcrypt_work_factor=settings.bcrypt_work_factor,
    )
