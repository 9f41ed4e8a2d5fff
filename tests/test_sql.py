from __future__ import annotations

from decimal import Decimal

import pytest

from jobly.services.errors import RepositoryValidationError
from jobly.services.repository import (
    COMPANY_COLUMNS,
    COMPANY_FILTER_COLUMNS,
    JOB_COLUMNS,
    JOB_FILTER_COLUMNS,
    USER_COLUMNS,
    CompanyField,
    JobField,
    UserField,
)
from jobly.services.sql import (
    FilterColumns,
    FilterSpec,
    SparseUpdate,
    build_filter,
    resolve_column,
    sql_for_partial_update,
    where_clause,
)


def test_resolve_column_uses_mapping_entry() -> None:
    assert resolve_column("firstName", USER_COLUMNS) == "first_name"
    assert resolve_column(UserField.LAST_NAME, USER_COLUMNS) == "last_name"
    assert resolve_column(CompanyField.NUM_EMPLOYEES, COMPANY_COLUMNS) == "num_employees"


def test_resolve_column_falls_back_to_external_name() -> None:
    assert resolve_column("age", {}) == "age"
    assert resolve_column(UserField.EMAIL, USER_COLUMNS) == "email"


def test_partial_update_maps_columns_in_order() -> None:
    set_cols, values = sql_for_partial_update({"firstName": "Aliya", "age": 32}, {"firstName": "first_name"})

    assert set_cols == '"first_name"=$1, "age"=$2'
    assert values == ["Aliya", 32]


def test_partial_update_without_mapping_uses_names_verbatim() -> None:
    set_cols, values = sql_for_partial_update({"age": 32}, {})

    assert set_cols == '"age"=$1'
    assert values == [32]


def test_partial_update_rejects_empty_payload() -> None:
    with pytest.raises(RepositoryValidationError, match="no data"):
        sql_for_partial_update({}, USER_COLUMNS)

    with pytest.raises(RepositoryValidationError, match="no data"):
        sql_for_partial_update(SparseUpdate(), USER_COLUMNS)


def test_partial_update_placeholders_track_values() -> None:
    update = SparseUpdate.from_mapping(
        {"email": "a@b.co", "lastName": "Smith", "firstName": "Ann", "password": "hashed"},
        UserField,
    )

    set_cols, values = sql_for_partial_update(update, USER_COLUMNS)

    assert set_cols == '"email"=$1, "last_name"=$2, "first_name"=$3, "password"=$4'
    assert values == ["a@b.co", "Smith", "Ann", "hashed"]


def test_partial_update_quotes_embedded_double_quotes() -> None:
    set_cols, _ = sql_for_partial_update({'bad"name': 1}, {})

    assert set_cols == '"bad""name"=$1'


def test_sparse_update_rejects_unrecognized_fields() -> None:
    with pytest.raises(RepositoryValidationError, match="unrecognized field: handle"):
        SparseUpdate.from_mapping({"name": "New", "handle": "other"}, CompanyField)


def test_sparse_update_set_replaces_existing_entry_in_place() -> None:
    update = SparseUpdate.from_mapping({"firstName": "Ann", "password": "plain"}, UserField)
    update.set(UserField.PASSWORD, "hashed")

    assert list(update) == [("firstName", "Ann"), ("password", "hashed")]
    assert update.pop("firstName") == "Ann"
    assert len(update) == 1


def test_filter_without_predicates_is_empty() -> None:
    clause, values = build_filter(FilterSpec(), COMPANY_FILTER_COLUMNS)

    assert clause == ""
    assert values == []
    assert where_clause(clause) == ""


def test_filter_builds_predicates_in_fixed_order() -> None:
    clause, values = build_filter(
        FilterSpec(text="net", minimum=10, maximum=500),
        COMPANY_FILTER_COLUMNS,
    )

    assert clause == '"name" ILIKE $1 AND "num_employees" >= $2 AND "num_employees" <= $3'
    assert values == ["%net%", 10, 500]
    assert where_clause(clause).startswith("WHERE ")


def test_filter_skips_absent_predicates_without_gaps() -> None:
    clause, values = build_filter(FilterSpec(maximum=500), COMPANY_FILTER_COLUMNS)

    assert clause == '"num_employees" <= $1'
    assert values == [500]


def test_filter_rejects_inverted_range_even_with_other_filters() -> None:
    with pytest.raises(RepositoryValidationError, match="minimum cannot be greater than maximum"):
        build_filter(FilterSpec(text="net", minimum=10, maximum=5), COMPANY_FILTER_COLUMNS)


def test_filter_accepts_equal_bounds() -> None:
    clause, values = build_filter(FilterSpec(minimum=5, maximum=5), COMPANY_FILTER_COLUMNS)

    assert clause == '"num_employees" >= $1 AND "num_employees" <= $2'
    assert values == [5, 5]


def test_filter_true_flag_adds_predicate() -> None:
    clause, values = build_filter(
        FilterSpec(text="eng", minimum=1000, flags={"hasEquity": True}),
        JOB_FILTER_COLUMNS,
    )

    assert clause == '"title" ILIKE $1 AND "salary" >= $2 AND "equity" > $3'
    assert values == ["%eng%", 1000, Decimal(0)]


def test_filter_false_flag_is_ignored() -> None:
    clause, values = build_filter(FilterSpec(flags={"hasEquity": False}), JOB_FILTER_COLUMNS)

    assert clause == ""
    assert values == []


def test_filter_rejects_unknown_flag() -> None:
    with pytest.raises(RepositoryValidationError, match="unsupported filters: remote"):
        build_filter(FilterSpec(flags={"remote": True}), JOB_FILTER_COLUMNS)


def test_filter_rejects_filters_a_resource_does_not_expose() -> None:
    with pytest.raises(RepositoryValidationError, match="range filter is not supported"):
        build_filter(FilterSpec(minimum=1), FilterColumns(text="name"))


def test_filter_escapes_like_wildcards_in_text() -> None:
    _, values = build_filter(FilterSpec(text="50%_off"), COMPANY_FILTER_COLUMNS)

    assert values == ["%50\\%\\_off%"]


def test_filter_can_continue_placeholder_numbering() -> None:
    clause, values = build_filter(FilterSpec(text="net", minimum=1), COMPANY_FILTER_COLUMNS, start=3)

    assert clause == '"name" ILIKE $3 AND "num_employees" >= $4'
    assert values == ["%net%", 1]


def test_admin_flag_and_company_are_not_updatable_fields() -> None:
    with pytest.raises(RepositoryValidationError, match="unrecognized field: isAdmin"):
        SparseUpdate.from_mapping({"firstName": "Ann", "isAdmin": True}, UserField)

    with pytest.raises(RepositoryValidationError, match="unrecognized field: companyHandle"):
        SparseUpdate.from_mapping({"companyHandle": "c2"}, JobField)

    assert "isAdmin" not in USER_COLUMNS
    assert JOB_COLUMNS == {}
