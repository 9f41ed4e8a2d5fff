from __future__ import annotations

from fastapi.testclient import TestClient

from fakes import FakeJoblyRepository


def test_create_job_allows_admin(client: TestClient, admin_headers: dict[str, str]) -> None:
    response = client.post(
        "/jobs",
        json={"title": "new job", "salary": 100000, "equity": "0.05", "companyHandle": "c1"},
        headers=admin_headers,
    )

    assert response.status_code == 201
    assert response.json() == {
        "job": {
            "id": 4,
            "title": "new job",
            "salary": 100000,
            "equity": "0.05",
            "companyHandle": "c1",
        }
    }


def test_create_job_denies_non_admin(client: TestClient, u1_headers: dict[str, str]) -> None:
    response = client.post(
        "/jobs",
        json={"title": "new job", "salary": 100000, "equity": "0.05", "companyHandle": "c1"},
        headers=u1_headers,
    )

    assert response.status_code == 403


def test_create_job_for_missing_company_is_not_found(client: TestClient, admin_headers: dict[str, str]) -> None:
    response = client.post("/jobs", json={"title": "x", "companyHandle": "nope"}, headers=admin_headers)

    assert response.status_code == 404


def test_create_job_rejects_equity_above_one(client: TestClient, admin_headers: dict[str, str]) -> None:
    response = client.post(
        "/jobs",
        json={"title": "x", "equity": "1.5", "companyHandle": "c1"},
        headers=admin_headers,
    )

    assert response.status_code == 422


def test_list_jobs_is_public(client: TestClient) -> None:
    response = client.get("/jobs")

    assert response.status_code == 200
    assert [job["title"] for job in response.json()["jobs"]] == ["Job1", "Job2", "Job3"]


def test_list_jobs_title_filter(client: TestClient) -> None:
    response = client.get("/jobs", params={"title": "job1"})

    assert [job["id"] for job in response.json()["jobs"]] == [1]


def test_list_jobs_min_salary(client: TestClient) -> None:
    response = client.get("/jobs", params={"minSalary": 55000})

    assert [job["title"] for job in response.json()["jobs"]] == ["Job2", "Job3"]


def test_list_jobs_has_equity_true(client: TestClient, fake_repo: FakeJoblyRepository) -> None:
    response = client.get("/jobs", params={"hasEquity": "true", "minSalary": 1})

    assert [job["title"] for job in response.json()["jobs"]] == ["Job1", "Job2"]
    clause, values = fake_repo.built_clauses[-1]
    assert clause == '"salary" >= $1 AND "equity" > $2'
    assert values[0] == 1


def test_list_jobs_has_equity_false_adds_no_predicate(client: TestClient, fake_repo: FakeJoblyRepository) -> None:
    response = client.get("/jobs", params={"hasEquity": "false"})

    assert len(response.json()["jobs"]) == 3
    assert fake_repo.built_clauses[-1] == ("", [])


def test_list_jobs_rejects_inverted_salary_range(client: TestClient) -> None:
    response = client.get("/jobs", params={"minSalary": 70000, "maxSalary": 50000})

    assert response.status_code == 422


def test_get_job(client: TestClient) -> None:
    response = client.get("/jobs/1")

    assert response.status_code == 200
    assert response.json() == {
        "job": {
            "id": 1,
            "title": "Job1",
            "salary": 50000,
            "equity": "0.01",
            "companyHandle": "c1",
        }
    }


def test_get_missing_job_is_not_found(client: TestClient) -> None:
    assert client.get("/jobs/9999").status_code == 404


def test_patch_job_allows_admin(
    client: TestClient,
    admin_headers: dict[str, str],
    fake_repo: FakeJoblyRepository,
) -> None:
    response = client.patch("/jobs/1", json={"title": "Updated Job1"}, headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["job"]["title"] == "Updated Job1"
    assert response.json()["job"]["companyHandle"] == "c1"
    assert fake_repo.built_clauses[-1] == ('"title"=$1', ["Updated Job1"])


def test_patch_job_cannot_move_company(client: TestClient, admin_headers: dict[str, str]) -> None:
    assert client.patch("/jobs/1", json={"companyHandle": "c2"}, headers=admin_headers).status_code == 422


def test_patch_job_denies_non_admin(client: TestClient, u1_headers: dict[str, str]) -> None:
    assert client.patch("/jobs/1", json={"title": "Updated Job1"}, headers=u1_headers).status_code == 403


def test_patch_missing_job_is_not_found(client: TestClient, admin_headers: dict[str, str]) -> None:
    assert client.patch("/jobs/9999", json={"title": "x"}, headers=admin_headers).status_code == 404


def test_delete_job(client: TestClient, admin_headers: dict[str, str], u1_headers: dict[str, str]) -> None:
    assert client.delete("/jobs/1", headers=u1_headers).status_code == 403

    response = client.delete("/jobs/1", headers=admin_headers)
    assert response.status_code == 200
    assert response.json() == {"deleted": "1"}
    assert client.get("/jobs/1").status_code == 404
