from __future__ import annotations

from pathlib import Path

from fastapi.testclient import TestClient

from app.core.auth import Role
from conftest import bearer, job_payload

PDF_BYTES = b"%PDF-1.4 candidate resume"


def _register(client: TestClient, username: str, role: str, **extra: str) -> dict:
    response = client.post(
        "/api/v1/auth/register",
        json={"username": username, "email": f"{username}@example.test", "password": "password123", "role": role, **extra},
    )
    assert response.status_code == 201, response.text
    return response.json()


def _login(client: TestClient, username: str) -> dict[str, str]:
    response = client.post("/api/v1/auth/login", json={"email": f"{username}@example.test", "password": "password123"})
    assert response.status_code == 200, response.text
    # Keep each caller explicit; the cookie from the last login would otherwise win.
    client.cookies.clear()
    return {"Authorization": f"Bearer {response.json()['token']}"}


def test_hiring_flow_end_to_end(client: TestClient) -> None:
    admin = _register(client, "admin", "applicant")
    assert admin["role"] == "admin"
    _register(client, "rita", "recruiter")
    _register(client, "otto", "recruiter")
    _register(client, "alice", "applicant")
    _register(client, "bob", "applicant")

    admin_headers = _login(client, "admin")
    rita = _login(client, "rita")
    otto = _login(client, "otto")
    alice = _login(client, "alice")
    bob = _login(client, "bob")

    created = client.post("/api/v1/jobs", json=job_payload(status="declined"), headers=rita)
    assert created.status_code == 201, created.text
    job = created.json()
    assert job["status"] == "pending"

    applied = client.post(
        "/api/v1/applications/apply",
        data={"job_id": job["id"]},
        files={"resume": ("resume.pdf", PDF_BYTES, "application/pdf")},
        headers=alice,
    )
    assert applied.status_code == 201, applied.text
    alice_application = applied.json()
    assert alice_application["recruiter_id"] == job["owner_id"]
    assert alice_application["resume"].startswith("/uploads/")

    assert client.post("/api/v1/applications/apply", data={"job_id": job["id"]}, headers=bob).status_code == 201
    duplicate = client.post("/api/v1/applications/apply", data={"job_id": job["id"]}, headers=alice)
    assert duplicate.status_code == 409

    received = client.get("/api/v1/applications/recruiter", params={"limit": 1}, headers=rita)
    assert received.status_code == 200
    assert received.json()["total"] == 2
    assert received.json()["page_count"] == 2

    resume = client.get(f"/api/v1/applications/{alice_application['id']}/resume", headers=rita)
    assert resume.status_code == 200
    assert resume.content == PDF_BYTES
    assert client.get(f"/api/v1/applications/{alice_application['id']}/resume", headers=otto).status_code == 403

    assert client.patch(f"/api/v1/jobs/{job['id']}/status", json={"status": "declined"}, headers=otto).status_code == 403
    declined = client.patch(f"/api/v1/jobs/{job['id']}/status", json={"status": "declined"}, headers=rita)
    assert declined.status_code == 200
    assert declined.json()["status"] == "declined"

    mine = client.get("/api/v1/applications", headers=alice)
    assert mine.status_code == 200
    assert [(row["status"], row["company"]) for row in mine.json()] == [("rejected", "Acme Robotics")]

    stats = client.get("/api/v1/admin/stats", headers=admin_headers)
    assert stats.status_code == 200
    body = stats.json()
    assert body["users_by_role"] == {"admin": 1, "recruiter": 2, "applicant": 2}
    assert body["jobs_by_status"]["declined"] == 1
    assert body["applications_by_status"] == {"pending": 0, "accepted": 0, "rejected": 2}
    assert client.get("/api/v1/admin/stats", headers=rita).status_code == 403


def test_protected_route_without_token_is_unauthenticated(client: TestClient, repository) -> None:
    response = client.get("/api/v1/applications")

    assert response.status_code == 401
    assert response.json() == {"detail": "unauthenticated"}

    forged = client.post(
        "/api/v1/jobs",
        json=job_payload(),
        headers={"Authorization": "Bearer not.a.token"},
    )
    assert forged.status_code == 401
    assert forged.json() == {"detail": "unauthenticated"}
    assert repository.jobs == {}


def test_public_job_listing_needs_no_token(client: TestClient) -> None:
    recruiter = bearer("recruiter-1", Role.RECRUITER)
    for company in ("Alpha Works", "Bravo Labs"):
        assert client.post("/api/v1/jobs", json=job_payload(company=company), headers=recruiter).status_code == 201

    response = client.get("/api/v1/jobs", params={"limit": 1, "sort": "a-z"})

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert body["page_count"] == 2
    assert [job["company"] for job in body["items"]] == ["Alpha Works"]

    job_id = body["items"][0]["id"]
    assert client.get(f"/api/v1/jobs/{job_id}").json()["company"] == "Alpha Works"
    assert client.get("/api/v1/jobs/unknown-id").status_code == 404


def test_cookie_session_login_me_and_logout(client: TestClient) -> None:
    _register(client, "admin", "admin")
    _register(client, "rita", "recruiter")

    login = client.post("/api/v1/auth/login", json={"email": "rita@example.test", "password": "password123"})
    assert login.status_code == 200
    assert "jobPortalToken" in client.cookies

    me = client.get("/api/v1/auth/me")
    assert me.status_code == 200
    assert me.json()["username"] == "rita"
    assert "password_hash" not in me.json()

    assert client.post("/api/v1/auth/logout").status_code == 200
    assert "jobPortalToken" not in client.cookies
    assert client.get("/api/v1/auth/me").status_code == 401


def test_login_with_wrong_password_is_rejected(client: TestClient) -> None:
    _register(client, "rita", "recruiter")

    response = client.post("/api/v1/auth/login", json={"email": "rita@example.test", "password": "wrong-password"})

    assert response.status_code == 401


def test_admin_registration_requires_code(client: TestClient) -> None:
    _register(client, "first", "applicant")

    denied = client.post(
        "/api/v1/auth/register",
        json={"username": "mallory", "email": "mallory@example.test", "password": "password123", "role": "admin"},
    )
    assert denied.status_code == 403

    _register(client, "trent", "admin", admin_code="let-me-admin")


def test_job_status_errors_map_to_http(client: TestClient) -> None:
    owner = bearer("recruiter-1", Role.RECRUITER)
    job = client.post("/api/v1/jobs", json=job_payload(), headers=owner).json()

    assert client.patch("/api/v1/jobs/missing/status", json={"status": "declined"}, headers=owner).status_code == 404
    assert client.patch(f"/api/v1/jobs/{job['id']}/status", json={"status": "pending"}, headers=owner).status_code == 422
    assert client.patch(f"/api/v1/jobs/{job['id']}/status", json={"status": "archived"}, headers=owner).status_code == 422
    applicant = bearer("applicant-1", Role.APPLICANT)
    assert client.post("/api/v1/jobs", json=job_payload(), headers=applicant).status_code == 403


def test_job_update_and_delete(client: TestClient, repository) -> None:
    owner = bearer("recruiter-1", Role.RECRUITER)
    other = bearer("recruiter-2", Role.RECRUITER)
    job = client.post("/api/v1/jobs", json=job_payload(), headers=owner).json()

    patched = client.patch(f"/api/v1/jobs/{job['id']}", json={"vacancy": 7}, headers=owner)
    assert patched.status_code == 200
    assert patched.json()["vacancy"] == 7
    assert patched.json()["company"] == "Acme Robotics"

    assert client.delete(f"/api/v1/jobs/{job['id']}", headers=other).status_code == 403
    assert client.delete(f"/api/v1/jobs/{job['id']}", headers=owner).status_code == 204
    assert repository.jobs == {}

    mine = client.get("/api/v1/recruiter/jobs", headers=owner)
    assert mine.status_code == 200
    assert mine.json() == []


def test_application_status_patch(client: TestClient) -> None:
    owner = bearer("recruiter-1", Role.RECRUITER)
    applicant = bearer("applicant-1", Role.APPLICANT)
    job = client.post("/api/v1/jobs", json=job_payload(), headers=owner).json()
    application = client.post("/api/v1/applications/apply", data={"job_id": job["id"]}, headers=applicant).json()

    assert client.patch(f"/api/v1/applications/{application['id']}", json={"status": "accepted"}, headers=applicant).status_code == 403
    accepted = client.patch(
        f"/api/v1/applications/{application['id']}",
        json={"status": "accepted", "date_of_joining": "2030-02-01"},
        headers=owner,
    )
    assert accepted.status_code == 200
    assert accepted.json()["status"] == "accepted"
    assert accepted.json()["date_of_joining"] == "2030-02-01"


def test_resume_with_disallowed_type_is_rejected(client: TestClient, settings) -> None:
    owner = bearer("recruiter-1", Role.RECRUITER)
    applicant = bearer("applicant-1", Role.APPLICANT)
    job = client.post("/api/v1/jobs", json=job_payload(), headers=owner).json()

    response = client.post(
        "/api/v1/applications/apply",
        data={"job_id": job["id"]},
        files={"resume": ("resume.exe", b"MZ", "application/octet-stream")},
        headers=applicant,
    )

    assert response.status_code == 415
    assert client.get("/api/v1/applications", headers=applicant).json() == []


def test_resume_is_discarded_when_application_conflicts(client: TestClient, settings) -> None:
    owner = bearer("recruiter-1", Role.RECRUITER)
    applicant = bearer("applicant-1", Role.APPLICANT)
    job = client.post("/api/v1/jobs", json=job_payload(), headers=owner).json()
    files = {"resume": ("resume.pdf", PDF_BYTES, "application/pdf")}

    assert client.post("/api/v1/applications/apply", data={"job_id": job["id"]}, files=files, headers=applicant).status_code == 201
    again = client.post("/api/v1/applications/apply", data={"job_id": job["id"]}, files=files, headers=applicant)

    assert again.status_code == 409
    assert len(list(Path(settings.upload_dir).iterdir())) == 1


def test_stale_cookie_does_not_hide_valid_bearer(client: TestClient) -> None:
    client.cookies.set("jobPortalToken", "expired.or.garbage")

    response = client.get("/api/v1/recruiter/jobs", headers=bearer("recruiter-1", Role.RECRUITER))

    assert response.status_code == 200


def test_job_deleted_during_status_change_is_not_found(client: TestClient, repository) -> None:
    recruiter = bearer("recruiter-1", Role.RECRUITER)
    job_id = client.post("/api/v1/jobs", json=job_payload(), headers=recruiter).json()["id"]

    original_get_job = repository.get_job

    async def get_then_delete(requested_id: str):
        job = await original_get_job(requested_id)
        repository.jobs.pop(requested_id, None)
        return job

    repository.get_job = get_then_delete

    response = client.patch(f"/api/v1/jobs/{job_id}/status", json={"status": "interview"}, headers=recruiter)

    assert response.status_code == 404
