import pytest
from fastapi.testclient import TestClient

from conftest import JOBS_PATH, StubEnricher, jobs_blob
from jobboard.auth import AuthGateway
from jobboard.backends.memory import InMemoryBackend
from jobboard.errors import BackendUnavailable, GitHubAuthError, VersionConflict
from jobboard.main import create_app
from jobboard.models import REQUIRED_FIELDS_MESSAGE, Enrichment, Identity
from jobboard.store import VersionedBlobStore

JOB = {"title": "Backend Dev", "description": "APIs", "companyName": "Acme", "location": "Remote"}


class RejectingBackend(InMemoryBackend):
    def put(self, path, content, expected_version):
        raise VersionConflict(path, expected_version)


class UnreachableBackend(InMemoryBackend):
    def get(self, path):
        raise BackendUnavailable("timeout")


class StubIssues:
    def __init__(self):
        self.created = []

    def list_issues(self, state="open", page=1):
        return [{"number": 1, "title": "Broken link", "state": state}]

    def create_issue(self, title, body=None, labels=None, opened_by=None):
        issue = {"number": 2, "title": title, "body": body, "labels": labels, "opened_by": opened_by}
        self.created.append(issue)
        return issue


class StubAuth(AuthGateway):
    def login(self, code):
        if code == "bad":
            raise GitHubAuthError("bad_verification_code")
        user = {"id": 42, "username": "octo", "name": "Octo", "email": None}
        return user, self.issue_token(Identity(42, "octo"))


@pytest.fixture
def backend():
    existing = [
        {"id": 1, "title": "Old", "description": "d", "companyName": "C", "userId": 42},
        {"id": 2, "title": "Other", "description": "d", "companyName": "C", "userId": 7},
    ]
    return InMemoryBackend({JOBS_PATH: jobs_blob(existing)})


@pytest.fixture
def enricher():
    return StubEnricher(Enrichment(company_summary="Acme makes anvils.", is_spam=False))


@pytest.fixture
def issues():
    return StubIssues()


def make_client(settings, backend, enricher=None, issues=None):
    store = VersionedBlobStore(backend, path=JOBS_PATH, backoff=0)
    app = create_app(
        settings,
        store=store,
        auth=StubAuth(settings),
        enricher=enricher or StubEnricher(),
        issues=issues,
    )
    return TestClient(app)


@pytest.fixture
def client(settings, backend, enricher, issues):
    return make_client(settings, backend, enricher, issues)


@pytest.fixture
def auth_headers(settings):
    token = AuthGateway(settings).issue_token(Identity(user_id=42, username="octo"))
    return {"Authorization": f"Bearer {token}"}


def test_health(client):
    assert client.get("/health").json() == {"status": "OK"}


def test_github_login_url(client):
    url = client.get("/auth/github").json()["url"]
    assert url.startswith("https://github.com/login/oauth/authorize?client_id=client-123")


def test_github_callback(client):
    resp = client.post("/auth/github/callback", json={"code": "good"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["user"]["username"] == "octo"

    verified = client.get("/auth/verify", headers={"Authorization": f"Bearer {body['token']}"})
    assert verified.json() == {"user": {"userId": 42, "username": "octo"}}


def test_github_callback_failure(client):
    resp = client.post("/auth/github/callback", json={"code": "bad"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Authentication failed"}


def test_verify_requires_token(client):
    assert client.get("/auth/verify").status_code == 401
    assert client.get("/auth/verify", headers={"Authorization": "Bearer nope"}).status_code == 403


def test_list_jobs(client):
    jobs = client.get("/api/jobs").json()
    assert [j["id"] for j in jobs] == [1, 2]
    assert client.get("/api/public/jobs").json() == jobs


def test_list_jobs_for_user(client):
    jobs = client.get("/api/jobs", params={"userId": "42"}).json()
    assert [j["title"] for j in jobs] == ["Old"]


def test_get_job(client):
    assert client.get("/api/jobs/2").json()["title"] == "Other"
    resp = client.get("/api/jobs/99")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Job not found"}


@pytest.mark.parametrize("job_id", ["abc", "1.5", "-"])
def test_get_job_with_non_numeric_id(client, job_id):
    resp = client.get(f"/api/jobs/{job_id}")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Job not found"}


def test_create_job_accepts_numeric_fields(client, auth_headers):
    resp = client.post("/api/jobs", json={**JOB, "title": 404, "salaryRange": 120000, "domain": True}, headers=auth_headers)
    assert resp.status_code == 201
    job = resp.json()["job"]
    assert job["title"] == "404"
    assert job["salaryRange"] == "120000"
    assert job["domain"] == "true"


def test_create_job_missing_required_with_numeric_fields(client, auth_headers):
    resp = client.post("/api/jobs", json={"title": 1, "salaryRange": 5}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json() == {"error": REQUIRED_FIELDS_MESSAGE}


def test_create_job_requires_auth(client):
    assert client.post("/api/jobs", json=JOB).status_code == 401
    assert client.post("/api/jobs", json=JOB, headers={"Authorization": "Bearer x.y.z"}).status_code == 403


def test_create_job_validates_required_fields(client, auth_headers, backend):
    before = backend.raw(JOBS_PATH)
    resp = client.post("/api/jobs", json={"title": "Only title", "description": "  "}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json() == {"error": REQUIRED_FIELDS_MESSAGE}
    assert backend.raw(JOBS_PATH) == before


def test_create_job(client, auth_headers, enricher):
    resp = client.post("/api/jobs", json={**JOB, "careerLink": "https://acme.test/careers"}, headers=auth_headers)

    assert resp.status_code == 201
    body = resp.json()
    assert body["message"] == "Job created successfully"
    job = body["job"]
    assert job["id"] == 3
    assert job["userId"] == 42
    assert job["createdBy"] == "octo"
    assert job["companySummary"] == "Acme makes anvils."
    assert job["isSpam"] is False
    assert job["location"] == "Remote"
    assert enricher.calls[0]["careerLink"] == "https://acme.test/careers"

    assert [j["id"] for j in client.get("/api/jobs").json()] == [1, 2, 3]


def test_create_job_keeps_explicit_attribution(client, auth_headers):
    resp = client.post("/api/jobs", json={**JOB, "userId": "team-9", "createdBy": "recruiter"}, headers=auth_headers)
    job = resp.json()["job"]
    assert job["userId"] == "team-9"
    assert job["createdBy"] == "recruiter"


def test_create_job_with_failing_enrichment(settings, backend, auth_headers):
    client = make_client(settings, backend, enricher=StubEnricher(error=TimeoutError("llm")))
    job = client.post("/api/jobs", json=JOB, headers=auth_headers).json()["job"]
    assert job["companySummary"] is None
    assert job["isSpam"] is False


def test_create_job_conflict_exhausted(settings, auth_headers):
    client = make_client(settings, RejectingBackend())
    resp = client.post("/api/jobs", json=JOB, headers=auth_headers)
    assert resp.status_code == 409
    assert resp.json()["error"] == "Jobs were modified concurrently, please retry"


def test_backend_unavailable(settings):
    client = make_client(settings, UnreachableBackend())
    resp = client.get("/api/public/jobs")
    assert resp.status_code == 502
    assert "timeout" in resp.json()["details"]


def test_corrupt_blob(settings):
    client = make_client(settings, InMemoryBackend({JOBS_PATH: b"{oops"}))
    resp = client.get("/api/jobs")
    assert resp.status_code == 500
    assert resp.json()["error"] == "Jobs file is corrupt"


def test_cors_allows_client_origin(client):
    resp = client.options(
        "/api/jobs",
        headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "POST"},
    )
    assert resp.headers["access-control-allow-origin"] == "http://localhost:3000"
    assert resp.headers["access-control-allow-credentials"] == "true"


def test_list_issues(client):
    assert client.get("/api/issues").json()[0]["title"] == "Broken link"


def test_create_issue(client, auth_headers, issues):
    resp = client.post("/api/issues", json={"title": "Typo", "body": "on /jobs"}, headers=auth_headers)
    assert resp.status_code == 201
    assert issues.created[0]["opened_by"] == "octo"


def test_issues_not_configured(settings, backend):
    client = make_client(settings, backend, issues=None)
    assert client.get("/api/issues").status_code == 503
