"""HTTP surface: status codes, bodies and error shapes."""

import io

import pytest
from PIL import Image

import config
from aggregator import GitHubAPIError
from conftest import make_portfolio


def repo(name, **fields):
    data = {"name": name, "description": None, "fork": False, "private": False,
            "html_url": f"https://github.com/octocat/{name}"}
    data.update(fields)
    return data


class TestPortfolioRoutes:

    def test_create_then_fetch_round_trip(self, client, portfolio_payload):
        resp = client.post("/api/portfolio", json=portfolio_payload)
        assert resp.status_code == 201
        body = resp.json()
        assert body["message"] == "created"

        fetched = client.get(f"/api/portfolio/{body['id']}")
        assert fetched.status_code == 200
        assert fetched.json() == portfolio_payload

    def test_second_submit_updates_same_portfolio(self, client):
        first = client.post("/api/portfolio", json=make_portfolio(skills=["Go"])).json()
        second_payload = make_portfolio(skills=["Rust"], socialMedia=[])
        resp = client.post("/api/portfolio", json=second_payload)

        assert resp.status_code == 200
        assert resp.json() == {"id": first["id"], "message": "updated"}
        assert client.get(f"/api/portfolio/{first['id']}").json() == second_payload

    def test_validation_failure(self, client):
        resp = client.post("/api/portfolio", json=make_portfolio(profilePicture="not-a-url"))
        assert resp.status_code == 400
        body = resp.json()
        assert body["message"].startswith("Validation error:")
        assert body["errors"][0]["field"] == "profilePicture"

    def test_local_profile_picture_accepted(self, client):
        resp = client.post("/api/portfolio", json=make_portfolio(profilePicture="/uploads/abc.png"))
        assert resp.status_code == 201

    def test_malformed_json_is_bad_request(self, client):
        resp = client.post(
            "/api/portfolio", content=b"{not json", headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 400

    def test_unknown_portfolio(self, client):
        resp = client.get("/api/portfolio/999999")
        assert resp.status_code == 404
        assert resp.json() == {"message": "Portfolio not found"}

    def test_non_numeric_id(self, client):
        resp = client.get("/api/portfolio/abc")
        assert resp.status_code == 400
        assert resp.json() == {"message": "Invalid portfolio ID"}

    def test_projects_in_display_order(self, client):
        projects = [
            {"title": "A", "github": "https://github.com/a/a", "order": 1},
            {"title": "B", "github": "https://github.com/a/b", "order": 0},
        ]
        portfolio_id = client.post("/api/portfolio", json=make_portfolio(projects=projects)).json()["id"]
        resp = client.get(f"/api/portfolio/{portfolio_id}/projects")
        assert [p["title"] for p in resp.json()] == ["B", "A"]

    def test_reorder_is_a_full_resubmit(self, client):
        a = {"title": "A", "github": "https://github.com/a/a", "order": 0}
        b = {"title": "B", "github": "https://github.com/a/b", "order": 1}
        c = {"title": "C", "github": "https://github.com/a/c", "order": 2}
        portfolio_id = client.post("/api/portfolio", json=make_portfolio(projects=[a, b, c])).json()["id"]

        reordered = [{**c, "order": 0}, {**a, "order": 1}, {**b, "order": 2}]
        client.post("/api/portfolio", json=make_portfolio(projects=reordered))

        stored = client.get(f"/api/portfolio/{portfolio_id}").json()["projects"]
        assert [(p["title"], p["order"]) for p in stored] == [("C", 0), ("A", 1), ("B", 2)]


class TestContactRoutes:

    def _payload(self, **overrides):
        data = {"name": "Grace", "email": "grace@example.com", "message": "Loved the projects!"}
        data.update(overrides)
        return data

    def test_contact_is_stored(self, client, mem_store):
        resp = client.post("/api/contact", json=self._payload(createdAt="2000-01-01T00:00:00Z"))
        assert resp.status_code == 201
        body = resp.json()
        assert body["message"] == "sent"
        assert not mem_store._contact_messages[body["id"]].created_at.startswith("2000")

    def test_short_message_rejected(self, client):
        resp = client.post("/api/contact", json=self._payload(message="too short"))
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["field"] == "message"

    def test_bad_email_rejected(self, client):
        resp = client.post("/api/contact", json=self._payload(email="nope"))
        assert resp.status_code == 400

    def test_owner_reads_messages(self, client):
        portfolio_id = client.post("/api/portfolio", json=make_portfolio()).json()["id"]
        client.post("/api/contact", json=self._payload(portfolioId=portfolio_id, subject="Hi"))

        login = client.post(
            "/api/login",
            json={"username": config.DEFAULT_USERNAME, "password": config.DEFAULT_PASSWORD},
        )
        client.cookies.clear()
        headers = {"Authorization": f"Bearer {login.json()['token']}"}
        resp = client.get(f"/api/portfolio/{portfolio_id}/messages", headers=headers)
        assert resp.status_code == 200
        messages = resp.json()
        assert len(messages) == 1
        assert messages[0]["subject"] == "Hi"
        assert messages[0]["portfolioId"] == portfolio_id
        assert "createdAt" in messages[0]

    def test_anonymous_visitor_cannot_read_messages(self, client):
        portfolio_id = client.post("/api/portfolio", json=make_portfolio()).json()["id"]
        client.post("/api/contact", json=self._payload(portfolioId=portfolio_id, email="visitor@private.com"))

        resp = client.get(f"/api/portfolio/{portfolio_id}/messages")
        assert resp.status_code == 401
        assert "visitor@private.com" not in resp.text


class TestGitHubRoute:

    def test_aggregates_projects(self, client, fake_github):
        fake_github.repos = [repo("fork", fork=True), repo("foo-bar", description="")]
        fake_github.details = {"foo-bar": {"topics": ["go", "cli"]}}

        resp = client.get("/api/github/octocat")
        assert resp.status_code == 200
        body = resp.json()
        assert body["githubProfile"]["login"] == "octocat"
        assert [(p["title"], p["description"]) for p in body["projects"]] == [
            ("foo bar", "Technologies: go, cli"),
        ]

    def test_unknown_user(self, client, fake_github):
        fake_github.profile_error = GitHubAPIError(404)
        resp = client.get("/api/github/ghost")
        assert resp.status_code == 404

    def test_repo_list_failure(self, client, fake_github):
        fake_github.repos_error = GitHubAPIError(500)
        resp = client.get("/api/github/octocat")
        assert resp.status_code == 500
        assert resp.json() == {"message": "Failed to fetch GitHub repositories"}

    def test_blank_username(self, client):
        assert client.get("/api/github/%20").status_code == 400
        assert client.get("/api/github/").status_code == 400

    def test_unhandled_error_is_generic(self, client, fake_github):
        fake_github.repos = [{"unexpected": "shape"}]
        resp = client.get("/api/github/octocat")
        assert resp.status_code == 500
        assert resp.json() == {"message": "Internal server error"}


def png_bytes(size=(2, 2)):
    buf = io.BytesIO()
    Image.new("RGB", size, (200, 30, 30)).save(buf, format="PNG")
    return buf.getvalue()


class TestUploadRoute:

    def test_image_saved(self, client, tmp_path):
        contents = png_bytes()
        resp = client.post(
            "/api/upload", files={"profilePicture": ("me.PNG", contents, "image/png")},
        )
        assert resp.status_code == 201
        url = resp.json()["url"]
        assert url.startswith("/uploads/") and url.endswith(".png")
        assert (tmp_path / url.rsplit("/", 1)[1]).read_bytes() == contents

    def test_extension_follows_decoded_format(self, client):
        buf = io.BytesIO()
        Image.new("RGB", (2, 2)).save(buf, format="JPEG")
        resp = client.post(
            "/api/upload", files={"profilePicture": ("photo.png", buf.getvalue(), "image/png")},
        )
        assert resp.status_code == 201
        assert resp.json()["url"].endswith(".jpg")

    def test_html_labelled_as_image_is_rejected(self, client, tmp_path):
        resp = client.post(
            "/api/upload",
            files={"profilePicture": ("evil.html", b"<script>alert(1)</script>", "image/png")},
        )
        assert resp.status_code == 400
        assert resp.json() == {"message": "Only image files are allowed"}
        assert list(tmp_path.iterdir()) == []

    def test_truncated_image_is_rejected(self, client):
        resp = client.post(
            "/api/upload", files={"profilePicture": ("me.png", png_bytes()[:20], "image/png")},
        )
        assert resp.status_code == 400

    def test_missing_file(self, client):
        assert client.post("/api/upload").status_code == 400

    def test_not_an_image(self, client):
        resp = client.post(
            "/api/upload", files={"profilePicture": ("notes.txt", b"hello", "text/plain")},
        )
        assert resp.status_code == 400
        assert resp.json() == {"message": "Only image files are allowed"}

    def test_too_large(self, client):
        big = b"0" * (config.MAX_UPLOAD_SIZE_MB * 1024 * 1024 + 1)
        resp = client.post("/api/upload", files={"profilePicture": ("big.jpg", big, "image/jpeg")})
        assert resp.status_code == 400


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


@pytest.mark.parametrize("path", ["/api/portfolio/1", "/api/portfolio/1/projects"])
def test_reads_before_any_submission(client, path):
    assert client.get(path).status_code == 404
