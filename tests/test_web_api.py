"""End-to-end tests for the JSON API."""
import io
import json
from pathlib import Path

import pytest
from docx import Document

SUBMISSION = {
    "title": "Telemedicine in Rural Clinics",
    "abstract": "A study of remote consultations across twelve rural clinics.",
    "keywords": "telemedicine, rural health",
    "authors": [{"name": "Jane A. Doe", "email": "jane@example.com", "affiliation": "Uni A"}],
}


def submit(client, journal_id, **overrides):
    body = dict(SUBMISSION, journal_id=journal_id, **overrides)
    return client.post("/api/submissions", json=body)


@pytest.fixture
def published(seeded, admin_client, author_client):
    """A submission that went through review and was published."""
    submission = submit(author_client, seeded["journal"]["id"]).get_json()
    admin_client.post(f"/api/admin/submissions/{submission['id']}/status", json={"status": "accepted"})
    article = admin_client.post(f"/api/admin/submissions/{submission['id']}/publish", json={
        "issue_id": seeded["issue"]["id"], "pages": "10-20", "doi": "10.1234/jp.1",
    }).get_json()
    return dict(seeded, submission=submission, article=article)


class TestHealthAndAuth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.data == b"ok"

    def test_register_logs_in(self, client):
        response = client.post("/api/auth/register", json={
            "email": "New@Example.com", "password": "long-enough-pw",
            "confirm_password": "long-enough-pw", "full_name": "New Author",
        })
        assert response.status_code == 201
        assert response.get_json()["user"]["email"] == "new@example.com"
        assert client.get("/api/auth/me").get_json()["user"]["is_admin"] is False

    def test_register_duplicate_email(self, client, create_user):
        create_user("taken@example.com")
        response = client.post("/api/auth/register", json={
            "email": "taken@example.com", "password": "long-enough-pw", "confirm_password": "long-enough-pw",
        })
        assert response.status_code == 400

    def test_register_password_mismatch(self, client):
        response = client.post("/api/auth/register", json={
            "email": "a@example.com", "password": "long-enough-pw", "confirm_password": "different-pw",
        })
        assert response.status_code == 400
        assert response.get_json()["field"] == "confirm_password"

    def test_bad_login(self, client, create_user):
        create_user("writer@example.com")
        response = client.post("/api/auth/login", json={"email": "writer@example.com", "password": "wrong"})
        assert response.status_code == 401

    def test_logout(self, author_client):
        assert author_client.post("/api/auth/logout").status_code == 200
        assert author_client.get("/api/auth/me").status_code == 401

    def test_csrf_token(self, client):
        assert client.get("/api/auth/csrf").get_json()["csrf_token"]


class TestAccessControl:

    def test_anonymous_submission(self, client, seeded):
        assert submit(client, seeded["journal"]["id"]).status_code == 401

    def test_anonymous_admin_route(self, client):
        response = client.get("/api/admin/stats")
        assert response.status_code == 401
        assert response.get_json() == {"error": "You need to be logged in."}

    def test_author_cannot_use_admin_routes(self, author_client, seeded):
        assert author_client.get("/api/admin/submissions").status_code == 403
        response = author_client.post("/api/admin/journals", json={"title": "T", "slug": "t", "issn": "1"})
        assert response.status_code == 403
        assert response.get_json()["error"] == "You don't have permission."

    def test_other_author_cannot_read_submission(self, app, author_client, seeded, create_user):
        submission = submit(author_client, seeded["journal"]["id"]).get_json()
        create_user("other@example.com")
        other = app.test_client()
        other.post("/api/auth/login", json={"email": "other@example.com", "password": "correct-horse-battery"})
        assert other.get(f"/api/submissions/{submission['id']}").status_code == 403


class TestCatalogReads:

    def test_journals(self, client, seeded):
        journals = client.get("/api/journals").get_json()
        assert [j["slug"] for j in journals] == ["web-of-medicine"]

        journal = client.get("/api/journals/web-of-medicine").get_json()
        assert journal["current_issue"]["id"] == seeded["issue"]["id"]

        issues = client.get("/api/journals/web-of-medicine/issues").get_json()
        assert [i["volume"] for i in issues] == [3]

    def test_unknown_journal(self, client):
        response = client.get("/api/journals/nope")
        assert response.status_code == 404
        assert "not found" in response.get_json()["error"]

    def test_unknown_route_is_json(self, client):
        response = client.get("/api/nothing-here")
        assert response.status_code == 404
        assert "error" in response.get_json()


class TestSubmissionFlow:

    def test_submit_and_list_mine(self, author_client, seeded):
        response = submit(author_client, seeded["journal"]["id"])
        assert response.status_code == 201
        created = response.get_json()
        assert created["status"] == "pending"
        assert created["keywords"] == ["telemedicine", "rural health"]

        mine = author_client.get("/api/submissions/mine").get_json()
        assert [s["id"] for s in mine] == [created["id"]]
        assert author_client.get(f"/api/submissions/{created['id']}").get_json()["title"] == SUBMISSION["title"]

    def test_short_abstract(self, author_client, seeded):
        response = submit(author_client, seeded["journal"]["id"], abstract="Too short")
        assert response.status_code == 400
        assert "Abstract" in response.get_json()["error"]

    def test_author_without_email(self, author_client, seeded):
        response = submit(author_client, seeded["journal"]["id"], authors=[{"name": "Jane Doe"}])
        assert response.status_code == 400

    def test_multipart_with_manuscript(self, admin_client, author_client, seeded):
        data = {
            "journal_id": seeded["journal"]["id"],
            "title": SUBMISSION["title"],
            "abstract": SUBMISSION["abstract"],
            "keywords": SUBMISSION["keywords"],
            "authors": json.dumps(SUBMISSION["authors"]),
            "manuscript": (io.BytesIO(b"%PDF-1.4 manuscript"), "paper.pdf"),
            "supplementary": (io.BytesIO(b"a,b\n1,2\n"), "data.csv"),
        }
        response = author_client.post("/api/submissions", data=data, content_type="multipart/form-data")
        assert response.status_code == 201
        created = response.get_json()
        assert created["manuscript_ref"].startswith("manuscripts/")
        assert created["manuscript_ref"].endswith(".pdf")
        assert created["supplementary_files"][0]["name"] == "data.csv"

        url = admin_client.post(f"/api/admin/submissions/{created['id']}/manuscript").get_json()["url"]
        download = admin_client.get(url)
        assert download.status_code == 200
        assert download.data == b"%PDF-1.4 manuscript"

    def test_manuscript_type_checked(self, author_client, seeded):
        data = {
            "journal_id": seeded["journal"]["id"],
            "title": SUBMISSION["title"],
            "abstract": SUBMISSION["abstract"],
            "authors": json.dumps(SUBMISSION["authors"]),
            "manuscript": (io.BytesIO(b"MZ"), "virus.exe"),
        }
        response = author_client.post("/api/submissions", data=data, content_type="multipart/form-data")
        assert response.status_code == 400

    def test_rejected_multipart_leaves_no_files(self, app, author_client, seeded):
        data = {
            "journal_id": seeded["journal"]["id"],
            "title": SUBMISSION["title"],
            "abstract": "Short",
            "authors": json.dumps(SUBMISSION["authors"]),
            "manuscript": (io.BytesIO(b"%PDF-1.4 manuscript"), "paper.pdf"),
            "supplementary": (io.BytesIO(b"a,b\n1,2\n"), "data.csv"),
        }
        response = author_client.post("/api/submissions", data=data, content_type="multipart/form-data")
        assert response.status_code == 400
        storage_dir = Path(app.extensions["journal_press"].config.STORAGE_DIR)
        assert [p for p in storage_dir.rglob("*") if p.is_file()] == []

    @pytest.mark.parametrize("overrides", [
        {"authors": [{"name": 5, "email": "x@example.com"}]},
        {"authors": [{"name": "Jane Doe", "email": ["jane@example.com"]}]},
        {"authors": {"name": "Jane Doe"}},
        {"keywords": 5},
        {"keywords": [1, 2]},
        {"title": 42},
    ])
    def test_wrongly_typed_fields(self, author_client, seeded, overrides):
        response = submit(author_client, seeded["journal"]["id"], **overrides)
        assert response.status_code == 400
        assert response.get_json()["error"]

    def test_manuscript_from_another_user(self, author_client, seeded):
        response = submit(author_client, seeded["journal"]["id"], manuscript_ref="manuscripts/someone-else/paper.pdf")
        assert response.status_code == 400
        assert "own uploads" in response.get_json()["error"]

    def test_admin_status_update(self, admin_client, author_client, seeded):
        submission = submit(author_client, seeded["journal"]["id"]).get_json()
        response = admin_client.post(f"/api/admin/submissions/{submission['id']}/status", json={
            "status": "revision_required", "editor_notes": "Please expand the methods section.",
        })
        assert response.status_code == 200
        assert response.get_json()["status"] == "revision_required"

        seen_by_author = author_client.get(f"/api/submissions/{submission['id']}").get_json()
        assert seen_by_author["editor_notes"] == "Please expand the methods section."

    def test_admin_status_unknown(self, admin_client, author_client, seeded):
        submission = submit(author_client, seeded["journal"]["id"]).get_json()
        response = admin_client.post(f"/api/admin/submissions/{submission['id']}/status", json={"status": "lost"})
        assert response.status_code == 400

    def test_admin_delete_submission(self, admin_client, author_client, seeded):
        submission = submit(author_client, seeded["journal"]["id"]).get_json()
        assert admin_client.delete(f"/api/admin/submissions/{submission['id']}").status_code == 200
        assert admin_client.delete(f"/api/admin/submissions/{submission['id']}").status_code == 404


class TestPublishedArticles:

    def test_publish(self, client, admin_client, published):
        article = published["article"]
        assert article["title"] == SUBMISSION["title"]
        assert article["issue_id"] == published["issue"]["id"]

        submissions = admin_client.get("/api/admin/submissions").get_json()
        assert submissions[0]["status"] == "published"
        assert submissions[0]["editor_notes"] == "Published to journal"

        listing = client.get(f"/api/issues/{published['issue']['id']}/articles").get_json()
        assert [a["id"] for a in listing["articles"]] == [article["id"]]

    def test_publish_twice(self, admin_client, published):
        response = admin_client.post(f"/api/admin/submissions/{published['submission']['id']}/publish", json={
            "issue_id": published["issue"]["id"],
        })
        assert response.status_code == 400

    def test_publish_bad_doi(self, admin_client, author_client, seeded):
        submission = submit(author_client, seeded["journal"]["id"]).get_json()
        response = admin_client.post(f"/api/admin/submissions/{submission['id']}/publish", json={
            "issue_id": seeded["issue"]["id"], "doi": "not-a-doi",
        })
        assert response.status_code == 400
        assert response.get_json()["field"] == "doi"

    def test_article_fetch_counts_views(self, client, published):
        article_id = published["article"]["id"]
        first = client.get(f"/api/articles/{article_id}").get_json()
        assert first["journal"]["slug"] == "web-of-medicine"
        assert first["issue"]["volume"] == 3
        second = client.get(f"/api/articles/{article_id}").get_json()
        assert second["views"] == first["views"] + 1

    def test_pdf_link_without_file(self, client, published):
        """The JSON submission carried no manuscript, so there is no PDF."""
        response = client.post(f"/api/articles/{published['article']['id']}/pdf")
        assert response.status_code == 404

    def test_pdf_link(self, app, client, admin_client, seeded):
        app.extensions["journal_press"].storage.upload("articles/final.pdf", b"%PDF final")
        article = admin_client.post("/api/admin/articles", json={
            "issue_id": seeded["issue"]["id"], "title": "Direct", "pdf_ref": "articles/final.pdf",
        }).get_json()

        url = client.post(f"/api/articles/{article['id']}/pdf").get_json()["url"]
        download = client.get(url)
        assert download.status_code == 200
        assert download.data == b"%PDF final"
        assert download.mimetype == "application/pdf"
        assert client.get(f"/api/articles/{article['id']}").get_json()["downloads"] == 1

    def test_bad_file_token(self, client):
        assert client.get("/files/not-a-real-token").status_code == 403

    def test_citation(self, client, published):
        article_id = published["article"]["id"]
        body = client.get(f"/api/articles/{article_id}/citation?style=apa").get_json()
        assert body["citation"].startswith("Doe, J. A. (")
        assert body["citation"].endswith("Web of Medicine, 3(2), 10-20. https://doi.org/10.1234/jp.1")

        everything = client.get(f"/api/articles/{article_id}/citation").get_json()["citations"]
        assert set(everything) == {"apa", "harvard", "chicago", "ieee"}

        assert client.get(f"/api/articles/{article_id}/citation?style=mla").status_code == 400

    def test_exports(self, client, published):
        article_id = published["article"]["id"]
        bib = client.get(f"/api/articles/{article_id}/export/bibtex")
        assert bib.status_code == 200
        assert bib.data.decode().startswith("@article{doe")
        assert "attachment" in bib.headers["Content-Disposition"]

        ris = client.get(f"/api/articles/{article_id}/export/ris")
        assert b"TY  - JOUR" in ris.data

        docx = client.get(f"/api/articles/{article_id}/export/docx?style=ieee")
        paragraphs = [p.text for p in Document(io.BytesIO(docx.data)).paragraphs]
        assert paragraphs[1].startswith('J. A. Doe, "Telemedicine in Rural Clinics,"')

        assert client.get(f"/api/articles/{article_id}/export/csv").status_code == 400

    def test_search(self, client, published):
        results = client.get("/api/search?q=TELEMEDICINE").get_json()
        assert [r["id"] for r in results] == [published["article"]["id"]]
        assert results[0]["journal"]["title"] == "Web of Medicine"
        assert client.get("/api/search?q=%20").get_json() == []
        assert client.get("/api/search").get_json() == []


class TestAdminCatalog:

    def test_stats(self, admin_client, published):
        assert admin_client.get("/api/admin/stats").get_json() == {
            "journals": 1, "issues": 1, "articles": 1, "pending": 0, "submissions": 1,
        }

    def test_journal_crud(self, admin_client):
        created = admin_client.post("/api/admin/journals", json={
            "title": "Journal of Tests", "slug": "journal-of-tests", "issn": "0000-0001",
        })
        assert created.status_code == 201
        journal_id = created.get_json()["id"]

        updated = admin_client.patch(f"/api/admin/journals/{journal_id}", json={"frequency": "Quarterly"})
        assert updated.get_json()["frequency"] == "Quarterly"

        duplicate = admin_client.post("/api/admin/journals", json={
            "title": "Again", "slug": "journal-of-tests", "issn": "1",
        })
        assert duplicate.status_code == 400

        assert admin_client.delete(f"/api/admin/journals/{journal_id}").status_code == 200
        assert admin_client.get("/api/journals").get_json() == []

    def test_not_json(self, admin_client):
        response = admin_client.post("/api/admin/journals", data="title=x")
        assert response.status_code == 400

    def test_single_current_issue(self, client, admin_client, seeded):
        newer = admin_client.post("/api/admin/issues", json={
            "journal_id": seeded["journal"]["id"], "volume": 3, "issue_number": 3, "year": 2024,
            "is_current": True,
        }).get_json()
        journal = client.get("/api/journals/web-of-medicine").get_json()
        assert journal["current_issue"]["id"] == newer["id"]

        issues = admin_client.get("/api/admin/issues").get_json()
        assert [i["is_current"] for i in issues] == [True, False]

    def test_delete_issue_cascades(self, client, admin_client, published):
        issue_id = published["issue"]["id"]
        assert admin_client.delete(f"/api/admin/issues/{issue_id}").status_code == 200
        assert client.get(f"/api/articles/{published['article']['id']}").status_code == 404

    def test_article_update_and_delete(self, client, admin_client, published):
        article_id = published["article"]["id"]
        response = admin_client.put(f"/api/admin/articles/{article_id}", json={"pages": "11-21"})
        assert response.get_json()["pages"] == "11-21"
        assert admin_client.put(f"/api/admin/articles/{article_id}", json={"views": 5}).status_code == 400
        assert admin_client.delete(f"/api/admin/articles/{article_id}").status_code == 200
        assert client.get(f"/api/articles/{article_id}").status_code == 404
