"""Tests for the catalog service: journals, issues, articles, counters."""
from datetime import datetime

import pytest

from journal_press.catalog import ARTICLES, ISSUES
from journal_press.config import Config
from journal_press.errors import NotFoundError, PermissionDeniedError, ValidationError
from journal_press.library import CatalogService
from journal_press.models import SubmissionStatus


class TestJournals:

    def test_create_and_lookup_by_slug(self, catalog, journal):
        assert catalog.get_journal_by_slug("web-of-medicine").id == journal.id
        assert [j.id for j in catalog.list_journals()] == [journal.id]

    def test_unknown_slug(self, catalog):
        with pytest.raises(NotFoundError):
            catalog.get_journal_by_slug("nope")

    @pytest.mark.parametrize("fields,field", [
        ({"title": "", "slug": "ok", "issn": "1"}, "title"),
        ({"title": "T", "slug": "", "issn": "1"}, "slug"),
        ({"title": "T", "slug": "ok", "issn": " "}, "issn"),
        ({"title": "T", "slug": "Bad Slug", "issn": "1"}, "slug"),
        ({"title": "T", "slug": "double--hyphen", "issn": "1"}, "slug"),
    ])
    def test_validation(self, catalog, admin, fields, field):
        with pytest.raises(ValidationError) as exc:
            catalog.create_journal(admin, **fields)
        assert exc.value.field == field

    def test_slug_unique(self, catalog, admin, journal):
        with pytest.raises(ValidationError):
            catalog.create_journal(admin, title="Copy", slug="web-of-medicine", issn="1")

    def test_unknown_field(self, catalog, admin):
        with pytest.raises(ValidationError):
            catalog.create_journal(admin, title="T", slug="t", issn="1", colour="red")

    def test_writes_need_admin(self, catalog, author, journal):
        with pytest.raises(PermissionDeniedError):
            catalog.create_journal(author, title="T", slug="t", issn="1")
        with pytest.raises(PermissionDeniedError):
            catalog.update_journal(author, journal.id, title="New")
        with pytest.raises(PermissionDeniedError):
            catalog.delete_journal(None, journal.id)

    def test_update(self, catalog, admin, journal):
        updated = catalog.update_journal(admin, journal.id, title="Web of Medicine Review", scope="Clinical")
        assert updated.title == "Web of Medicine Review"
        assert updated.scope == "Clinical"
        assert updated.slug == journal.slug

    def test_slug_frozen_once_issues_exist(self, catalog, admin, journal, issue):
        with pytest.raises(ValidationError):
            catalog.update_journal(admin, journal.id, slug="renamed")

    def test_delete_cascades(self, catalog, store, admin, journal, issue):
        catalog.create_article(admin, issue_id=issue.id, title="A", authors=[{"name": "Jane Doe"}])
        catalog.delete_journal(admin, journal.id)
        assert store.record_count(ISSUES) == 0
        assert store.record_count(ARTICLES) == 0


class TestIssues:

    def test_issue_defaults(self, issue):
        assert issue.label == "Vol. 3, Issue 2 (2024)"
        assert issue.is_current is True
        assert issue.published_at is not None

    def test_positive_numbers(self, catalog, admin, journal):
        with pytest.raises(ValidationError) as exc:
            catalog.create_issue(admin, journal_id=journal.id, volume=0, issue_number=1, year=2024)
        assert exc.value.field == "volume"
        with pytest.raises(ValidationError):
            catalog.create_issue(admin, journal_id=journal.id, volume="three", issue_number=1, year=2024)

    def test_unknown_journal(self, catalog, admin):
        with pytest.raises(NotFoundError):
            catalog.create_issue(admin, journal_id="missing", volume=1, issue_number=1, year=2024)

    def test_duplicate_number(self, catalog, admin, journal, issue):
        with pytest.raises(ValidationError):
            catalog.create_issue(admin, journal_id=journal.id, volume=3, issue_number=2, year=2025)

    def test_single_current_issue(self, catalog, admin, journal, issue):
        newer = catalog.create_issue(
            admin, journal_id=journal.id, volume=3, issue_number=3, year=2024, is_current="true"
        )
        assert catalog.current_issue(journal.id).id == newer.id
        assert catalog.get_issue(issue.id).is_current is False

    def test_multiple_current_when_not_enforced(self, store, storage, admin, journal, issue):
        relaxed = CatalogService(store, storage, Config(ENFORCE_SINGLE_CURRENT_ISSUE=False))
        relaxed.create_issue(admin, journal_id=journal.id, volume=3, issue_number=3, year=2024, is_current=True)
        assert relaxed.get_issue(issue.id).is_current is True

    def test_update_to_current(self, catalog, admin, journal, issue):
        other = catalog.create_issue(admin, journal_id=journal.id, volume=3, issue_number=3, year=2024)
        catalog.update_issue(admin, other.id, is_current=True)
        assert catalog.current_issue(journal.id).id == other.id
        assert catalog.get_issue(issue.id).is_current is False

    def test_published_at_from_iso_string(self, catalog, admin, journal):
        created = catalog.create_issue(
            admin, journal_id=journal.id, volume=1, issue_number=1, year=2020,
            published_at="2020-03-01T00:00:00Z",
        )
        assert created.published_at == datetime(2020, 3, 1)

    def test_issues_newest_first(self, catalog, admin, journal, issue):
        catalog.create_issue(admin, journal_id=journal.id, volume=1, issue_number=1, year=2021)
        catalog.create_issue(admin, journal_id=journal.id, volume=4, issue_number=1, year=2025)
        assert [i.year for i in catalog.list_journal_issues(journal.id)] == [2025, 2024, 2021]

    def test_delete_issue_removes_articles(self, catalog, store, admin, issue):
        catalog.create_article(admin, issue_id=issue.id, title="A", authors=[{"name": "Jane Doe"}])
        catalog.delete_issue(admin, issue.id)
        assert store.record_count(ARTICLES) == 0


class TestArticles:

    def test_create_direct(self, catalog, admin, issue):
        article = catalog.create_article(
            admin, issue_id=issue.id, title="Direct", keywords="a, b",
            authors=[{"name": "Jane Doe"}], pdf_ref="articles/direct.pdf",
        )
        assert article.keywords == ["a", "b"]
        assert article.published_at is not None
        assert catalog.list_issue_articles(issue.id)[0].id == article.id

    def test_unsafe_pdf_path(self, catalog, admin, issue):
        with pytest.raises(ValidationError):
            catalog.create_article(admin, issue_id=issue.id, title="X", pdf_ref="../x.pdf")

    def test_counters_not_editable(self, catalog, admin, issue):
        article = catalog.create_article(admin, issue_id=issue.id, title="X")
        with pytest.raises(ValidationError):
            catalog.update_article(admin, article.id, views=100)

    def test_update(self, catalog, admin, issue):
        article = catalog.create_article(admin, issue_id=issue.id, title="X")
        assert catalog.update_article(admin, article.id, doi="10.5/y").doi == "10.5/y"

    def test_delete_missing(self, catalog, admin):
        with pytest.raises(NotFoundError):
            catalog.delete_article(admin, "missing")

    def test_view_projection(self, catalog, admin, journal, issue):
        article = catalog.create_article(admin, issue_id=issue.id, title="X")
        view = catalog.get_article_view(article.id)
        assert view.journal_title == journal.title
        assert (view.volume, view.issue_number) == (3, 2)
        assert view.to_dict()["journal"]["slug"] == journal.slug


class TestCountersAndPdf:

    def test_counters_only_go_up(self, catalog, admin, issue):
        article = catalog.create_article(admin, issue_id=issue.id, title="X")
        assert catalog.record_view(article.id)
        assert catalog.record_view(article.id)
        assert catalog.record_download(article.id)
        stored = catalog.get_article(article.id)
        assert (stored.views, stored.downloads) == (2, 1)

    def test_counter_on_missing_article_is_best_effort(self, catalog):
        assert catalog.record_view("missing") is False

    def test_pdf_url_counts_download(self, catalog, storage, admin, issue):
        storage.upload("articles/x.pdf", b"%PDF")
        article = catalog.create_article(admin, issue_id=issue.id, title="X", pdf_ref="articles/x.pdf")
        url = catalog.article_pdf_url(article.id)
        assert storage.resolve_signed_token(url.rsplit("/", 1)[1]) == "articles/x.pdf"
        assert catalog.get_article(article.id).downloads == 1

    def test_pdf_missing(self, catalog, admin, issue):
        article = catalog.create_article(admin, issue_id=issue.id, title="X")
        with pytest.raises(NotFoundError) as exc:
            catalog.article_pdf_url(article.id)
        assert exc.value.message == "PDF not available"


class TestSearchAndCitations:

    def test_search_uses_catalog_order(self, catalog, admin, issue):
        older = catalog.create_article(admin, issue_id=issue.id, title="Sleep study",
                                       published_at=datetime(2020, 1, 1))
        newer = catalog.create_article(admin, issue_id=issue.id, title="Sleep again",
                                       published_at=datetime(2023, 1, 1))
        assert [a.id for a in catalog.search("sleep")] == [newer.id, older.id]

    def test_search_limit_from_config(self, store, storage, admin, issue):
        limited = CatalogService(store, storage, Config(SEARCH_RESULT_LIMIT=2))
        for i in range(4):
            limited.create_article(admin, issue_id=issue.id, title=f"Trial {i}")
        assert len(limited.search("trial")) == 2

    def test_citation(self, catalog, admin, issue):
        article = catalog.create_article(
            admin, issue_id=issue.id, title="Remote Care", authors=[{"name": "Jane A. Doe"}],
            pages="10-20", doi="10.1/x", published_at=datetime(2024, 5, 1),
        )
        assert catalog.citation(article.id, "apa") == (
            "Doe, J. A. (2024). Remote Care. Web of Medicine, 3(2), 10-20. https://doi.org/10.1/x"
        )
        assert set(catalog.citations(article.id)) == {"apa", "harvard", "chicago", "ieee"}


class TestAdminStats:

    def test_stats(self, catalog, workflow, admin, author, issue, submission_fields):
        workflow.create_submission(author, **submission_fields)
        second = workflow.create_submission(author, **submission_fields)
        workflow.update_status(admin, second.id, SubmissionStatus.UNDER_REVIEW)
        catalog.create_article(admin, issue_id=issue.id, title="X")

        assert catalog.admin_stats(admin) == {
            "journals": 1, "issues": 1, "articles": 1, "pending": 1, "submissions": 2,
        }
        assert workflow.pending_count() == 1

    def test_stats_need_admin(self, catalog, author):
        with pytest.raises(PermissionDeniedError):
            catalog.admin_stats(author)
