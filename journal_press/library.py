"""
Catalog service: journals, issues and articles.

Reads are open to everyone; writes are admin only. Deletes cascade down the
journal -> issue -> article hierarchy inside one atomic block.
"""
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .access import require_admin
from .catalog import ARTICLES, ISSUES, JOURNALS, SUBMISSIONS, CatalogStore
from .citation import CitationStyle, format_citation
from .config import Config
from .errors import JournalPressError, NotFoundError, ValidationError
from .logging_setup import log_operation
from .models import Article, ArticleView, CurrentUser, Issue, Journal, SubmissionStatus, utcnow
from .search import search_articles
from .storage import FileStorage, validate_storage_path
from .workflow import parse_authors, parse_keywords

logger = logging.getLogger(__name__)

SLUG_PATTERN = re.compile(r'^[a-z0-9]+(?:-[a-z0-9]+)*$')

JOURNAL_FIELDS = (
    "title", "subtitle", "description", "issn", "impact_factor", "frequency",
    "slug", "editor_in_chief", "scope", "image_ref",
)
ISSUE_FIELDS = ("journal_id", "volume", "issue_number", "year", "month", "is_current", "published_at")
ARTICLE_FIELDS = ("issue_id", "title", "abstract", "keywords", "authors", "pdf_ref", "doi", "pages", "published_at")


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _positive_int(value: Any, field: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field.replace('_', ' ').capitalize()} must be a whole number.", field=field)
    if number <= 0:
        raise ValidationError(f"{field.replace('_', ' ').capitalize()} must be positive.", field=field)
    return number


def _timestamp(value: Any, field: str) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"{field.replace('_', ' ').capitalize()} must be an ISO date.", field=field)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes", "on"}
    return bool(value)


def _pick(fields: Dict[str, Any], allowed) -> Dict[str, Any]:
    unknown = sorted(set(fields) - set(allowed))
    if unknown:
        raise ValidationError(f"Unknown field(s): {', '.join(unknown)}")
    return dict(fields)


class CatalogService:
    """Journal, issue and article operations for readers and admins."""

    def __init__(self, store: CatalogStore, storage: Optional[FileStorage] = None,
                 config: Optional[Config] = None):
        self.store = store
        self.storage = storage
        self.config = config or Config()

    # ------------------------------------------------------------------
    # Journals
    # ------------------------------------------------------------------

    def list_journals(self) -> List[Journal]:
        return self.store.list(JOURNALS, order_by=("created_at",))

    def get_journal(self, journal_id: str) -> Journal:
        return self.store.require(JOURNALS, journal_id)

    def get_journal_by_slug(self, slug: str) -> Journal:
        matches = self.store.list(JOURNALS, {"slug": slug}) if slug else []
        if not matches:
            raise NotFoundError("journal", slug)
        return matches[0]

    def _validate_journal(self, values: Dict[str, Any], journal_id: Optional[str] = None) -> None:
        for required, label in (("title", "Title"), ("slug", "Slug"), ("issn", "ISSN")):
            if not values.get(required):
                raise ValidationError(f"{label} is required.", field=required)
        if not SLUG_PATTERN.match(values["slug"]):
            raise ValidationError(
                "Slug may contain only lowercase letters, digits and single hyphens.", field="slug"
            )
        for other in self.store.list(JOURNALS, {"slug": values["slug"]}):
            if other.id != journal_id:
                raise ValidationError(f"Slug '{values['slug']}' is already in use.", field="slug")

    def create_journal(self, user: Optional[CurrentUser], **fields) -> Journal:
        require_admin(user)
        values = {k: _clean_text(v) for k, v in _pick(fields, JOURNAL_FIELDS).items()}
        self._validate_journal(values)
        journal = self.store.insert(JOURNALS, Journal(**values))
        log_operation("Journal created", f"{journal.id} ({journal.slug})")
        return journal

    def update_journal(self, user: Optional[CurrentUser], journal_id: str, **fields) -> Journal:
        require_admin(user)
        current = self.get_journal(journal_id)
        changes = {k: _clean_text(v) for k, v in _pick(fields, JOURNAL_FIELDS).items()}
        merged = {name: getattr(current, name) for name in JOURNAL_FIELDS}
        merged.update(changes)
        self._validate_journal(merged, journal_id)

        if merged["slug"] != current.slug and self.store.list(ISSUES, {"journal_id": journal_id}):
            raise ValidationError("Slug cannot change once the journal has issues.", field="slug")

        changes["updated_at"] = utcnow()
        journal = self.store.update(JOURNALS, journal_id, changes)
        log_operation("Journal updated", journal_id)
        return journal

    def delete_journal(self, user: Optional[CurrentUser], journal_id: str) -> None:
        """Delete a journal with all its issues and their articles."""
        require_admin(user)
        self.get_journal(journal_id)
        with self.store.atomic():
            for issue in self.store.list(ISSUES, {"journal_id": journal_id}):
                self._delete_issue_tree(issue.id)
            self.store.delete(JOURNALS, journal_id)
        log_operation("Journal deleted", journal_id, level=logging.WARNING)

    # ------------------------------------------------------------------
    # Issues
    # ------------------------------------------------------------------

    def list_journal_issues(self, journal_id: str) -> List[Issue]:
        return self.store.list(ISSUES, {"journal_id": journal_id}, order_by=("-year", "-issue_number"))

    def list_all_issues(self) -> List[Issue]:
        return self.store.list(ISSUES, order_by=("-year", "-issue_number"))

    def get_issue(self, issue_id: str) -> Issue:
        return self.store.require(ISSUES, issue_id)

    def current_issue(self, journal_id: str) -> Optional[Issue]:
        current = self.store.list(ISSUES, {"journal_id": journal_id, "is_current": True},
                                  order_by=("-year", "-issue_number"))
        return current[0] if current else None

    def _normalise_issue(self, values: Dict[str, Any]) -> Dict[str, Any]:
        if not values.get("journal_id"):
            raise ValidationError("Journal is required.", field="journal_id")
        self.get_journal(values["journal_id"])
        for name in ("volume", "issue_number", "year"):
            values[name] = _positive_int(values.get(name), name)
        values["month"] = _clean_text(values.get("month"))
        values["is_current"] = _flag(values.get("is_current"))
        values["published_at"] = _timestamp(values.get("published_at"), "published_at")
        return values

    def _check_issue_unique(self, values: Dict[str, Any], issue_id: Optional[str] = None) -> None:
        clashes = self.store.list(ISSUES, {
            "journal_id": values["journal_id"],
            "volume": values["volume"],
            "issue_number": values["issue_number"],
        })
        if any(i.id != issue_id for i in clashes):
            raise ValidationError(
                f"Vol. {values['volume']}, Issue {values['issue_number']} already exists for this journal."
            )

    def _clear_other_current(self, journal_id: str, keep_id: str) -> None:
        for other in self.store.list(ISSUES, {"journal_id": journal_id, "is_current": True}):
            if other.id != keep_id:
                self.store.update(ISSUES, other.id, {"is_current": False})

    def create_issue(self, user: Optional[CurrentUser], **fields) -> Issue:
        require_admin(user)
        values = self._normalise_issue(_pick(fields, ISSUE_FIELDS))
        self._check_issue_unique(values)
        values["published_at"] = values.get("published_at") or utcnow()
        with self.store.atomic():
            issue = self.store.insert(ISSUES, Issue(**values))
            if issue.is_current and self.config.ENFORCE_SINGLE_CURRENT_ISSUE:
                self._clear_other_current(issue.journal_id, issue.id)
        log_operation("Issue created", f"{issue.id} ({issue.label})")
        return issue

    def update_issue(self, user: Optional[CurrentUser], issue_id: str, **fields) -> Issue:
        require_admin(user)
        current = self.get_issue(issue_id)
        merged = {name: getattr(current, name) for name in ISSUE_FIELDS}
        merged.update(_pick(fields, ISSUE_FIELDS))
        values = self._normalise_issue(merged)
        self._check_issue_unique(values, issue_id)
        with self.store.atomic():
            issue = self.store.update(ISSUES, issue_id, values)
            if issue.is_current and self.config.ENFORCE_SINGLE_CURRENT_ISSUE:
                self._clear_other_current(issue.journal_id, issue.id)
        log_operation("Issue updated", issue_id)
        return issue

    def _delete_issue_tree(self, issue_id: str) -> None:
        for article in self.store.list(ARTICLES, {"issue_id": issue_id}):
            self.store.delete(ARTICLES, article.id)
        self.store.delete(ISSUES, issue_id)

    def delete_issue(self, user: Optional[CurrentUser], issue_id: str) -> None:
        """Delete an issue and all its articles."""
        require_admin(user)
        self.get_issue(issue_id)
        with self.store.atomic():
            self._delete_issue_tree(issue_id)
        log_operation("Issue deleted", issue_id, level=logging.WARNING)

    # ------------------------------------------------------------------
    # Articles
    # ------------------------------------------------------------------

    def list_issue_articles(self, issue_id: str) -> List[Article]:
        return self.store.list(ARTICLES, {"issue_id": issue_id}, order_by=("created_at",))

    def list_all_articles(self) -> List[Article]:
        """Every article, most recently published first."""
        return self.store.list(ARTICLES, order_by=("-published_at",))

    def get_article(self, article_id: str) -> Article:
        return self.store.require(ARTICLES, article_id)

    def get_article_view(self, article_id: str) -> ArticleView:
        article = self.get_article(article_id)
        issue = self.store.get(ISSUES, article.issue_id)
        journal = self.store.get(JOURNALS, issue.journal_id) if issue else None
        return ArticleView(article=article, issue=issue, journal=journal)

    def _normalise_article(self, values: Dict[str, Any]) -> Dict[str, Any]:
        if not values.get("issue_id"):
            raise ValidationError("Issue is required.", field="issue_id")
        self.get_issue(values["issue_id"])
        values["title"] = _clean_text(values.get("title"))
        if not values["title"]:
            raise ValidationError("Title is required.", field="title")
        values["abstract"] = (values.get("abstract") or "").strip()
        values["keywords"] = parse_keywords(values.get("keywords"))
        values["authors"] = parse_authors(values.get("authors") or [])
        if any(not a.name for a in values["authors"]):
            raise ValidationError("Every author needs a name.", field="authors")
        for name in ("pdf_ref", "doi", "pages"):
            values[name] = _clean_text(values.get(name))
        if values["pdf_ref"]:
            validate_storage_path(values["pdf_ref"])
        values["published_at"] = _timestamp(values.get("published_at"), "published_at")
        return values

    def create_article(self, user: Optional[CurrentUser], **fields) -> Article:
        """Create an article directly, without a submission."""
        require_admin(user)
        values = self._normalise_article(_pick(fields, ARTICLE_FIELDS))
        values["published_at"] = values.get("published_at") or utcnow()
        article = self.store.insert(ARTICLES, Article(**values))
        log_operation("Article created", f"{article.id} in issue {article.issue_id}")
        return article

    def update_article(self, user: Optional[CurrentUser], article_id: str, **fields) -> Article:
        """Edit article metadata. View and download counters are not editable."""
        require_admin(user)
        current = self.get_article(article_id)
        merged = {name: getattr(current, name) for name in ARTICLE_FIELDS}
        merged.update(_pick(fields, ARTICLE_FIELDS))
        values = self._normalise_article(merged)
        article = self.store.update(ARTICLES, article_id, values)
        log_operation("Article updated", article_id)
        return article

    def delete_article(self, user: Optional[CurrentUser], article_id: str) -> None:
        require_admin(user)
        if not self.store.delete(ARTICLES, article_id):
            raise NotFoundError("article", article_id)
        log_operation("Article deleted", article_id, level=logging.WARNING)

    # ------------------------------------------------------------------
    # Counters (best effort)
    # ------------------------------------------------------------------

    def _bump(self, article_id: str, counter: str) -> bool:
        try:
            with self.store.atomic():
                article = self.store.require(ARTICLES, article_id)
                self.store.update(ARTICLES, article_id, {counter: max(getattr(article, counter), 0) + 1})
            return True
        except JournalPressError as e:
            logger.warning(f"Could not record {counter[:-1]} for article {article_id}: {e}")
            return False

    def record_view(self, article_id: str) -> bool:
        return self._bump(article_id, "views")

    def record_download(self, article_id: str) -> bool:
        return self._bump(article_id, "downloads")

    # ------------------------------------------------------------------
    # PDFs, search, citations
    # ------------------------------------------------------------------

    def article_pdf_url(self, article_id: str, ttl_seconds: Optional[int] = None) -> str:
        """
        Return a short-lived signed URL for an article's PDF and count a download.

        Raises:
            NotFoundError: If the article or its PDF is missing
            ValidationError: If the stored path is unsafe
        """
        article = self.get_article(article_id)
        if not article.pdf_ref or self.storage is None:
            raise NotFoundError("pdf", article_id, "PDF not available")
        validate_storage_path(article.pdf_ref)
        url = self.storage.create_signed_url(article.pdf_ref, ttl_seconds or self.config.SIGNED_URL_TTL)
        self.record_download(article_id)
        return url

    def search(self, query: str) -> List[Article]:
        return search_articles(query, self.list_all_articles(), limit=self.config.SEARCH_RESULT_LIMIT)

    def citation(self, article_id: str, style: str) -> str:
        return format_citation(self.get_article_view(article_id), style)

    def citations(self, article_id: str) -> Dict[str, str]:
        view = self.get_article_view(article_id)
        return {s.value: format_citation(view, s) for s in CitationStyle}

    # ------------------------------------------------------------------
    # Admin dashboard
    # ------------------------------------------------------------------

    def admin_stats(self, user: Optional[CurrentUser]) -> Dict[str, int]:
        require_admin(user)
        submissions = self.store.list(SUBMISSIONS)
        return {
            "journals": len(self.store.list(JOURNALS)),
            "issues": len(self.store.list(ISSUES)),
            "articles": len(self.store.list(ARTICLES)),
            "pending": sum(1 for s in submissions if s.status == SubmissionStatus.PENDING),
            "submissions": len(submissions),
        }
