"""
Submission workflow engine.

Holds the submission lifecycle: authors create submissions, admins move
them between statuses, and publishing turns an accepted submission into a
catalog article.

By default any status may follow any other; the admin status editor relies
on that. Set Config.STRICT_STATUS_TRANSITIONS to enforce ALLOWED_TRANSITIONS
instead.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Union

from .access import require_admin, require_user
from .catalog import ARTICLES, ISSUES, JOURNALS, SUBMISSIONS, CatalogStore
from .config import PUBLISHED_NOTE, Config
from .errors import NotFoundError, PermissionDeniedError, ValidationError
from .logging_setup import log_operation
from .models import (
    Article,
    Author,
    CurrentUser,
    Submission,
    SubmissionStatus,
    SupplementaryFile,
    utcnow,
)
from .storage import manuscript_prefix, validate_storage_path

S = SubmissionStatus

ALLOWED_TRANSITIONS: Dict[SubmissionStatus, frozenset] = {
    S.PENDING: frozenset({S.UNDER_REVIEW, S.REJECTED}),
    S.UNDER_REVIEW: frozenset({S.REVISION_REQUIRED, S.ACCEPTED, S.REJECTED}),
    S.REVISION_REQUIRED: frozenset({S.PENDING, S.UNDER_REVIEW, S.REJECTED}),
    S.ACCEPTED: frozenset({S.REJECTED}),
    S.REJECTED: frozenset(),
    S.PUBLISHED: frozenset(),
}


def parse_status(value: Union[str, SubmissionStatus]) -> SubmissionStatus:
    if isinstance(value, SubmissionStatus):
        return value
    try:
        return SubmissionStatus((value or "").strip().lower())
    except ValueError:
        allowed = ", ".join(s.value for s in SubmissionStatus)
        raise ValidationError(f"Unknown status '{value}'. Choose one of: {allowed}", field="status")


def parse_keywords(keywords: Union[None, str, Iterable[str]]) -> List[str]:
    """Accept a list or the comma-separated form field; drop blanks."""
    if keywords is None:
        return []
    if isinstance(keywords, str):
        keywords = keywords.split(",")
    elif not isinstance(keywords, (list, tuple)):
        raise ValidationError("Keywords must be a list or a comma-separated string.", field="keywords")
    if any(k is not None and not isinstance(k, str) for k in keywords):
        raise ValidationError("Each keyword must be text.", field="keywords")
    return [k.strip() for k in keywords if k and k.strip()]


AUTHOR_FIELDS = ("name", "email", "affiliation")


def parse_authors(authors: Iterable[Union[Author, Dict[str, Any]]]) -> List[Author]:
    """Accept Author objects or {name, email, affiliation} dicts with text values."""
    if not authors:
        return []
    if not isinstance(authors, (list, tuple)):
        raise ValidationError("Authors must be a list of {name, email, affiliation}.", field="authors")
    parsed = []
    for author in authors:
        if isinstance(author, Author):
            author = {name: getattr(author, name) for name in AUTHOR_FIELDS}
        if not isinstance(author, dict):
            raise ValidationError("Each author must have a name and email", field="authors")
        if any(author.get(name) is not None and not isinstance(author.get(name), str)
               for name in AUTHOR_FIELDS):
            raise ValidationError("Author name, email and affiliation must be text.", field="authors")
        parsed.append(Author.from_dict(author))
    return parsed


def _text(value: Any, field: str) -> str:
    """Strip a text field; anything that is not text is a ValidationError."""
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{field.replace('_', ' ').capitalize()} must be text.", field=field)
    return value.strip()


def _blank_to_none(value: Optional[str], field: str = "path") -> Optional[str]:
    return _text(value, field) or None


class SubmissionWorkflow:
    """
    Enforces the submission state machine on top of a catalog store.

    Every operation either completes or raises one of the errors in
    journal_press.errors; nothing is retried here.
    """

    def __init__(self, store: CatalogStore, config: Optional[Config] = None):
        self.store = store
        self.config = config or Config()

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def validate_submission(self, journal_id: str, title: str, abstract: str,
                            authors: List[Author]) -> None:
        """
        Check the fields every new submission needs.

        Raises:
            ValidationError: On the first missing or malformed field
        """
        if not journal_id:
            raise ValidationError("Please choose a journal.", field="journal_id")
        if not title:
            raise ValidationError("Title is required.", field="title")
        if not abstract:
            raise ValidationError("Abstract is required.", field="abstract")
        if len(abstract) < self.config.MIN_ABSTRACT_LENGTH:
            raise ValidationError(
                f"Abstract must be at least {self.config.MIN_ABSTRACT_LENGTH} characters.",
                field="abstract",
            )
        if not authors:
            raise ValidationError("At least one author is required.", field="authors")
        if any(not a.name or not a.email for a in authors):
            raise ValidationError(
                "Please provide name and email for all authors.", field="authors"
            )

    def create_submission(
        self,
        user: Optional[CurrentUser],
        journal_id: str,
        title: str,
        abstract: str,
        keywords: Union[None, str, Iterable[str]],
        authors: Iterable[Union[Author, Dict[str, Any]]],
        manuscript_ref: Optional[str] = None,
        supplementary_files: Optional[List[SupplementaryFile]] = None,
    ) -> Submission:
        """
        Create a pending submission owned by ``user``.

        Raises:
            PermissionDeniedError: If nobody is logged in
            ValidationError: If a required field is missing or malformed, or
                manuscript_ref is not under the user's own upload prefix
            NotFoundError: If the journal does not exist
        """
        require_user(user)
        journal_id = _text(journal_id, "journal_id")
        title = _text(title, "title")
        abstract = _text(abstract, "abstract")
        author_list = parse_authors(authors)
        keyword_list = parse_keywords(keywords)
        self.validate_submission(journal_id, title, abstract, author_list)
        self.store.require(JOURNALS, journal_id)
        manuscript_ref = _blank_to_none(manuscript_ref, "manuscript_ref")
        if manuscript_ref:
            validate_storage_path(manuscript_ref)
            if not manuscript_ref.startswith(manuscript_prefix(user.id) + "/"):
                raise ValidationError("Manuscript must be one of your own uploads.", field="manuscript_ref")

        now = utcnow()
        submission = Submission(
            user_id=user.id,
            journal_id=journal_id,
            title=title,
            abstract=abstract,
            keywords=keyword_list,
            authors=author_list,
            manuscript_ref=manuscript_ref,
            supplementary_files=list(supplementary_files or []),
            status=SubmissionStatus.PENDING,
            submitted_at=now,
            updated_at=now,
        )
        created = self.store.insert(SUBMISSIONS, submission)
        log_operation("Submission created", f"{created.id} by user {user.id} for journal {journal_id}")
        return created

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_submission(self, user: Optional[CurrentUser], submission_id: str) -> Submission:
        """Owners see their own submissions; admins see all of them."""
        require_user(user)
        submission = self.store.require(SUBMISSIONS, submission_id)
        if submission.user_id != user.id and not user.is_admin:
            raise PermissionDeniedError("You don't have permission.")
        return submission

    def list_user_submissions(self, user: Optional[CurrentUser]) -> List[Submission]:
        require_user(user)
        return self.store.list(SUBMISSIONS, {"user_id": user.id}, order_by=("-submitted_at",))

    def list_all_submissions(self, user: Optional[CurrentUser]) -> List[Submission]:
        require_admin(user)
        return self.store.list(SUBMISSIONS, order_by=("-submitted_at",))

    def pending_count(self) -> int:
        return len(self.store.list(SUBMISSIONS, {"status": SubmissionStatus.PENDING}))

    # ------------------------------------------------------------------
    # Status changes
    # ------------------------------------------------------------------

    def check_transition(self, current: SubmissionStatus, new: SubmissionStatus) -> None:
        """
        Enforce ALLOWED_TRANSITIONS when strict transitions are configured.

        A same-status update (notes only) is always allowed.
        """
        if not self.config.STRICT_STATUS_TRANSITIONS or current == new:
            return
        if new not in ALLOWED_TRANSITIONS[current]:
            raise ValidationError(
                f"Cannot move a submission from '{current.value}' to '{new.value}'.",
                field="status",
            )

    def update_status(
        self,
        user: Optional[CurrentUser],
        submission_id: str,
        new_status: Union[str, SubmissionStatus],
        editor_notes: Optional[str] = None,
    ) -> Submission:
        """
        Set a submission's status and, when given, its editor notes.

        Raises:
            PermissionDeniedError: If the user is not an admin
            ValidationError: If the status is unknown (or not allowed in strict mode)
            NotFoundError: If the submission does not exist
        """
        require_admin(user)
        status = parse_status(new_status)
        submission = self.store.require(SUBMISSIONS, submission_id)
        self.check_transition(submission.status, status)

        changes: Dict[str, Any] = {"status": status, "updated_at": utcnow()}
        if editor_notes is not None:
            changes["editor_notes"] = editor_notes
        updated = self.store.update(SUBMISSIONS, submission_id, changes)
        log_operation(
            "Submission status changed",
            f"{submission_id} {submission.status.value} -> {status.value} by admin {user.id}",
        )
        return updated

    # ------------------------------------------------------------------
    # Publish
    # ------------------------------------------------------------------

    def publish(
        self,
        user: Optional[CurrentUser],
        submission_id: str,
        issue_id: str,
        pages: Optional[str] = None,
        doi: Optional[str] = None,
        final_pdf_ref: Optional[str] = None,
    ) -> Article:
        """
        Turn a submission into an article of ``issue_id``.

        The article insert and the status change share one atomic block, so
        a failure leaves neither behind.

        Raises:
            PermissionDeniedError: If the user is not an admin
            NotFoundError: If the submission or issue is missing, or the issue
                belongs to another journal
            ValidationError: If the submission is already published (or, in
                strict mode, not accepted)
        """
        require_admin(user)
        submission = self.store.require(SUBMISSIONS, submission_id)
        if not issue_id:
            raise ValidationError("Please select an issue.", field="issue_id")
        issue = self.store.require(ISSUES, issue_id)
        if issue.journal_id != submission.journal_id:
            raise NotFoundError(
                "issue", issue_id,
                f"Issue '{issue_id}' does not belong to this submission's journal.",
            )
        if submission.status == SubmissionStatus.PUBLISHED:
            raise ValidationError("This submission has already been published.", field="status")
        if self.config.STRICT_STATUS_TRANSITIONS and submission.status != SubmissionStatus.ACCEPTED:
            raise ValidationError("Only accepted submissions can be published.", field="status")
        final_pdf_ref = _blank_to_none(final_pdf_ref, "final_pdf_ref")
        if final_pdf_ref:
            validate_storage_path(final_pdf_ref)

        now = utcnow()
        article = Article(
            issue_id=issue_id,
            title=submission.title,
            abstract=submission.abstract,
            keywords=list(submission.keywords),
            authors=list(submission.authors),
            pdf_ref=final_pdf_ref or submission.manuscript_ref,
            doi=_blank_to_none(doi, "doi"),
            pages=_blank_to_none(pages, "pages"),
            published_at=now,
            created_at=now,
        )
        with self.store.atomic():
            created = self.store.insert(ARTICLES, article)
            self.store.update(SUBMISSIONS, submission_id, {
                "status": SubmissionStatus.PUBLISHED,
                "editor_notes": PUBLISHED_NOTE,
                "updated_at": now,
            })
        log_operation("Article published", f"submission {submission_id} -> article {created.id} in issue {issue_id}")
        return created

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def delete_submission(self, user: Optional[CurrentUser], submission_id: str) -> None:
        """Hard delete; irreversible."""
        require_admin(user)
        if not self.store.delete(SUBMISSIONS, submission_id):
            raise NotFoundError("submission", submission_id)
        log_operation("Submission deleted", f"{submission_id} by admin {user.id}", level=logging.WARNING)
