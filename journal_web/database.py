"""
Database models for user accounts and the journal catalog.
"""
import json
import uuid
from flask_login import UserMixin
from flask_sqlalchemy import SQLAlchemy
from werkzeug.security import check_password_hash, generate_password_hash

from journal_press.models import (
    Article,
    Author,
    Issue,
    Journal,
    Submission,
    SubmissionStatus,
    SupplementaryFile,
    utcnow,
)

db = SQLAlchemy()


def _new_id():
    return uuid.uuid4().hex


def _dump_authors(authors):
    return json.dumps([
        {"name": a.name, "affiliation": a.affiliation, "email": a.email} for a in authors
    ])


def _load_authors(raw):
    return [Author.from_dict(a) for a in json.loads(raw)] if raw else []


def to_columns(values):
    """Encode record field values for the Text/JSON columns they live in."""
    values = dict(values)
    if 'keywords' in values:
        values['keywords'] = json.dumps(list(values['keywords'] or []))
    if 'authors' in values:
        values['authors'] = _dump_authors(values['authors'] or [])
    if 'supplementary_files' in values:
        values['supplementary_files'] = json.dumps([
            {'name': f.name, 'ref': f.ref} for f in values['supplementary_files'] or []
        ])
    if 'status' in values:
        values['status'] = SubmissionStatus(values['status']).value
    return values


class User(UserMixin, db.Model):
    """User model for authentication."""
    __tablename__ = 'users'

    id = db.Column(db.String(32), primary_key=True, default=_new_id)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    full_name = db.Column(db.String(200))
    password_hash = db.Column(db.String(255), nullable=False)
    is_admin = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)
    last_login = db.Column(db.DateTime)

    submissions = db.relationship('SubmissionRow', backref='user', lazy=True)

    def set_password(self, password):
        """Hash and set user password."""
        self.password_hash = generate_password_hash(password, method='pbkdf2:sha256')

    def check_password(self, password):
        """Verify password against hash."""
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'full_name': self.full_name,
            'is_admin': self.is_admin,
        }

    def __repr__(self):
        return f'<User {self.email}>'


class JournalRow(db.Model):
    """A journal; slug is the public key used in URLs."""
    __tablename__ = 'journals'

    id = db.Column(db.String(32), primary_key=True, default=_new_id)
    title = db.Column(db.String(300), nullable=False)
    subtitle = db.Column(db.String(300))
    description = db.Column(db.Text)
    issn = db.Column(db.String(20), nullable=False)
    impact_factor = db.Column(db.String(20))
    frequency = db.Column(db.String(50))
    slug = db.Column(db.String(120), unique=True, nullable=False, index=True)
    editor_in_chief = db.Column(db.String(200))
    scope = db.Column(db.Text)
    image_ref = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    issues = db.relationship('IssueRow', backref='journal', lazy=True, cascade='all, delete-orphan')

    def to_record(self):
        return Journal(
            id=self.id,
            title=self.title,
            subtitle=self.subtitle,
            description=self.description,
            issn=self.issn,
            impact_factor=self.impact_factor,
            frequency=self.frequency,
            slug=self.slug,
            editor_in_chief=self.editor_in_chief,
            scope=self.scope,
            image_ref=self.image_ref,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def __repr__(self):
        return f'<Journal {self.slug}>'


class IssueRow(db.Model):
    """An issue of a journal; (journal, volume, issue_number) is unique."""
    __tablename__ = 'issues'
    __table_args__ = (
        db.UniqueConstraint('journal_id', 'volume', 'issue_number', name='uq_issue_number'),
    )

    id = db.Column(db.String(32), primary_key=True, default=_new_id)
    journal_id = db.Column(db.String(32), db.ForeignKey('journals.id'), nullable=False, index=True)
    volume = db.Column(db.Integer, nullable=False)
    issue_number = db.Column(db.Integer, nullable=False)
    year = db.Column(db.Integer, nullable=False)
    month = db.Column(db.String(20))
    is_current = db.Column(db.Boolean, default=False, nullable=False)
    published_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=utcnow)

    articles = db.relationship('ArticleRow', backref='issue', lazy=True, cascade='all, delete-orphan')

    def to_record(self):
        return Issue(
            id=self.id,
            journal_id=self.journal_id,
            volume=self.volume,
            issue_number=self.issue_number,
            year=self.year,
            month=self.month,
            is_current=self.is_current,
            published_at=self.published_at,
            created_at=self.created_at,
        )

    def __repr__(self):
        return f'<Issue {self.journal_id} {self.volume}({self.issue_number})>'


class ArticleRow(db.Model):
    """A published article."""
    __tablename__ = 'articles'

    id = db.Column(db.String(32), primary_key=True, default=_new_id)
    issue_id = db.Column(db.String(32), db.ForeignKey('issues.id'), nullable=False, index=True)
    title = db.Column(db.Text, nullable=False)
    abstract = db.Column(db.Text)
    keywords = db.Column(db.Text)  # JSON string array
    authors = db.Column(db.Text)  # JSON array of {name, affiliation, email}
    pdf_ref = db.Column(db.Text)
    doi = db.Column(db.String(200), index=True)
    pages = db.Column(db.String(50))
    published_at = db.Column(db.DateTime, index=True)
    views = db.Column(db.Integer, default=0, nullable=False)
    downloads = db.Column(db.Integer, default=0, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    __table_args__ = (
        db.CheckConstraint('views >= 0', name='ck_article_views'),
        db.CheckConstraint('downloads >= 0', name='ck_article_downloads'),
    )

    def to_record(self):
        return Article(
            id=self.id,
            issue_id=self.issue_id,
            title=self.title,
            abstract=self.abstract or '',
            keywords=json.loads(self.keywords) if self.keywords else [],
            authors=_load_authors(self.authors),
            pdf_ref=self.pdf_ref,
            doi=self.doi,
            pages=self.pages,
            published_at=self.published_at,
            views=self.views or 0,
            downloads=self.downloads or 0,
            created_at=self.created_at,
        )

    def __repr__(self):
        return f'<Article {self.title[:30]}...>'


class SubmissionRow(db.Model):
    """A manuscript submitted by a user."""
    __tablename__ = 'submissions'

    id = db.Column(db.String(32), primary_key=True, default=_new_id)
    user_id = db.Column(db.String(32), db.ForeignKey('users.id'), nullable=False, index=True)
    journal_id = db.Column(db.String(32), db.ForeignKey('journals.id'), nullable=False, index=True)
    title = db.Column(db.Text, nullable=False)
    abstract = db.Column(db.Text)
    keywords = db.Column(db.Text)  # JSON string array
    authors = db.Column(db.Text)  # JSON array of {name, affiliation, email}
    manuscript_ref = db.Column(db.Text)
    supplementary_files = db.Column(db.Text)  # JSON array of {name, ref}
    status = db.Column(db.String(32), default=SubmissionStatus.PENDING.value, nullable=False, index=True)
    editor_notes = db.Column(db.Text)
    submitted_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow)

    journal = db.relationship('JournalRow', lazy=True)

    def to_record(self):
        files = json.loads(self.supplementary_files) if self.supplementary_files else []
        return Submission(
            id=self.id,
            user_id=self.user_id,
            journal_id=self.journal_id,
            title=self.title,
            abstract=self.abstract or '',
            keywords=json.loads(self.keywords) if self.keywords else [],
            authors=_load_authors(self.authors),
            manuscript_ref=self.manuscript_ref,
            supplementary_files=[SupplementaryFile(**f) for f in files],
            status=SubmissionStatus(self.status),
            editor_notes=self.editor_notes,
            submitted_at=self.submitted_at,
            updated_at=self.updated_at,
        )

    def __repr__(self):
        return f'<Submission {self.title[:30]}... ({self.status})>'
