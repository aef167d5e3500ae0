"""
Author routes: submit a manuscript and follow its status.
"""
import json

from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required

from journal_press.errors import JournalPressError, ValidationError
from journal_press.models import SupplementaryFile
from journal_press.storage import make_upload_path, manuscript_prefix

from .app import current_actor, services
from .extensions import limiter

submission_bp = Blueprint('submissions', __name__, url_prefix='/api/submissions')

MANUSCRIPT_EXTENSIONS = {'pdf', 'doc', 'docx'}


def _authors_from_form(raw):
    if not raw:
        return []
    try:
        authors = json.loads(raw)
    except ValueError:
        raise ValidationError('Authors must be a JSON list of {name, email, affiliation}.', field='authors')
    if not isinstance(authors, list):
        raise ValidationError('Authors must be a JSON list of {name, email, affiliation}.', field='authors')
    return authors


def _store_upload(file, prefix, uploaded):
    storage = services().storage
    ref = storage.upload(make_upload_path(prefix, file.filename or ''), file.read())
    uploaded.append(ref)
    return ref


def _discard_uploads(refs):
    """Remove files stored for a submission that was then rejected."""
    storage = services().storage
    for ref in refs:
        try:
            storage.delete(ref)
        except JournalPressError as e:
            current_app.logger.warning(f"Could not remove upload {ref}: {e.message}")


def _multipart_submission(user, uploaded):
    """Read a multipart form; uploads the manuscript and supplementary files into ``uploaded``."""
    form = request.form
    fields = {
        'journal_id': form.get('journal_id', ''),
        'title': form.get('title', ''),
        'abstract': form.get('abstract', ''),
        'keywords': form.get('keywords', ''),
        'authors': _authors_from_form(form.get('authors')),
    }

    manuscript = request.files.get('manuscript')
    if manuscript and manuscript.filename:
        ext = manuscript.filename.rsplit('.', 1)[-1].lower() if '.' in manuscript.filename else ''
        if ext not in MANUSCRIPT_EXTENSIONS:
            raise ValidationError('Manuscript must be a PDF or Word document.', field='manuscript')
        fields['manuscript_ref'] = _store_upload(manuscript, manuscript_prefix(user.id), uploaded)

    fields['supplementary_files'] = [
        SupplementaryFile(name=f.filename, ref=_store_upload(f, f"supplementary/{user.id}", uploaded))
        for f in request.files.getlist('supplementary') if f and f.filename
    ]
    return fields


@submission_bp.route('', methods=['POST'])
@login_required
@limiter.limit("10 per minute")
def create_submission():
    user = current_actor()
    if request.is_json:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError('Expected a JSON object.')
        fields = {
            'journal_id': data.get('journal_id', ''),
            'title': data.get('title', ''),
            'abstract': data.get('abstract', ''),
            'keywords': data.get('keywords'),
            'authors': data.get('authors') or [],
            'manuscript_ref': data.get('manuscript_ref'),
        }
    else:
        uploaded = []
        try:
            fields = _multipart_submission(user, uploaded)
            submission = services().workflow.create_submission(user, **fields)
        except Exception:
            _discard_uploads(uploaded)
            raise
        current_app.logger.info(f"Submission {submission.id} received from user {user.id}")
        return jsonify(submission.to_dict()), 201

    submission = services().workflow.create_submission(user, **fields)
    current_app.logger.info(f"Submission {submission.id} received from user {user.id}")
    return jsonify(submission.to_dict()), 201


@submission_bp.route('/mine')
@login_required
def my_submissions():
    submissions = services().workflow.list_user_submissions(current_actor())
    return jsonify([s.to_dict() for s in submissions])


@submission_bp.route('/<submission_id>')
@login_required
def get_submission(submission_id):
    return jsonify(services().workflow.get_submission(current_actor(), submission_id).to_dict())
