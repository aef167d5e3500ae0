"""
Admin routes: review and publish submissions, manage the catalog.

Every route needs a login; the admin check itself happens in the core
services so the same rule holds outside the web layer.
"""
from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required

from journal_press.access import require_admin
from journal_press.errors import NotFoundError, ValidationError

from .app import current_actor, services
from .auth_routes import form_error_response
from .forms import PublishForm, StatusForm

admin_bp = Blueprint('admin', __name__, url_prefix='/api/admin')


@admin_bp.before_request
@login_required
def require_login():
    """Block anonymous access to every admin route."""
    return None


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Expected a JSON object.')
    return data


# ============================================================================
# SUBMISSIONS
# ============================================================================

@admin_bp.route('/submissions')
def list_submissions():
    submissions = services().workflow.list_all_submissions(current_actor())
    return jsonify([s.to_dict() for s in submissions])


@admin_bp.route('/submissions/<submission_id>/status', methods=['POST'])
def update_status(submission_id):
    form = StatusForm()
    if not form.validate_on_submit():
        return form_error_response(form)

    notes = form.editor_notes.data if form.editor_notes.raw_data else None
    submission = services().workflow.update_status(
        current_actor(), submission_id, form.status.data, notes
    )
    return jsonify(submission.to_dict())


@admin_bp.route('/submissions/<submission_id>/publish', methods=['POST'])
def publish_submission(submission_id):
    form = PublishForm()
    if not form.validate_on_submit():
        return form_error_response(form)

    article = services().workflow.publish(
        current_actor(),
        submission_id,
        form.issue_id.data,
        pages=form.pages.data,
        doi=form.doi.data,
        final_pdf_ref=form.final_pdf_ref.data,
    )
    current_app.logger.info(f"Published submission {submission_id} as article {article.id}")
    return jsonify(article.to_dict()), 201


@admin_bp.route('/submissions/<submission_id>', methods=['DELETE'])
def delete_submission(submission_id):
    services().workflow.delete_submission(current_actor(), submission_id)
    return jsonify({'success': True})


@admin_bp.route('/submissions/<submission_id>/manuscript', methods=['POST'])
def manuscript_url(submission_id):
    """Signed download link for a submission's manuscript."""
    svc = services()
    user = require_admin(current_actor())
    submission = svc.workflow.get_submission(user, submission_id)
    if not submission.manuscript_ref:
        raise NotFoundError('manuscript', submission_id, 'No manuscript was uploaded.')
    url = svc.storage.create_signed_url(submission.manuscript_ref, svc.config.SIGNED_URL_TTL)
    return jsonify({'url': url})


# ============================================================================
# JOURNALS
# ============================================================================

@admin_bp.route('/journals', methods=['POST'])
def create_journal():
    journal = services().catalog.create_journal(current_actor(), **_json_body())
    return jsonify(journal.to_dict()), 201


@admin_bp.route('/journals/<journal_id>', methods=['PUT', 'PATCH'])
def update_journal(journal_id):
    journal = services().catalog.update_journal(current_actor(), journal_id, **_json_body())
    return jsonify(journal.to_dict())


@admin_bp.route('/journals/<journal_id>', methods=['DELETE'])
def delete_journal(journal_id):
    services().catalog.delete_journal(current_actor(), journal_id)
    return jsonify({'success': True})


# ============================================================================
# ISSUES
# ============================================================================

@admin_bp.route('/issues')
def list_issues():
    require_admin(current_actor())
    return jsonify([i.to_dict() for i in services().catalog.list_all_issues()])


@admin_bp.route('/issues', methods=['POST'])
def create_issue():
    issue = services().catalog.create_issue(current_actor(), **_json_body())
    return jsonify(issue.to_dict()), 201


@admin_bp.route('/issues/<issue_id>', methods=['PUT', 'PATCH'])
def update_issue(issue_id):
    issue = services().catalog.update_issue(current_actor(), issue_id, **_json_body())
    return jsonify(issue.to_dict())


@admin_bp.route('/issues/<issue_id>', methods=['DELETE'])
def delete_issue(issue_id):
    services().catalog.delete_issue(current_actor(), issue_id)
    return jsonify({'success': True})


# ============================================================================
# ARTICLES
# ============================================================================

@admin_bp.route('/articles', methods=['POST'])
def create_article():
    article = services().catalog.create_article(current_actor(), **_json_body())
    return jsonify(article.to_dict()), 201


@admin_bp.route('/articles/<article_id>', methods=['PUT', 'PATCH'])
def update_article(article_id):
    article = services().catalog.update_article(current_actor(), article_id, **_json_body())
    return jsonify(article.to_dict())


@admin_bp.route('/articles/<article_id>', methods=['DELETE'])
def delete_article(article_id):
    services().catalog.delete_article(current_actor(), article_id)
    return jsonify({'success': True})


# ============================================================================
# DASHBOARD
# ============================================================================

@admin_bp.route('/stats')
def stats():
    return jsonify(services().catalog.admin_stats(current_actor()))
