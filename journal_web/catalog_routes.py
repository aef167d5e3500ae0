"""
Public catalog routes: journals, issues, articles, search, citations, files.
"""
import io
import mimetypes
import posixpath

from flask import Blueprint, Response, current_app, jsonify, request, send_file

from journal_press.config import DEFAULT_STYLE
from journal_press.errors import ValidationError
from journal_press.exporters import EXPORT_FORMATS, export_bibtex, export_docx, export_ris

from .app import services
from .extensions import limiter

catalog_bp = Blueprint('catalog', __name__)


@catalog_bp.route('/api/journals')
def list_journals():
    return jsonify([j.to_dict() for j in services().catalog.list_journals()])


@catalog_bp.route('/api/journals/<slug>')
def get_journal(slug):
    catalog = services().catalog
    journal = catalog.get_journal_by_slug(slug)
    current = catalog.current_issue(journal.id)
    data = journal.to_dict()
    data['current_issue'] = current.to_dict() if current else None
    return jsonify(data)


@catalog_bp.route('/api/journals/<slug>/issues')
def list_journal_issues(slug):
    catalog = services().catalog
    journal = catalog.get_journal_by_slug(slug)
    return jsonify([i.to_dict() for i in catalog.list_journal_issues(journal.id)])


@catalog_bp.route('/api/issues/<issue_id>/articles')
def list_issue_articles(issue_id):
    catalog = services().catalog
    issue = catalog.get_issue(issue_id)
    return jsonify({
        'issue': issue.to_dict(),
        'articles': [a.to_dict() for a in catalog.list_issue_articles(issue_id)],
    })


@catalog_bp.route('/api/articles/<article_id>')
def get_article(article_id):
    """Article with its issue and journal. Each fetch counts as a view."""
    catalog = services().catalog
    view = catalog.get_article_view(article_id)
    catalog.record_view(article_id)
    return jsonify(view.to_dict())


@catalog_bp.route('/api/articles/<article_id>/pdf', methods=['POST'])
@limiter.limit("30 per minute")
def article_pdf(article_id):
    url = services().catalog.article_pdf_url(article_id)
    return jsonify({'url': url})


@catalog_bp.route('/api/articles/<article_id>/citation')
@limiter.limit("60 per minute")
def article_citation(article_id):
    catalog = services().catalog
    style = request.args.get('style')
    if not style:
        return jsonify({'citations': catalog.citations(article_id)})
    return jsonify({'style': style.lower(), 'citation': catalog.citation(article_id, style)})


@catalog_bp.route('/api/articles/<article_id>/export/<fmt>')
@limiter.limit("10 per minute")
def export_article(article_id, fmt):
    """Export one article's reference as BibTeX, RIS or a Word document."""
    fmt = fmt.lower()
    if fmt not in EXPORT_FORMATS:
        raise ValidationError(f"Unsupported format: {fmt}", field='format')

    views = [services().catalog.get_article_view(article_id)]
    mimetype, extension = EXPORT_FORMATS[fmt]
    filename = f"article_{article_id}.{extension}"

    if fmt == 'bibtex':
        body = export_bibtex(views)
    elif fmt == 'ris':
        body = export_ris(views)
    else:
        body = export_docx(views, request.args.get('style', DEFAULT_STYLE))

    return Response(
        body,
        mimetype=mimetype,
        headers={'Content-Disposition': f'attachment;filename={filename}'}
    )


@catalog_bp.route('/api/search')
@limiter.limit("30 per minute")
def search():
    catalog = services().catalog
    query = request.args.get('q', '')
    results = [catalog.get_article_view(a.id).to_dict() for a in catalog.search(query)]
    current_app.logger.info(f"Search '{query}' returned {len(results)} results")
    return jsonify(results)


@catalog_bp.route('/files/<token>')
def signed_file(token):
    """Serve a stored file to the holder of an unexpired signed link."""
    storage = services().storage
    ref = storage.resolve_signed_token(token)
    data = storage.download(ref)
    filename = posixpath.basename(ref)
    mimetype = mimetypes.guess_type(filename)[0] or 'application/octet-stream'
    return send_file(io.BytesIO(data), mimetype=mimetype, download_name=filename)


@catalog_bp.route('/health')
def health():
    services().store.ping()
    return 'ok', 200
