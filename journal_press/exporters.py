"""Export article citations as BibTeX, RIS or a Word document."""
import io
import re
from typing import Iterable, List, Set

from docx import Document
from docx.shared import Pt

from .citation import CitationFormatter, format_citation
from .models import ArticleView
from .name_utils import last_first_full, split_name


def _page_range(pages: str) -> List[str]:
    return [p.strip() for p in re.split(r"[-–]", pages) if p.strip()]


def bibtex_key(view: ArticleView, taken: Set[str]) -> str:
    """Build 'lastnameYEAR' keys, suffixed a, b, ... when they collide."""
    names = [a.name for a in view.article.authors if a.name]
    last = split_name(names[0])[1] if names else "anon"
    base = re.sub(r"[^a-z0-9]", "", f"{last}{view.year or 'nd'}".lower()) or "article"
    key = base
    suffix = ord("a")
    while key in taken:
        key = f"{base}{chr(suffix)}"
        suffix += 1
    taken.add(key)
    return key


def export_bibtex(views: Iterable[ArticleView]) -> str:
    """
    Export articles in BibTeX format.

    Returns:
        str: One @article entry per article, separated by blank lines
    """
    entries = []
    taken: Set[str] = set()

    for view in views:
        article = view.article
        entry = [f"@article{{{bibtex_key(view, taken)},"]
        entry.append(f"    title = {{{article.title}}},")

        names = [last_first_full(a.name) for a in article.authors if a.name]
        if names:
            entry.append(f"    author = {{{' and '.join(names)}}},")
        if view.year:
            entry.append(f"    year = {{{view.year}}},")
        if view.journal_title:
            entry.append(f"    journal = {{{view.journal_title}}},")
        if view.volume:
            entry.append(f"    volume = {{{view.volume}}},")
        if view.issue_number:
            entry.append(f"    number = {{{view.issue_number}}},")
        if article.pages:
            entry.append(f"    pages = {{{'--'.join(_page_range(article.pages))}}},")
        if article.doi:
            entry.append(f"    doi = {{{article.doi}}},")
            entry.append(f"    url = {{https://doi.org/{article.doi}}},")
        if article.keywords:
            entry.append(f"    keywords = {{{', '.join(article.keywords)}}},")

        if entry[-1].endswith(","):
            entry[-1] = entry[-1][:-1]
        entry.append("}")
        entries.append("\n".join(entry))

    return "\n\n".join(entries)


def export_ris(views: Iterable[ArticleView]) -> str:
    """
    Export articles in RIS format.

    Returns:
        str: One JOUR record per article
    """
    records = []

    for view in views:
        article = view.article
        entry = ["TY  - JOUR", f"TI  - {article.title}"]
        for author in article.authors:
            if author.name:
                entry.append(f"AU  - {last_first_full(author.name)}")
        if view.year:
            entry.append(f"PY  - {view.year}")
        if view.journal_title:
            entry.append(f"JO  - {view.journal_title}")
        if view.journal and view.journal.issn:
            entry.append(f"SN  - {view.journal.issn}")
        if view.volume:
            entry.append(f"VL  - {view.volume}")
        if view.issue_number:
            entry.append(f"IS  - {view.issue_number}")
        if article.pages:
            pages = _page_range(article.pages)
            if pages:
                entry.append(f"SP  - {pages[0]}")
                entry.append(f"EP  - {pages[-1]}")
        if article.abstract:
            entry.append(f"AB  - {article.abstract}")
        for keyword in article.keywords:
            entry.append(f"KW  - {keyword}")
        if article.doi:
            entry.append(f"DO  - {article.doi}")
            entry.append(f"UR  - https://doi.org/{article.doi}")
        entry.append("ER  - ")
        entry.append("")
        records.append("\n".join(entry))

    return "\n".join(records)


def export_docx(views: Iterable[ArticleView], style: str) -> bytes:
    """Render one citation per paragraph into a .docx document."""
    style = CitationFormatter.resolve_style(style)
    doc = Document()
    doc.add_heading("References", 0)

    for view in views:
        p = doc.add_paragraph()
        p.add_run(format_citation(view, style))
        p.paragraph_format.space_after = Pt(12)

    f = io.BytesIO()
    doc.save(f)
    return f.getvalue()


EXPORT_FORMATS = {
    "bibtex": ("application/x-bibtex", "bib"),
    "ris": ("application/x-research-info-systems", "ris"),
    "docx": ("application/vnd.openxmlformats-officedocument.wordprocessingml.document", "docx"),
}
