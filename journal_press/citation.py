"""Citation formatting for published articles."""
from enum import Enum
from typing import List, Optional, Union

from .config import STYLE_APA, STYLE_CHICAGO, STYLE_HARVARD, STYLE_IEEE
from .errors import ValidationError
from .models import ArticleView
from .name_utils import full_name, initials_last, last_first_full, last_first_initials


class CitationStyle(str, Enum):
    APA = STYLE_APA
    HARVARD = STYLE_HARVARD
    CHICAGO = STYLE_CHICAGO
    IEEE = STYLE_IEEE


def format_apa_authors(names: List[str]) -> str:
    """Format author list in APA style."""
    formatted = [last_first_initials(n) for n in names]
    if not formatted:
        return ""
    if len(formatted) == 1:
        return formatted[0]
    return ", ".join(formatted[:-1]) + ", & " + formatted[-1]


def format_harvard_authors(names: List[str]) -> str:
    """Format author list in Harvard style."""
    formatted = [full_name(n) for n in names]
    if not formatted:
        return ""
    if len(formatted) == 1:
        return formatted[0]
    if len(formatted) == 2:
        return " and ".join(formatted)
    return f"{formatted[0]} et al."


def format_chicago_authors(names: List[str]) -> str:
    """Format author list in Chicago style (first author inverted)."""
    if not names:
        return ""
    formatted = [last_first_full(names[0])] + [full_name(n) for n in names[1:]]
    if len(formatted) == 1:
        return formatted[0]
    if len(formatted) == 2:
        return f"{formatted[0]}, and {formatted[1]}"
    return ", ".join(formatted[:-1]) + ", and " + formatted[-1]


def format_ieee_authors(names: List[str]) -> str:
    """Format author list in IEEE style."""
    return ", ".join(initials_last(n) for n in names)


def _vol_issue(volume: Optional[int], issue: Optional[int]) -> str:
    if volume and issue:
        return f"{volume}({issue})"
    if volume:
        return str(volume)
    if issue:
        return f"({issue})"
    return ""


def _end_sentence(title: str) -> str:
    """Add a closing period unless the title already ends a sentence."""
    return title if title.endswith((".", "?", "!")) else f"{title}."


def _doi_url(doi: str) -> str:
    if doi.lower().startswith(("http://", "https://")):
        return doi
    return f"https://doi.org/{doi}"


class CitationFormatter:
    """Format citations for an article in different styles."""

    @staticmethod
    def citation(view: ArticleView, style: Union[str, CitationStyle]) -> str:
        """Generate the full citation string."""
        style = CitationFormatter.resolve_style(style)
        if style is CitationStyle.APA:
            return CitationFormatter._apa(view)
        if style is CitationStyle.HARVARD:
            return CitationFormatter._harvard(view)
        if style is CitationStyle.CHICAGO:
            return CitationFormatter._chicago(view)
        return CitationFormatter._ieee(view)

    @staticmethod
    def resolve_style(style: Union[str, CitationStyle]) -> CitationStyle:
        if isinstance(style, CitationStyle):
            return style
        try:
            return CitationStyle((style or "").strip().lower())
        except ValueError:
            allowed = ", ".join(s.value for s in CitationStyle)
            raise ValidationError(
                f"Unknown citation style '{style}'. Choose one of: {allowed}", field="style"
            )

    @staticmethod
    def _names(view: ArticleView) -> List[str]:
        return [a.name for a in view.article.authors if a.name and a.name.strip()]

    @staticmethod
    def _year(view: ArticleView) -> str:
        return str(view.year) if view.year else "n.d."

    @staticmethod
    def _apa(view: ArticleView) -> str:
        """Last, F. (Year). Title. Journal, Vol(Issue), Pages. https://doi.org/DOI"""
        article = view.article
        result = f"{format_apa_authors(CitationFormatter._names(view))} ({CitationFormatter._year(view)}). {_end_sentence(article.title)}"
        if view.journal_title:
            result += f" {view.journal_title}"
            vol_issue = _vol_issue(view.volume, view.issue_number)
            if vol_issue:
                result += f", {vol_issue}"
            if article.pages:
                result += f", {article.pages}"
            result += "."
        elif article.pages:
            result += f" {article.pages}."
        if article.doi:
            result += f" {_doi_url(article.doi)}"
        return result.strip()

    @staticmethod
    def _harvard(view: ArticleView) -> str:
        """Authors (Year) 'Title', Journal, Vol(Issue), pp. Pages. Available at: DOI"""
        article = view.article
        result = f"{format_harvard_authors(CitationFormatter._names(view))} ({CitationFormatter._year(view)}) '{article.title}'"
        if view.journal_title:
            result += f", {view.journal_title}"
        vol_issue = _vol_issue(view.volume, view.issue_number)
        if vol_issue:
            result += f", {vol_issue}"
        if article.pages:
            result += f", pp. {article.pages}"
        result += "."
        if article.doi:
            result += f" Available at: {_doi_url(article.doi)}"
        return result.strip()

    @staticmethod
    def _chicago(view: ArticleView) -> str:
        """Authors. "Title." Journal Vol, no. Issue (Year): Pages. DOI"""
        article = view.article
        authors = format_chicago_authors(CitationFormatter._names(view)).rstrip(".")
        parts = []
        if authors:
            parts.append(f"{authors}.")
        parts.append(f"\"{_end_sentence(article.title)}\"")
        source = view.journal_title
        if view.volume:
            source = f"{source} {view.volume}".strip()
        if view.issue_number:
            source += f", no. {view.issue_number}"
        source = f"{source} ({CitationFormatter._year(view)})".strip()
        if article.pages:
            source += f": {article.pages}"
        parts.append(source + ".")
        if article.doi:
            parts.append(_doi_url(article.doi))
        return " ".join(parts)

    @staticmethod
    def _ieee(view: ArticleView) -> str:
        """Authors, "Title," Journal, vol. Vol, no. Issue, pp. Pages, Year. doi: DOI"""
        article = view.article
        authors = format_ieee_authors(CitationFormatter._names(view))
        parts = []
        if authors:
            parts.append(f"{authors},")
        parts.append(f"\"{article.title},\"")
        if view.journal_title:
            parts.append(f"{view.journal_title},")
        if view.volume:
            parts.append(f"vol. {view.volume},")
        if view.issue_number:
            parts.append(f"no. {view.issue_number},")
        if article.pages:
            parts.append(f"pp. {article.pages},")
        parts.append(f"{CitationFormatter._year(view)}.")
        if article.doi:
            parts.append(f"doi: {article.doi}")
        return " ".join(parts)


def format_citation(view: ArticleView, style: Union[str, CitationStyle]) -> str:
    """Render a citation for ``view`` in the given style."""
    return CitationFormatter.citation(view, style)
