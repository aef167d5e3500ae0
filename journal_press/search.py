"""Ad hoc full-text search over the article catalog."""
from typing import Iterable, List

from .models import Article

DEFAULT_LIMIT = 10


def article_matches(article: Article, needle: str) -> bool:
    """True when ``needle`` (already lowercased) occurs in any searchable field."""
    if needle in (article.title or "").lower():
        return True
    if needle in (article.abstract or "").lower():
        return True
    if any(needle in (k or "").lower() for k in article.keywords):
        return True
    return any(needle in (a.name or "").lower() for a in article.authors)


def search_articles(query: str, corpus: Iterable[Article], limit: int = DEFAULT_LIMIT) -> List[Article]:
    """
    Filter ``corpus`` down to the articles matching ``query``.

    Matching is a case-insensitive substring test against the title, the
    abstract, each keyword and each author name. Corpus order is kept (the
    catalog supplies newest first) and at most ``limit`` articles come back.
    An empty or whitespace-only query matches nothing.
    """
    if not (query or "").strip() or limit <= 0:
        return []
    needle = query.lower()

    results: List[Article] = []
    for article in corpus:
        if article_matches(article, needle):
            results.append(article)
            if len(results) >= limit:
                break
    return results
