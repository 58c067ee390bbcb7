"""
Weighted fuzzy text index over the catalog.

Each product is indexed on name (0.4), description (0.3), category (0.2)
and tags (0.1). Matching is typo tolerant: query tokens are compared to
field tokens with difflib.SequenceMatcher, and to same-length prefixes of
longer tokens so partial words match too.
"""
from __future__ import annotations
from dataclasses import dataclass
from difflib import SequenceMatcher
from typing import Dict, List, Mapping, Optional, Sequence, Tuple
import logging
import re
import time

from storefront.domain.models.product import Product
from storefront.domain.services.constants import (
    SEARCH_FIELD_WEIGHTS,
    DEFAULT_SEARCH_THRESHOLD,
    DEFAULT_MIN_MATCH_CHARS,
)

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)


def tokenize(text: str) -> List[str]:
    return _TOKEN_RE.findall(text.lower())


def similarity_ratio(s1: str, s2: str) -> float:
    """Calculate similarity ratio between two lower-cased strings (0-1)."""
    return SequenceMatcher(None, s1, s2).ratio()


@dataclass(frozen=True)
class _IndexedField:
    text: str
    tokens: Tuple[str, ...]


@dataclass(frozen=True)
class _IndexedProduct:
    position: int
    product: Product
    fields: Mapping[str, _IndexedField]


def _field_text(product: Product, field: str) -> str:
    if field == "tags":
        return " ".join(product.tags)
    return getattr(product, field) or ""


def _token_score(query_token: str, tokens: Sequence[str]) -> float:
    best = 0.0
    for tok in tokens:
        r = similarity_ratio(query_token, tok)
        if len(tok) > len(query_token):
            r = max(r, similarity_ratio(query_token, tok[: len(query_token)]))
        if r > best:
            best = r
            if best == 1.0:
                break
    return best


def _field_score(query: str, query_tokens: Sequence[str], field: _IndexedField) -> float:
    if not field.text:
        return 0.0
    if query in field.text:
        return 1.0
    if not field.tokens:
        return 0.0
    return sum(_token_score(q, field.tokens) for q in query_tokens) / len(query_tokens)


class SearchIndex:
    """
    Rebuildable ranked-match structure. `build` assembles a new index and
    swaps it in with one assignment, so queries never see a half-built index.
    """

    def __init__(
        self,
        weights: Optional[Mapping[str, float]] = None,
        threshold: float = DEFAULT_SEARCH_THRESHOLD,
        min_match_chars: int = DEFAULT_MIN_MATCH_CHARS,
    ):
        self.weights: Dict[str, float] = dict(weights or SEARCH_FIELD_WEIGHTS)
        self.threshold = threshold
        self.min_match_chars = min_match_chars
        self._entries: Tuple[_IndexedProduct, ...] = ()

    def __len__(self) -> int:
        return len(self._entries)

    def build(self, products: Sequence[Product]) -> None:
        t0 = time.perf_counter()
        entries = []
        for pos, p in enumerate(products):
            fields = {}
            for name in self.weights:
                text = _field_text(p, name).lower()
                fields[name] = _IndexedField(text=text, tokens=tuple(tokenize(text)))
            entries.append(_IndexedProduct(position=pos, product=p, fields=fields))
        self._entries = tuple(entries)
        logger.info("search index built products=%s time=%.3fs", len(entries), time.perf_counter() - t0)

    def score(self, product_entry: _IndexedProduct, query: str, query_tokens: Sequence[str]) -> float:
        """Weighted sum over the fields whose score clears the threshold."""
        min_similarity = 1.0 - self.threshold
        total = 0.0
        for name, weight in self.weights.items():
            s = _field_score(query, query_tokens, product_entry.fields[name])
            if s >= min_similarity:
                total += weight * s
        return total

    def query(self, text: Optional[str]) -> List[Product]:
        """
        Products ranked by relevance, best first, ties in catalog order.
        An empty or whitespace-only query returns the whole catalog.
        """
        entries = self._entries
        if text is None or not text.strip():
            return [e.product for e in entries]

        query = " ".join(text.lower().split())
        query_tokens = [t for t in tokenize(query) if len(t) >= self.min_match_chars]
        if not query_tokens:
            logger.debug("search query=%r has no usable tokens", text)
            return []

        scored: List[Tuple[float, int, Product]] = []
        for e in entries:
            s = self.score(e, query, query_tokens)
            if s > 0:
                scored.append((s, e.position, e.product))
        scored.sort(key=lambda x: (-x[0], x[1]))
        logger.debug("search query=%r hits=%s", text, len(scored))
        return [p for _, _, p in scored]
