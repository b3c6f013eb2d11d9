from __future__ import annotations

import re

# Policy identifiers such as "CS-043" or "CD-150.2" stay a single token.
_TOKEN_RE = re.compile(r"[a-z]{1,5}-\d+(?:\.\d+)*|[a-z0-9_]+")

QUERY_STOP_WORDS = {
    "about",
    "and",
    "any",
    "apply",
    "are",
    "can",
    "could",
    "does",
    "for",
    "from",
    "has",
    "have",
    "his",
    "her",
    "how",
    "its",
    "policy",
    "should",
    "that",
    "the",
    "their",
    "there",
    "this",
    "what",
    "when",
    "where",
    "which",
    "who",
    "why",
    "with",
    "would",
}

IDENTIFIER_WEIGHT = 2.0


def tokenize(text: str) -> set[str]:
    return set(_TOKEN_RE.findall(text.lower()))


def is_identifier(token: str) -> bool:
    return "-" in token and any(char.isdigit() for char in token)


def query_terms(query: str) -> set[str]:
    return {
        token
        for token in tokenize(query)
        if token not in QUERY_STOP_WORDS and (len(token) >= 3 or is_identifier(token))
    }


def overlap_score(query: str, candidate: str) -> float:
    """Weighted share of query terms found in ``candidate``; identifiers count double."""

    terms = query_terms(query)
    if not terms:
        return 0.0
    candidate_tokens = tokenize(candidate)
    total = sum(_term_weight(term) for term in terms)
    hits = sum(_term_weight(term) for term in terms if term in candidate_tokens)
    return hits / total


def _term_weight(term: str) -> float:
    return IDENTIFIER_WEIGHT if is_identifier(term) else 1.0
