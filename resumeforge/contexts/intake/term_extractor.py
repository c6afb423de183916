"""
Weighted term extraction for job postings.

Ranks the words and phrases of a posting by weighted frequency using a greedy
masking strategy instead of a full tokenizer:

1. Normalize (lowercase, punctuation to spaces, collapse whitespace)
2. Known-phrase pass: count dictionary phrases, mask every occurrence
3. Bigram pass: count recurring word pairs, mask every occurrence
4. Unigram pass: count remaining unmasked tokens
5. Score = (count / total counted terms) * weight, weight 1.5 for phrases
6. Stable sort by descending score, truncate to the cap

Masking replaces a match with a same-length run of MASK_CHAR, so matched
characters can never be counted again by a later pass.

Usage:
    from resumeforge.contexts.intake.term_extractor import extract_terms

    terms = extract_terms("Senior Software Engineer needed...")
    [t.text for t in terms[:10]]

    # With an extended phrase dictionary
    extractor = TermExtractor(known_phrases=("site reliability engineer",) + KNOWN_PHRASES)
    terms = extractor.extract(posting_text)
"""

import re
from dataclasses import dataclass
from typing import Iterable, Optional

from nltk.util import ngrams

from resumeforge.contexts.intake.term_patterns import (
    KNOWN_PHRASES,
    MASK_CHAR,
    MIN_TOKEN_LENGTH,
    STOPWORDS,
    normalize_text,
)

DEFAULT_MAX_TERMS = 50
PHRASE_WEIGHT = 1.5
WORD_WEIGHT = 1.0


@dataclass(frozen=True)
class Term:
    """A scored word or phrase extracted from a job posting."""

    text: str
    score: float
    occurrences: int

    @property
    def is_phrase(self) -> bool:
        return " " in self.text

    def to_dict(self) -> dict:
        """Serialize to the wire shape used by the HTTP surface."""
        return {"word": self.text, "score": self.score, "count": self.occurrences}


def _compile_boundary_pattern(phrase: str) -> re.Pattern:
    """Match phrase only where it is surrounded by spaces (text must be space-padded)."""
    return re.compile(r"(?<= )" + re.escape(phrase) + r"(?= )")


def _mask_occurrences(text: str, pattern: re.Pattern) -> tuple[str, int]:
    """
    Count and mask every boundary-safe occurrence of pattern in text.

    Returns:
        (masked_text, count) - masked text has the same length as the input
    """
    padded = f" {text} "
    masked, count = pattern.subn(lambda match: MASK_CHAR * len(match.group(0)), padded)
    return masked.strip(), count


class TermExtractor:
    """
    Configurable term extractor.

    Instances hold only immutable configuration, so a single extractor can be
    shared between threads. The extractor is callable for use anywhere a
    text -> terms function is expected.
    """

    def __init__(
        self,
        known_phrases: Iterable[str] = KNOWN_PHRASES,
        stopwords: Optional[frozenset[str]] = None,
        max_terms: int = DEFAULT_MAX_TERMS,
    ):
        """
        Initialize extractor.

        Args:
            known_phrases: Phrase dictionary in priority order (first match wins)
            stopwords: Words never counted (default: English stop-words)
            max_terms: Maximum number of ranked terms returned
        """
        if max_terms < 1:
            raise ValueError(f"max_terms must be positive, got: {max_terms}")

        self.known_phrases = tuple(known_phrases)
        self.stopwords = STOPWORDS if stopwords is None else frozenset(stopwords)
        self.max_terms = max_terms

        # Phrases are matched in their normalized form and recorded lowercased,
        # keeping punctuation. Lowercasing keeps MASK_CHAR out of term text.
        self._phrase_patterns = []
        for phrase in self.known_phrases:
            normalized = normalize_text(phrase)
            if normalized:
                self._phrase_patterns.append(
                    (phrase.lower(), _compile_boundary_pattern(normalized))
                )

    def _is_countable(self, token: str) -> bool:
        return (
            len(token) > MIN_TOKEN_LENGTH
            and token not in self.stopwords
            and MASK_CHAR not in token
        )

    def count_terms(self, text: str) -> dict[str, int]:
        """
        Count phrases, bigrams and unigrams in discovery order.

        Returns:
            Dict mapping term text to occurrence count. Insertion order is
            dictionary order for known phrases, then window order for bigrams,
            then first-occurrence order for unigrams.
        """
        counts: dict[str, int] = {}
        text = normalize_text(text)
        if not text:
            return counts

        # Known-phrase pass
        for phrase, pattern in self._phrase_patterns:
            text, count = _mask_occurrences(text, pattern)
            if count:
                counts[phrase] = counts.get(phrase, 0) + count

        # Bigram pass over the tokens left after phrase masking. Counting runs
        # against the progressively masked text, so a pair overlapping an
        # earlier bigram match is no longer found.
        for first, second in ngrams(text.split(), 2):
            if not (self._is_countable(first) and self._is_countable(second)):
                continue
            bigram = f"{first} {second}"
            if bigram in counts:
                continue
            text, count = _mask_occurrences(text, _compile_boundary_pattern(bigram))
            if count:
                counts[bigram] = count

        # Unigram pass
        for token in text.split():
            if self._is_countable(token):
                counts[token] = counts.get(token, 0) + 1

        return counts

    def extract(self, text: str) -> list[Term]:
        """
        Extract ranked terms from text.

        Never raises for string input: empty or symbol-only text yields [].

        Returns:
            Terms sorted by descending score, ties in discovery order,
            truncated to max_terms
        """
        counts = self.count_terms(text or "")
        total = sum(counts.values())
        if total == 0:
            return []

        terms = [
            Term(
                text=term,
                score=(count / total) * (PHRASE_WEIGHT if " " in term else WORD_WEIGHT),
                occurrences=count,
            )
            for term, count in counts.items()
        ]

        # sorted() is stable, including with reverse=True
        terms = sorted(terms, key=lambda term: term.score, reverse=True)
        return terms[: self.max_terms]

    def __call__(self, text: str) -> list[Term]:
        return self.extract(text)

    def get_config_dict(self) -> dict:
        """Return extractor settings as a dictionary."""
        return {
            "known_phrases": list(self.known_phrases),
            "stopword_count": len(self.stopwords),
            "max_terms": self.max_terms,
        }


_DEFAULT_EXTRACTOR = TermExtractor()


def extract_terms(text: str, max_terms: int = DEFAULT_MAX_TERMS) -> list[Term]:
    """
    Extract ranked terms using the built-in phrase dictionary and stop-words.

    Args:
        text: Job posting text
        max_terms: Maximum number of terms returned (default: 50)

    Returns:
        Ranked list of Term
    """
    if max_terms == _DEFAULT_EXTRACTOR.max_terms:
        return _DEFAULT_EXTRACTOR.extract(text)
    return TermExtractor(max_terms=max_terms).extract(text)


def top_term_texts(terms: list[Term], limit: int) -> list[str]:
    """Return the text of the first `limit` terms (fewer if unavailable)."""
    return [term.text for term in terms[:limit]]
