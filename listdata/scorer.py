from time import perf_counter
from typing import Any, Dict, List, Optional, Sequence, Tuple

from rapidfuzz import fuzz, process

from listdata.config import FUZZY_SCORE_THRESHOLD
from listdata.resolver import FieldResolver
from listdata.specs import HighlightSpan, SearchMetrics, SearchResult, SearchSpec
from listdata.tokenizer import clean_punctuation, extract_top_terms, normalize_with_offsets, tokenize
from listdata.whitelist import FieldWhitelist

EXACT_MATCH_WEIGHT = 3.0
WORD_MATCH_WEIGHT = 1.0
SUBSTRING_WEIGHT = 0.5

# --- Fuzzy guardrails ---
FUZZY_WEIGHT = 0.5
FUZZY_MIN_TOKEN_LEN = 4

SNIPPET_CONTEXT_CHARS = 50


def field_text(value) -> Optional[str]:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def find_all(haystack: str, needle: str) -> List[int]:
    starts = []
    pos = haystack.find(needle)
    while pos != -1:
        starts.append(pos)
        pos = haystack.find(needle, pos + 1)
    return starts


def merge_spans(spans: List[Tuple[int, int]]) -> List[Tuple[int, int]]:
    merged: List[Tuple[int, int]] = []
    for start, end in sorted(spans):
        if merged and start <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged


def render_snippet(text: str, spans: List[Tuple[int, int]]) -> str:
    """Wrap each span in <mark> tags, keeping some context around the matched region."""
    if not spans:
        return ""

    context_start = max(0, spans[0][0] - SNIPPET_CONTEXT_CHARS)
    context_end = min(len(text), spans[-1][1] + SNIPPET_CONTEXT_CHARS)

    parts = []
    cursor = context_start
    for start, end in spans:
        parts.append(text[cursor:start])
        parts.append(f"<mark>{text[start:end]}</mark>")
        cursor = end
    parts.append(text[cursor:context_end])
    return "".join(parts)


class SearchScorer:
    def __init__(self, whitelist: FieldWhitelist, resolver: FieldResolver):
        self.whitelist = whitelist
        self.resolver = resolver

    def search_fields(self, spec: SearchSpec) -> List[str]:
        return list(spec.fields) if spec.fields else self.whitelist.default_search_fields

    def validate(self, spec: Optional[SearchSpec]):
        if spec is None:
            return
        for field in spec.fields:
            self.whitelist.require(field, stage="search")
        for field in spec.field_weights:
            self.whitelist.require(field, stage="search")

    def score_field(self, text: str, tokens: List[str], spec: SearchSpec) -> Tuple[float, List[Tuple[int, int]]]:
        """
        Relevance of one field value for the query tokens.

        Returns the raw (unweighted) contribution and the matched character spans in
        `text` coordinates.
        """
        normalized, offsets = normalize_with_offsets(text)
        words = clean_punctuation(normalized).split()
        word_set = set(words)

        score = 0.0
        spans = []

        if words and words == tokens:
            score += EXACT_MATCH_WEIGHT

        for token in tokens:
            starts = find_all(normalized, token)
            if starts:
                score += WORD_MATCH_WEIGHT if token in word_set else SUBSTRING_WEIGHT
                for s in starts:
                    spans.append((offsets[s], offsets[s + len(token) - 1] + 1))
                continue

            if not spec.enable_fuzzy or len(token) < FUZZY_MIN_TOKEN_LEN or not words:
                continue

            match = process.extractOne(
                token,
                words,
                scorer=fuzz.ratio,
                score_cutoff=FUZZY_SCORE_THRESHOLD,
            )
            if match:
                score += FUZZY_WEIGHT * (match[1] / 100.0)

        return score, merge_spans(spans)

    def score(
        self,
        record: Any,
        spec: SearchSpec,
        tokens: Optional[List[str]] = None,
        field_match_counts: Optional[Dict[str, int]] = None,
    ) -> SearchResult:
        if tokens is None:
            tokens = tokenize(spec.query)
        if not spec.is_active or not tokens:
            return SearchResult()

        total = 0.0
        highlights = []
        snippets = {}

        for field in self.search_fields(spec):
            text = field_text(self.resolver.resolve(record, field))
            if not text:
                continue

            field_score, spans = self.score_field(text, tokens, spec)
            if field_score <= 0:
                continue

            total += field_score * spec.field_weights.get(field, 1.0)
            if field_match_counts is not None:
                field_match_counts[field] = field_match_counts.get(field, 0) + 1

            if spec.enable_highlighting and spans:
                highlights.extend(
                    HighlightSpan(field=field, start=start, end=end, text=text[start:end])
                    for start, end in spans
                )
                snippets[field] = render_snippet(text, spans)

        return SearchResult(score=max(total, 0.0), highlights=highlights, snippets=snippets)

    def rank(self, records: Sequence[Any], spec: SearchSpec) -> Tuple[List[int], List[SearchResult], SearchMetrics]:
        """
        Score every record and keep the positive-scoring ones, in input order.

        An inactive (blank) query keeps everything with score 0.
        """
        if not spec.is_active:
            positions = list(range(len(records)))
            return positions, [SearchResult() for _ in positions], SearchMetrics(total_results=len(positions))

        start_time = perf_counter()
        tokens = tokenize(spec.query)
        field_match_counts: Dict[str, int] = {}

        hits = []
        if tokens:
            for i, record in enumerate(records):
                result = self.score(record, spec, tokens, field_match_counts)
                if result.score > 0:
                    hits.append((i, result))

        if spec.max_results is not None and len(hits) > spec.max_results:
            best = sorted(hits, key=lambda hit: -hit[1].score)[: spec.max_results]
            keep = {i for i, _ in best}
            hits = [hit for hit in hits if hit[0] in keep]

        metrics = SearchMetrics(
            total_results=len(hits),
            query_time_ms=round((perf_counter() - start_time) * 1000, 3),
            top_terms=extract_top_terms(spec.query),
            field_match_counts=field_match_counts,
        )

        return [i for i, _ in hits], [result for _, result in hits], metrics
