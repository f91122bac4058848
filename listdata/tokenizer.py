import unicodedata
import regex

# reported in search metrics only, never removed from the query itself
STOP_WORDS = {
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to",
    "for", "of", "with", "by", "is", "are", "was", "were", "be", "been",
}

def normalize_unicode(text):
    normalized = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in normalized if not unicodedata.combining(ch))

def clean_punctuation(text):
    return regex.sub(r"\p{P}+", " ", text)

def normalize_with_offsets(text: str) -> tuple[str, list[int]]:
    """
    Lowercase and strip accents, remembering where each output character came from.

    offsets[i] is the index in `text` of the character that produced normalized[i], so a
    match found in the normalized text can be mapped back onto the caller's value.
    """
    chars = []
    offsets = []

    for i, ch in enumerate(text):
        for out in normalize_unicode(ch.lower()):
            chars.append(out)
            offsets.append(i)

    return "".join(chars), offsets

def normalize_text(text):
    return normalize_with_offsets(text)[0]

def tokenize(text):
    if not text:
        return []

    text = normalize_text(text)

    text = clean_punctuation(text)

    return text.split()

def extract_top_terms(query):
    seen = set()
    terms = []

    for token in tokenize(query):
        if token in STOP_WORDS or len(token) <= 2 or token in seen:
            continue
        seen.add(token)
        terms.append(token)

    return terms
