import re
from typing import Iterable, List

# Heuristic: any standalone run of 1-5 uppercase letters. This also matches
# incidental all-caps words ("I", "CEO"); unresolvable ones are dropped after
# their first failed lookup.
SYMBOL_PATTERN = re.compile(r"\b[A-Z]{1,5}\b")


def extract_symbols(text: str, stopwords: Iterable[str] = ()) -> List[str]:
    """Return candidate ticker symbols in order of first appearance, without duplicates."""
    if not text:
        return []
    ignored = {w.upper() for w in stopwords}
    seen: List[str] = []
    for match in SYMBOL_PATTERN.findall(text):
        if match in ignored or match in seen:
            continue
        seen.append(match)
    return seen
