"""
Coarse topic extraction against a fixed technical vocabulary
"""
import re
from typing import Iterable, Set

TECHNICAL_TERMS = frozenset([
    "algorithm", "function", "variable", "array", "object", "class", "method", "loop", "condition",
    "database", "api", "framework", "library", "module", "component", "interface", "protocol",
    "javascript", "python", "java", "react", "node", "html", "css", "sql", "git", "docker",
])

_WORD = re.compile(r"[a-z][a-z0-9+#]*")


def extract_topics(*texts: str, vocabulary: Iterable[str] = TECHNICAL_TERMS) -> Set[str]:
    """
    Vocabulary terms that appear as whole words in any of the texts.

    Simple plurals ("arrays", "classes") count as the singular term.
    """
    vocabulary = set(vocabulary)
    found = set()
    for text in texts:
        for word in _WORD.findall((text or "").lower()):
            if word in vocabulary:
                found.add(word)
            elif word.endswith("es") and word[:-2] in vocabulary:
                found.add(word[:-2])
            elif word.endswith("s") and word[:-1] in vocabulary:
                found.add(word[:-1])
    return found
