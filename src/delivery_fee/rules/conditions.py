"""Weather phenomenon severity classification."""
from __future__ import annotations

from typing import Iterable, Mapping, Optional

NO_SEVERITY = 0
MAX_SEVERITY = 3

# Most severe grade is tested first.
_GRADE_ORDER = (3, 2, 1)


def classify_phenomenon(phenomenon: Optional[str], vocabulary: Mapping[int, Iterable[str]]) -> int:
    """Return the severity grade (0-3) of a free-text phenomenon.

    A grade matches when any of its keywords occurs as a substring of the
    lower-cased phenomenon. Text matching several grades gets the highest.
    """
    text = (phenomenon or "").lower()
    if not text:
        return NO_SEVERITY
    for grade in _GRADE_ORDER:
        for keyword in vocabulary.get(grade, ()):
            keyword = keyword.strip().lower()
            if keyword and keyword in text:
                return grade
    return NO_SEVERITY
