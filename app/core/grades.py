"""Grade labels.

Students carry free-text grades ("Kindergarten", "k", "5th Grade"). Every
comparison between grades goes through ``normalize_grade`` so that grouping,
access filtering and display agree on the same canonical value.
"""

import re
from collections.abc import Iterable

CANONICAL_GRADES = ("K", "1", "2", "3", "4", "5")

GRADE_LABELS = {
    "K": "Kindergarten",
    "1": "1st Grade",
    "2": "2nd Grade",
    "3": "3rd Grade",
    "4": "4th Grade",
    "5": "5th Grade",
}

GRADE_PATTERN = re.compile(r"(k|kindergarten|\d+)")


def normalize_grade(raw: str | int | None) -> str:
    """
    Canonicalize a grade label.

    Examples:
    - "Kindergarten", "k", "kinder" -> "K"
    - "5th Grade", " 5 ", "05" -> "5"
    - "", "n/a" -> ""

    Digit runs outside K-5 are returned as-is ("7th" -> "7"); callers that
    need the closed set check membership in ``CANONICAL_GRADES``.
    """
    if raw is None:
        return ""
    value = str(raw).strip().lower()
    if not value:
        return ""
    if value == "k" or value.startswith("kind"):
        return "K"

    match = GRADE_PATTERN.search(value)
    if not match:
        return ""
    token = match.group(1)
    if token in ("k", "kindergarten"):
        return "K"
    return token.lstrip("0") or "0"


def normalize_grade_access(values: Iterable[str | int]) -> list[str]:
    """Normalize a teacher's grade list, keeping canonical grades only, in order."""
    grades: list[str] = []
    for value in values:
        grade = normalize_grade(value)
        if grade in CANONICAL_GRADES and grade not in grades:
            grades.append(grade)
    return grades


def ordinal_suffix(n: int) -> str:
    """Return the English ordinal suffix for n (1 -> "st", 12 -> "th")."""
    if n % 10 == 1 and n % 100 != 11:
        return "st"
    if n % 10 == 2 and n % 100 != 12:
        return "nd"
    if n % 10 == 3 and n % 100 != 13:
        return "rd"
    return "th"


def format_grade_access(grades: Iterable[str]) -> str:
    """Short display form of a grade list: "K, 1st, 2nd"."""
    labels = []
    for grade in grades:
        if grade.isdigit():
            labels.append(f"{grade}{ordinal_suffix(int(grade))}")
        else:
            labels.append(grade)
    return ", ".join(labels) if labels else "—"
