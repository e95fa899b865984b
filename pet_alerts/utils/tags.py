"""Normalization of categorical tags (species, breed, size)."""

from typing import FrozenSet, Iterable, Optional, Union


def normalize_tag(value: Optional[str]) -> str:
    """Collapse whitespace and case-fold a tag.

    Example:
        >>> normalize_tag("  Golden   Retriever ")
        'golden retriever'
    """
    if value is None:
        return ""
    return " ".join(str(value).split()).casefold()


def normalize_tag_set(values: Union[None, str, Iterable[str]]) -> FrozenSet[str]:
    """Normalize a tag list into a set, dropping blanks.

    A bare string is treated as a one-element list, which is how the
    profile form submits a single selection.
    """
    if values is None:
        return frozenset()
    if isinstance(values, str):
        values = [values]

    normalized = (normalize_tag(value) for value in values)
    return frozenset(tag for tag in normalized if tag)
