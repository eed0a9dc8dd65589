"""Input checks shared by the column, group, task and board stores."""
from typing import Any, List

from .errors import ValidationError


def clean_name(name: Any, what: str = "Name") -> str:
    """Strip a name and reject blank or non-string input."""
    if not isinstance(name, str) or not name.strip():
        raise ValidationError(f"{what} is required")
    return name.strip()


def check_id_list(ids: Any, what: str) -> List[str]:
    """A list of unique string ids."""
    if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
        raise ValidationError(f"{what} ids must be a list of strings")
    if len(set(ids)) != len(ids):
        raise ValidationError(f"{what} ids must be unique")
    return ids


def check_permutation(current: List[str], requested: Any, what: str) -> None:
    """A reorder must name every sibling exactly once."""
    check_id_list(requested, what)
    if sorted(current) != sorted(requested):
        raise ValidationError(f"Reorder must list every {what} of the parent exactly once")
