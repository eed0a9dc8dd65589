"""Search-box filter over a board's groups."""
from dataclasses import replace
from typing import List, Optional

from .schema import Group


def filter_board(groups: List[Group], query: Optional[str]) -> List[Group]:
    """
    Keep only tasks whose name contains query, case-insensitively.

    Groups without a match stay in the result (with no tasks) so their header
    and add-task row remain visible. An empty query returns the input list
    itself. The input is never modified.
    """
    if not query:
        return groups
    needle = query.casefold()
    return [
        replace(g, tasks=[t for t in g.tasks if needle in t.name.casefold()])
        for g in groups
    ]
