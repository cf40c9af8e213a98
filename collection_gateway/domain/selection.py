"""Shift-click range selection over an ordered list of visible loans"""

from typing import List, Optional, Sequence


def select_range(visible_loan_ids: Sequence[str], last_index: Optional[int], current_index: int) -> List[str]:
    """
    Loan ids covered by a range mark from last_index to current_index (inclusive).

    With no previous index only the current row is selected. Indices outside
    the visible list are skipped.
    """
    if last_index is None:
        start = end = current_index
    else:
        start, end = min(last_index, current_index), max(last_index, current_index)

    return [visible_loan_ids[i] for i in range(start, end + 1) if 0 <= i < len(visible_loan_ids)]
