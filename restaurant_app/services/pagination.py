"""Page/per_page normalization shared by the list endpoints."""

from dataclasses import dataclass
from typing import Optional

# Largest OFFSET a signed 64-bit database integer can hold
MAX_OFFSET = 2**63 - 1


@dataclass(frozen=True)
class PageRequest:
    page: int
    per_page: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page


def page_request(
    page: Optional[int],
    per_page: Optional[int],
    default_per_page: int = 20,
    max_per_page: int = 100,
) -> PageRequest:
    """
    Clamp client supplied paging values.

    page defaults to 1 and never goes below it; per_page falls back to the
    default when missing and is kept within [1, max_per_page]. Pages past the
    last representable offset collapse onto it and come back empty.
    """
    page = max(page or 1, 1)
    if per_page is None:
        per_page = default_per_page
    per_page = min(max(per_page, 1), max_per_page)
    page = min(page, MAX_OFFSET // per_page + 1)
    return PageRequest(page=page, per_page=per_page)
