from __future__ import annotations

import pytest

from school_data.repositories.paging import PagedResult
from school_data.schemas.common import PagedResponse


@pytest.mark.parametrize(
    "total, page_index, page_size, pages, has_prev, has_next",
    [
        (0, 0, 10, 0, False, False),
        (5, 0, 2, 3, False, True),
        (5, 1, 2, 3, True, True),
        (5, 2, 2, 3, True, False),
        (4, 1, 2, 2, True, False),
        (4, 3, 2, 2, True, False),
    ],
)
def test_page_metadata(total, page_index, page_size, pages, has_prev, has_next):
    page = PagedResult(items=(), total_count=total, page_index=page_index, page_size=page_size)

    assert page.total_pages == pages
    assert page.has_previous is has_prev
    assert page.has_next is has_next


def test_map_keeps_metadata():
    page = PagedResult(items=(1, 2), total_count=7, page_index=1, page_size=2)

    mapped = page.map(str)

    assert mapped.items == ("1", "2")
    assert (mapped.total_count, mapped.page_index, mapped.page_size) == (7, 1, 2)
    assert len(mapped) == 2


def test_paged_response_from_page():
    page = PagedResult(items=(1, 2), total_count=5, page_index=0, page_size=2)

    response = PagedResponse[str].from_page(page, lambda n: f"item-{n}")

    assert response.items == ["item-1", "item-2"]
    assert response.total_pages == 3
    assert response.has_next is True
    assert response.has_previous is False
