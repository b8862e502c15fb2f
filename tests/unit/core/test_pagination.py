import pytest
from sqlalchemy import select
from nativenest.core.pagination import PageDTO, paginate, MAX_PAGE_SIZE
from nativenest.domain.events.models import Event


@pytest.mark.parametrize(
    "total, page_size, expected_pages",
    [
        (0, 10, 1),
        (10, 10, 1),
        (1, 10, 1),
        (0, 0, 1),
        (11, 10, 2),
        (5, 2, 3),
        (100, -5, 1)
    ]
)
def test_pages_calculation(total, page_size, expected_pages):
    dto = PageDTO(items=[], total=total, page=1, page_size=page_size)
    assert dto.pages == expected_pages


@pytest.mark.parametrize(
    "total, page_size, page, expected_has_next",
    [
        (0, 10, 1, False),
        (11, 10, 1, True),
        (11, 10, 2, False),
        (21, 10, 3, False),
        (21, 0, 1, False),
    ]
)
def test_has_next(total, page_size, page, expected_has_next):
    dto = PageDTO(items=[], total=total, page=page, page_size=page_size)
    assert dto.has_next == expected_has_next


def _compiled(stmt) -> str:
    return str(stmt.compile(compile_kwargs={"literal_binds": True}))


@pytest.mark.asyncio
async def test_paginate_clamps_page_size_and_offsets(mocker):
    result = mocker.Mock()
    result.all.return_value = ["a", "b"]
    db = mocker.Mock()
    db.scalar = mocker.AsyncMock(return_value=402)
    db.scalars = mocker.AsyncMock(return_value=result)

    items, total = await paginate(db, select(Event), page=3, page_size=10_000)

    assert items == ["a", "b"]
    assert total == 402
    sql = _compiled(db.scalars.await_args.args[0])
    assert f"LIMIT {MAX_PAGE_SIZE}" in sql
    assert f"OFFSET {2 * MAX_PAGE_SIZE}" in sql


@pytest.mark.asyncio
async def test_paginate_rows_mode_uses_execute(mocker):
    result = mocker.Mock()
    result.all.return_value = []
    db = mocker.Mock()
    db.scalar = mocker.AsyncMock(return_value=None)
    db.execute = mocker.AsyncMock(return_value=result)
    db.scalars = mocker.AsyncMock()

    items, total = await paginate(db, select(Event.id), page=0, page_size=0, scalars=False)

    assert (items, total) == ([], 0)
    db.scalars.assert_not_awaited()
    assert "LIMIT 1 OFFSET 0" in _compiled(db.execute.await_args.args[0])
