import os
import asyncio
import pytest
import pytest_asyncio
from datetime import date
from decimal import Decimal
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from nativenest.core.database import Base
from nativenest.domain.events.models import Event
from nativenest.domain.stalls.models import Stall, StallType
from nativenest.domain.users.models import User
from nativenest.domain.stalls.schemas import StallTypeCreateDTO, StallTypeUpdateDTO
from nativenest.domain.stalls import crud as stalls_crud
from nativenest.domain.exceptions import CapacityExceeded, NoAvailableStall, Conflict
from nativenest.services import stall_type_service, booking_service
import nativenest.domain  # noqa: F401


TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(not TEST_DATABASE_URL, reason="TEST_DATABASE_URL not set"),
]


@pytest_asyncio.fixture
async def sessionmaker():
    engine = create_async_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield async_sessionmaker(bind=engine, expire_on_commit=False)
    finally:
        await engine.dispose()


async def _seed_event(sm, stall_count: int) -> int:
    async with sm() as db:
        event = Event(
            name="Pune Property Expo", location="Expo Grounds", city="Pune", state="MH",
            start_date=date(2026, 3, 1), end_date=date(2026, 3, 3), stall_count=stall_count,
        )
        db.add(event)
        await db.commit()
        return event.id


async def _seed_builders(sm, n: int) -> list[User]:
    async with sm() as db:
        builders = [User(name=f"Builder {i}", email=f"b{i}@nativenest.in") for i in range(1, n + 1)]
        db.add_all(builders)
        await db.commit()
        return builders


async def _create_type(sm, event_id: int, name: str, qty: int, price: str):
    async with sm() as db:
        schema = StallTypeCreateDTO(name=name, no_of_stalls=qty, stall_price=Decimal(price))
        stall_type = await stall_type_service.create_stall_type(db, event_id, schema)
        await db.commit()
        return stall_type


async def _stall_numbers(sm, stall_type_id: int) -> list[int]:
    async with sm() as db:
        rows = await db.scalars(
            select(Stall.stall_number).where(Stall.stall_type_id == stall_type_id).order_by(Stall.stall_number)
        )
        return list(rows.all())


@pytest.mark.asyncio
async def test_capacity_and_numbering_across_stall_types(sessionmaker):
    event_id = await _seed_event(sessionmaker, stall_count=10)

    gold = await _create_type(sessionmaker, event_id, "Gold", 6, "5000")
    with pytest.raises(CapacityExceeded):
        await _create_type(sessionmaker, event_id, "Platinum", 5, "9000")
    silver = await _create_type(sessionmaker, event_id, "Silver", 4, "3000")

    assert await _stall_numbers(sessionmaker, gold.id) == [1, 2, 3, 4, 5, 6]
    assert await _stall_numbers(sessionmaker, silver.id) == [7, 8, 9, 10]


@pytest.mark.asyncio
async def test_concurrent_bookings_never_share_a_stall(sessionmaker):
    event_id = await _seed_event(sessionmaker, stall_count=10)
    gold = await _create_type(sessionmaker, event_id, "Gold", 6, "5000")
    builders = await _seed_builders(sessionmaker, 8)

    async def book(builder):
        async with sessionmaker() as db:
            try:
                stall = await booking_service.book_stall(db, builder, event_id, gold.id)
                await db.commit()
                return stall.stall_number
            except NoAvailableStall:
                await db.rollback()
                return None

    results = await asyncio.gather(*(book(b) for b in builders))

    won = [n for n in results if n is not None]
    assert len(won) == 6
    assert sorted(won) == [1, 2, 3, 4, 5, 6]
    assert results.count(None) == 2

    async with sessionmaker() as db:
        booked = await db.scalar(
            select(func.count(func.distinct(Stall.builder_id))).where(Stall.stall_type_id == gold.id)
        )
    assert booked == 6


async def _book(sm, builder, event_id: int, stall_type_id: int) -> int:
    async with sm() as db:
        stall = await booking_service.book_stall(db, builder, event_id, stall_type_id)
        await db.commit()
        return stall.stall_number


def _resize(name: str, qty: int, price: str) -> StallTypeUpdateDTO:
    return StallTypeUpdateDTO(name=name, no_of_stalls=qty, stall_price=Decimal(price))


async def _type_state(sm, stall_type_id: int) -> tuple[int | None, int, int]:
    async with sm() as db:
        declared = await db.scalar(select(StallType.no_of_stalls).where(StallType.id == stall_type_id))
        pool = await db.scalar(select(func.count(Stall.id)).where(Stall.stall_type_id == stall_type_id))
        booked = await db.scalar(
            select(func.count(Stall.id)).where(Stall.stall_type_id == stall_type_id, Stall.builder_id.is_not(None))
        )
        return declared, pool, booked


@pytest.mark.asyncio
async def test_numbers_of_deleted_type_are_not_reused(sessionmaker):
    event_id = await _seed_event(sessionmaker, stall_count=10)
    gold = await _create_type(sessionmaker, event_id, "Gold", 6, "5000")
    assert await _stall_numbers(sessionmaker, gold.id) == [1, 2, 3, 4, 5, 6]

    async with sessionmaker() as db:
        await stall_type_service.delete_stall_type(db, event_id, gold.id)
        await db.commit()

    silver = await _create_type(sessionmaker, event_id, "Silver", 4, "3000")

    assert await _stall_numbers(sessionmaker, silver.id) == [7, 8, 9, 10]


@pytest.mark.asyncio
async def test_numbers_released_by_shrink_are_not_reused(sessionmaker):
    event_id = await _seed_event(sessionmaker, stall_count=10)
    gold = await _create_type(sessionmaker, event_id, "Gold", 6, "5000")

    async with sessionmaker() as db:
        await stall_type_service.update_stall_type(db, event_id, gold.id, _resize("Gold", 4, "5000"))
        await db.commit()

    silver = await _create_type(sessionmaker, event_id, "Silver", 4, "3000")

    assert await _stall_numbers(sessionmaker, gold.id) == [1, 2, 3, 4]
    numbers = await _stall_numbers(sessionmaker, silver.id)
    assert numbers == [7, 8, 9, 10]
    assert min(numbers) > 6


@pytest.mark.asyncio
async def test_booking_while_shrink_holds_the_pool_finds_no_stall(sessionmaker):
    event_id = await _seed_event(sessionmaker, stall_count=10)
    gold = await _create_type(sessionmaker, event_id, "Gold", 6, "5000")
    builders = await _seed_builders(sessionmaker, 5)
    for builder in builders[:4]:
        await _book(sessionmaker, builder, event_id, gold.id)

    async with sessionmaker() as admin_db:
        await stall_type_service.update_stall_type(admin_db, event_id, gold.id, _resize("Gold", 4, "5000"))

        # admin transaction still open, every stall of the type is row-locked
        with pytest.raises(NoAvailableStall):
            await _book(sessionmaker, builders[4], event_id, gold.id)

        await admin_db.commit()

    assert await _type_state(sessionmaker, gold.id) == (4, 4, 4)


@pytest.mark.asyncio
async def test_shrink_waits_for_booking_in_flight_and_then_refuses(sessionmaker):
    event_id = await _seed_event(sessionmaker, stall_count=10)
    gold = await _create_type(sessionmaker, event_id, "Gold", 6, "5000")
    builders = await _seed_builders(sessionmaker, 5)
    for builder in builders[:4]:
        await _book(sessionmaker, builder, event_id, gold.id)

    async def shrink():
        async with sessionmaker() as db:
            try:
                await stall_type_service.update_stall_type(db, event_id, gold.id, _resize("Gold", 4, "5000"))
                await db.commit()
            except Conflict:
                await db.rollback()
                raise

    async with sessionmaker() as booker_db:
        stall = await booking_service.book_stall(booker_db, builders[4], event_id, gold.id)
        assert stall.stall_number == 5

        admin = asyncio.create_task(shrink())
        await asyncio.sleep(0.3)
        assert not admin.done()

        await booker_db.commit()

    with pytest.raises(Conflict):
        await admin

    declared, pool, booked = await _type_state(sessionmaker, gold.id)
    assert (declared, pool, booked) == (6, 6, 5)
    assert booked <= declared


@pytest.mark.asyncio
async def test_delete_type_with_booked_stall_is_refused_and_stall_survives(sessionmaker):
    event_id = await _seed_event(sessionmaker, stall_count=10)
    gold = await _create_type(sessionmaker, event_id, "Gold", 6, "5000")
    builders = await _seed_builders(sessionmaker, 1)
    number = await _book(sessionmaker, builders[0], event_id, gold.id)

    async with sessionmaker() as db:
        with pytest.raises(Conflict):
            await stall_type_service.delete_stall_type(db, event_id, gold.id)
        await db.rollback()

    assert await _type_state(sessionmaker, gold.id) == (6, 6, 1)
    assert number in await _stall_numbers(sessionmaker, gold.id)


@pytest.mark.asyncio
async def test_availability_and_builder_listing_follow_bookings(sessionmaker):
    event_id = await _seed_event(sessionmaker, stall_count=10)
    gold = await _create_type(sessionmaker, event_id, "Gold", 6, "5000")
    silver = await _create_type(sessionmaker, event_id, "Silver", 4, "3000")
    builders = await _seed_builders(sessionmaker, 2)
    await _book(sessionmaker, builders[0], event_id, gold.id)
    await _book(sessionmaker, builders[0], event_id, silver.id)
    await _book(sessionmaker, builders[1], event_id, gold.id)

    async with sessionmaker() as db:
        rows = await stalls_crud.list_stall_types_with_availability(db, event_id)
        mine = await stalls_crud.list_builder_bookings(db, builders[0].id)
        mine_in_event = await stalls_crud.list_builder_bookings(db, builders[0].id, event_id=event_id)

    by_name = {row["name"]: row for row in rows}
    assert (by_name["Gold"]["booked_count"], by_name["Gold"]["available_count"]) == (2, 4)
    assert (by_name["Silver"]["booked_count"], by_name["Silver"]["available_count"]) == (1, 3)
    assert {row["stall_type_name"] for row in mine} == {"Gold", "Silver"}
    assert len(mine_in_event) == 2
