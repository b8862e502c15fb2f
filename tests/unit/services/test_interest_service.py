import pytest
import time_machine
from datetime import datetime, timezone
from nativenest.services import interest_service
from nativenest.domain.interests.schemas import StallCheckInDTO, BuilderInterestsQueryDTO
from nativenest.domain.exceptions import NotFound, Conflict
from tests.helper import mock_session


SVC = "nativenest.services.interest_service"
MOBILE = "+919876543210"


def _check_in_schema(stall_id=3):
    return StallCheckInDTO(stall_id=stall_id, mobile_number=MOBILE)


def _patch_check_in(mocker, *, buyer=None, stall=None, interest=None):
    return {
        "buyer": mocker.patch(
            f"{SVC}.users_crud.get_user_with_role_by_phone",
            new=mocker.AsyncMock(return_value=buyer)
        ),
        "stall": mocker.patch(f"{SVC}.stalls_crud.get_stall", new=mocker.AsyncMock(return_value=stall)),
        "interest": mocker.patch(f"{SVC}.crud.get_interest", new=mocker.AsyncMock(return_value=interest)),
    }


@pytest.mark.asyncio
async def test_register_interest_for_type_outside_event_raises_not_found(mocker):
    mocker.patch(f"{SVC}.events_crud.get_event_by_id", new=mocker.AsyncMock(return_value=mocker.Mock()))
    mocker.patch(f"{SVC}.stalls_crud.get_stall_type", new=mocker.AsyncMock(return_value=None))
    insert_spy = mocker.patch(f"{SVC}.crud.insert_interest_if_absent", new=mocker.AsyncMock())

    with pytest.raises(NotFound):
        await interest_service.register_interest(mocker.Mock(), mocker.Mock(id=4), 1, 2)

    insert_spy.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize("inserted_id, expected", [(10, True), (None, False)])
async def test_register_interest_is_idempotent(mocker, auditspan_stub, inserted_id, expected):
    mocker.patch(f"{SVC}.events_crud.get_event_by_id", new=mocker.AsyncMock(return_value=mocker.Mock()))
    mocker.patch(f"{SVC}.stalls_crud.get_stall_type", new=mocker.AsyncMock(return_value=mocker.Mock()))
    insert_spy = mocker.patch(
        f"{SVC}.crud.insert_interest_if_absent",
        new=mocker.AsyncMock(return_value=inserted_id)
    )
    db = mock_session(mocker)

    created = await interest_service.register_interest(db, mocker.Mock(id=4), 1, 2)

    assert created is expected
    insert_spy.assert_awaited_once_with(db, 4, 1, 2)
    assert auditspan_stub[0].meta["created"] is expected


@pytest.mark.asyncio
async def test_check_in_unknown_mobile_raises_not_found(mocker):
    calls = _patch_check_in(mocker, buyer=None)

    with pytest.raises(NotFound) as e:
        await interest_service.check_in(mocker.Mock(), 1, _check_in_schema())

    assert str(e.value) == "Buyer not found"
    calls["buyer"].assert_awaited_once()
    assert calls["buyer"].await_args.args[:2] == (MOBILE, "BUYER")
    calls["stall"].assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize("stall_event_id", [None, 99])
async def test_check_in_stall_missing_or_in_other_event_raises_not_found(mocker, stall_event_id):
    stall = mocker.Mock(id=3, event_id=stall_event_id) if stall_event_id else None
    calls = _patch_check_in(mocker, buyer=mocker.Mock(id=4), stall=stall)

    with pytest.raises(NotFound) as e:
        await interest_service.check_in(mocker.Mock(), 1, _check_in_schema())

    assert str(e.value) == "Stall not found"
    calls["interest"].assert_not_awaited()


@pytest.mark.asyncio
async def test_check_in_without_registration_raises_not_found_and_mutates_nothing(mocker):
    stall = mocker.Mock(id=3, event_id=1, stall_type_id=2, builder_id=9)
    calls = _patch_check_in(mocker, buyer=mocker.Mock(id=4), stall=stall, interest=None)
    db = mock_session(mocker)

    with pytest.raises(NotFound) as e:
        await interest_service.check_in(db, 1, _check_in_schema())

    assert str(e.value) == "Registration not found for this stall type"
    calls["interest"].assert_awaited_once_with(db, 4, 1, 2)
    db.flush.assert_not_awaited()


@pytest.mark.asyncio
async def test_check_in_at_unbooked_stall_raises_conflict(mocker, auditspan_stub):
    stall = mocker.Mock(id=3, event_id=1, stall_type_id=2, builder_id=None)
    calls = _patch_check_in(mocker, buyer=mocker.Mock(id=4), stall=stall)
    db = mock_session(mocker)

    with pytest.raises(Conflict) as e:
        await interest_service.check_in(db, 1, _check_in_schema())

    assert str(e.value) == "Stall is not booked"
    assert e.value.ctx == {"stall_id": 3}
    calls["interest"].assert_not_awaited()
    db.flush.assert_not_awaited()
    assert auditspan_stub[0].exit_args[0] is Conflict


@time_machine.travel("2026-03-01 11:00:00", tick=False)
@pytest.mark.asyncio
async def test_check_in_marks_interest_attended_at_stall(mocker):
    stall = mocker.Mock(id=3, event_id=1, stall_type_id=2, builder_id=9)
    interest = mocker.Mock(id=8, is_attended=False, stall_id=None, attended_at=None)
    _patch_check_in(mocker, buyer=mocker.Mock(id=4), stall=stall, interest=interest)
    db = mock_session(mocker)

    result = await interest_service.check_in(db, 1, _check_in_schema())

    assert result is interest
    assert interest.is_attended is True
    assert interest.stall_id == 3
    assert interest.attended_at == datetime(2026, 3, 1, 11, 0, tzinfo=timezone.utc)
    db.flush.assert_awaited_once()


@pytest.mark.asyncio
async def test_check_in_again_at_same_stall_is_a_no_op(mocker, auditspan_stub):
    stall = mocker.Mock(id=3, event_id=1, stall_type_id=2, builder_id=9)
    attended_at = datetime(2026, 3, 1, 11, 0, tzinfo=timezone.utc)
    interest = mocker.Mock(id=8, is_attended=True, stall_id=3, attended_at=attended_at)
    _patch_check_in(mocker, buyer=mocker.Mock(id=4), stall=stall, interest=interest)
    db = mock_session(mocker)

    result = await interest_service.check_in(db, 1, _check_in_schema())

    assert result is interest
    assert interest.attended_at == attended_at
    db.flush.assert_not_awaited()
    assert auditspan_stub[0].meta["already_attended"] is True


@pytest.mark.asyncio
async def test_check_in_at_second_stall_of_same_type_raises_conflict(mocker):
    stall = mocker.Mock(id=5, event_id=1, stall_type_id=2, builder_id=9)
    interest = mocker.Mock(id=8, is_attended=True, stall_id=3)
    _patch_check_in(mocker, buyer=mocker.Mock(id=4), stall=stall, interest=interest)
    db = mock_session(mocker)

    with pytest.raises(Conflict) as e:
        await interest_service.check_in(db, 1, _check_in_schema(stall_id=5))

    assert e.value.ctx == {"interest_id": 8, "stall_id": 3}
    assert interest.stall_id == 3
    db.flush.assert_not_awaited()


@pytest.mark.asyncio
async def test_list_builder_interests_wraps_rows_in_page(mocker):
    row = {
        "id": 1,
        "interest_date": datetime(2026, 2, 1, tzinfo=timezone.utc),
        "is_attended": False,
        "stall_id": None,
        "event_id": 1,
        "event_name": "Pune Property Expo",
        "city": "Pune",
        "state": "MH",
        "stall_type_name": "Gold",
        "stall_price": "5000.00",
        "buyer_name": "Asha",
        "buyer_mobile": MOBILE,
        "buyer_email": "asha@nativenest.in",
    }
    spy = mocker.patch(f"{SVC}.crud.list_builder_interests", new=mocker.AsyncMock(return_value=([row], 41)))
    db = mocker.Mock()

    page = await interest_service.list_builder_interests(
        db, mocker.Mock(id=7), BuilderInterestsQueryDTO(event_id=1, page=2, page_size=20)
    )

    spy.assert_awaited_once_with(db, 7, page=2, page_size=20, event_id=1)
    assert page.total == 41
    assert page.pages == 3
    assert page.items[0].stall_type_name == "Gold"


@pytest.mark.asyncio
async def test_list_booked_builders_for_unknown_event_raises_not_found(mocker):
    mocker.patch(f"{SVC}.events_crud.get_event_by_id", new=mocker.AsyncMock(return_value=None))
    list_spy = mocker.patch(f"{SVC}.crud.list_booked_builders", new=mocker.AsyncMock())

    with pytest.raises(NotFound):
        await interest_service.list_booked_builders(mock_session(mocker), mocker.Mock(id=4), 1)

    list_spy.assert_not_awaited()


@pytest.mark.asyncio
async def test_list_booked_builders_scopes_rows_to_buyer(mocker):
    event = mocker.Mock(id=1)
    mocker.patch(f"{SVC}.events_crud.get_event_by_id", new=mocker.AsyncMock(return_value=event))
    rows = [{"builder_id": 7, "builder_name": "Acme Homes", "stall_number": 2}]
    list_spy = mocker.patch(f"{SVC}.crud.list_booked_builders", new=mocker.AsyncMock(return_value=rows))
    db = mock_session(mocker)

    result, ev = await interest_service.list_booked_builders(db, mocker.Mock(id=4), 1)

    assert result == rows
    assert ev is event
    list_spy.assert_awaited_once_with(db, 1, 4)
