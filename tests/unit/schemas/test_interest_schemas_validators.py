import pytest
from pydantic import ValidationError
from nativenest.domain.interests.schemas import StallCheckInDTO, StallInterestCreateDTO


@pytest.mark.parametrize(
    "mobile, expected",
    [
        ("9876543210", "+919876543210"),
        (" +91 98765-43210 ", "+919876543210"),
    ]
)
def test_check_in_mobile_is_normalized(mobile, expected):
    dto = StallCheckInDTO(stall_id=3, mobile_number=mobile)
    assert dto.mobile_number == expected


def test_check_in_invalid_mobile_raises_validation_error():
    with pytest.raises(ValidationError) as e:
        StallCheckInDTO(stall_id=3, mobile_number="123456")
    assert "Invalid phone number" in str(e.value)


@pytest.mark.parametrize("stall_type_id", [0, -1])
def test_interest_requires_positive_stall_type(stall_type_id):
    with pytest.raises(ValidationError):
        StallInterestCreateDTO(stall_type_id=stall_type_id)
