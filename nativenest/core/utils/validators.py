from phonenumbers import parse, is_valid_number, NumberParseException, format_number, PhoneNumberFormat
from nativenest.core.config import DEFAULT_PHONE_REGION


def normalize_phone(v: str, default_region: str | None = DEFAULT_PHONE_REGION) -> str:
    try:
        num = parse(v, default_region)
    except NumberParseException:
        raise ValueError("Invalid phone number")
    if not is_valid_number(num):
        raise ValueError("Invalid phone number")
    return format_number(num, PhoneNumberFormat.E164)

