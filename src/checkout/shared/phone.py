"""PhoneNumber value object for the delivery contact number.

Accepts digits, spaces, hyphens, parentheses, and an optional leading +.
"""

import re

from protean import invariant
from protean.exceptions import ValidationError as DomainValidationError
from protean.fields import String

from checkout.domain import checkout
from checkout.errors import ValidationError

MAX_PHONE_LENGTH = 20

_PHONE_PATTERN = re.compile(r"^\+?[\d\s\-()]+$")


@checkout.value_object
class PhoneNumber:
    number: String(max_length=MAX_PHONE_LENGTH)

    @invariant.post
    def validate_phone_format(self):
        """Ensure the phone number contains only valid characters and structure."""
        number = self.number
        if not number:
            raise DomainValidationError({"contact_phone": ["Contact phone number is required"]})

        # Must contain at least one digit
        if not re.search(r"\d", number) or not _PHONE_PATTERN.match(number):
            raise DomainValidationError({"contact_phone": [f"Invalid phone number: {number!r}"]})

    @classmethod
    def parse(cls, number: str | None) -> "PhoneNumber":
        """Build a PhoneNumber from raw input, or raise ValidationError."""
        number = (number or "").strip()

        if not number:
            raise ValidationError({"contact_phone": ["Contact phone number is required"]})
        if len(number) > MAX_PHONE_LENGTH:
            raise ValidationError({"contact_phone": [f"Phone number must be at most {MAX_PHONE_LENGTH} characters"]})

        try:
            return cls(number=number)
        except DomainValidationError as exc:
            raise ValidationError.from_domain(exc, field="contact_phone") from exc


def normalize_contact_phone(number: str | None) -> str:
    """Return the trimmed phone number, or raise ValidationError."""
    return PhoneNumber.parse(number).number
