"""Delivery addresses and the address book port.

The checkout only selects among a customer's saved addresses; creating one
goes through the address book, which keeps exactly one default address.
"""

import re
from abc import ABC, abstractmethod
from enum import Enum
from uuid import uuid4

from protean import invariant
from protean.exceptions import ValidationError as DomainValidationError
from protean.fields import Boolean, String
from pydantic import BaseModel

from checkout.domain import checkout
from checkout.errors import ValidationError

_ZIP_PATTERN = re.compile(r"^\d{5}(-\d{4})?$")


class AddressType(Enum):
    HOME = "Home"
    WORK = "Work"
    OTHER = "Other"


@checkout.value_object
class Address:
    """A saved delivery location.

    Replaced wholesale when the customer edits it; the session only ever
    holds a copy of the address it will deliver to.
    """

    id: String(required=True, max_length=50)
    type: String(choices=AddressType, default=AddressType.HOME.value)
    street: String(required=True, max_length=255)
    apartment: String(max_length=100)
    city: String(required=True, max_length=100)
    state: String(required=True, max_length=100)
    zip_code: String(required=True, max_length=10)
    instructions: String(max_length=255)
    is_default: Boolean(default=False)

    @invariant.post
    def zip_code_must_be_us_format(self):
        if self.zip_code and not _ZIP_PATTERN.match(self.zip_code):
            raise DomainValidationError({"zip_code": ["Please enter a valid ZIP code"]})

    @property
    def full_address(self) -> str:
        street = f"{self.street}, {self.apartment}" if self.apartment else self.street
        return f"{street}, {self.city}, {self.state} {self.zip_code}"

    def with_default(self, is_default: bool) -> "Address":
        return Address(**{**self.to_dict(), "is_default": is_default})


class NewAddress(BaseModel):
    """Address form input, validated field by field before it is saved."""

    type: AddressType = AddressType.HOME
    street: str = ""
    apartment: str | None = None
    city: str = ""
    state: str = ""
    zip_code: str = ""
    instructions: str | None = None
    is_default: bool = False

    def errors(self) -> dict[str, list[str]]:
        errors: dict[str, list[str]] = {}
        if not self.street.strip():
            errors["street"] = ["Street address is required"]
        if not self.city.strip():
            errors["city"] = ["City is required"]
        if not self.state.strip():
            errors["state"] = ["State is required"]
        if not self.zip_code.strip():
            errors["zip_code"] = ["ZIP code is required"]
        elif not _ZIP_PATTERN.match(self.zip_code.strip()):
            errors["zip_code"] = ["Please enter a valid ZIP code"]
        return errors

    def validate_fields(self) -> None:
        """Raise ValidationError listing every invalid field."""
        errors = self.errors()
        if errors:
            raise ValidationError(errors)

    def to_address(self, address_id: str, is_default: bool) -> Address:
        return Address(
            id=address_id,
            type=self.type.value,
            street=self.street.strip(),
            apartment=(self.apartment or "").strip() or None,
            city=self.city.strip(),
            state=self.state.strip(),
            zip_code=self.zip_code.strip(),
            instructions=(self.instructions or "").strip() or None,
            is_default=is_default,
        )


class AddressBook(ABC):
    """Abstract interface to the customer's saved addresses."""

    @abstractmethod
    async def list_addresses(self) -> list[Address]: ...

    @abstractmethod
    async def create_address(self, new_address: NewAddress) -> Address:
        """Validate and save an address. Raises ValidationError."""
        ...


class InMemoryAddressBook(AddressBook):
    """Address book kept in memory; the first address becomes the default."""

    def __init__(self, addresses: list[Address] | None = None) -> None:
        self._addresses: list[Address] = list(addresses or [])

    async def list_addresses(self) -> list[Address]:
        return list(self._addresses)

    async def create_address(self, new_address: NewAddress) -> Address:
        new_address.validate_fields()

        make_default = new_address.is_default or not self._addresses
        if make_default:
            self._addresses = [a.with_default(False) for a in self._addresses]

        address = new_address.to_address(f"addr-{uuid4().hex[:8]}", is_default=make_default)
        self._addresses.append(address)
        return address
