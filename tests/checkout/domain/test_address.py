"""Tests for delivery addresses and the in-memory address book."""

import pytest
from protean.exceptions import ValidationError as DomainValidationError

from checkout.address.address import Address, AddressType, InMemoryAddressBook, NewAddress
from checkout.errors import ValidationError


def _new_address(**overrides):
    defaults = {
        "street": "12 Mill Lane",
        "city": "Springfield",
        "state": "IL",
        "zip_code": "62701",
    }
    defaults.update(overrides)
    return NewAddress(**defaults)


class TestAddressValidation:
    def test_valid_address_has_no_errors(self):
        assert _new_address().errors() == {}

    def test_zip_plus_four_accepted(self):
        assert _new_address(zip_code="62701-1234").errors() == {}

    def test_every_missing_field_reported(self):
        errors = NewAddress().errors()
        assert set(errors) == {"street", "city", "state", "zip_code"}

    @pytest.mark.parametrize("zip_code", ["6270", "ABCDE", "62701-12"])
    def test_invalid_zip(self, zip_code):
        with pytest.raises(ValidationError) as exc:
            _new_address(zip_code=zip_code).validate_fields()
        assert exc.value.messages == {"zip_code": ["Please enter a valid ZIP code"]}


class TestFullAddress:
    def test_without_apartment(self):
        address = _new_address().to_address("addr-1", is_default=True)
        assert address.full_address == "12 Mill Lane, Springfield, IL 62701"

    def test_with_apartment(self):
        address = _new_address(apartment="Apt 4B").to_address("addr-1", is_default=True)
        assert address.full_address == "12 Mill Lane, Apt 4B, Springfield, IL 62701"



class TestAddressValueObject:
    def test_type_defaults_to_home(self):
        address = Address(id="addr-1", street="1 Main St", city="Austin", state="TX", zip_code="73301")
        assert AddressType(address.type) == AddressType.HOME

    def test_invalid_zip_rejected(self):
        with pytest.raises(DomainValidationError) as exc:
            Address(id="addr-1", street="1 Main St", city="Austin", state="TX", zip_code="7330")
        assert "zip_code" in exc.value.messages

    def test_missing_street_rejected(self):
        with pytest.raises(DomainValidationError):
            Address(id="addr-1", city="Austin", state="TX", zip_code="73301")

    def test_with_default_returns_a_new_address(self):
        address = _new_address().to_address("addr-1", is_default=True)
        cleared = address.with_default(False)

        assert cleared.is_default is False
        assert address.is_default is True
        assert cleared.full_address == address.full_address

@pytest.mark.asyncio
class TestInMemoryAddressBook:
    async def test_first_address_becomes_default(self):
        book = InMemoryAddressBook()
        address = await book.create_address(_new_address())

        assert address.is_default
        assert address.id.startswith("addr-")

    async def test_second_address_is_not_default(self):
        book = InMemoryAddressBook()
        await book.create_address(_new_address())
        second = await book.create_address(_new_address(street="1 Work Plaza", type=AddressType.WORK))

        assert not second.is_default

    async def test_new_default_clears_old_default(self):
        book = InMemoryAddressBook()
        first = await book.create_address(_new_address())
        await book.create_address(_new_address(street="9 Elm St", is_default=True))

        addresses = await book.list_addresses()
        defaults = [a for a in addresses if a.is_default]
        assert len(defaults) == 1
        assert defaults[0].street == "9 Elm St"
        assert next(a for a in addresses if a.id == first.id).is_default is False

    async def test_invalid_address_not_saved(self):
        book = InMemoryAddressBook()
        with pytest.raises(ValidationError):
            await book.create_address(_new_address(city=""))
        assert await book.list_addresses() == []

    async def test_seeded_addresses_listed(self):
        seeded = Address(id="addr-home", street="1 Main St", city="Austin", state="TX", zip_code="73301")
        book = InMemoryAddressBook([seeded])
        assert await book.list_addresses() == [seeded]
