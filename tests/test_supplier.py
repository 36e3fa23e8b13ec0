"""Tests for supplier service and stock supplier links."""

from decimal import Decimal

import pytest

from chaibook.domain.entities import Supplier
from chaibook.domain.errors import ConflictError, NotFoundError, ValidationError


@pytest.fixture
def amul_id(supplier_service):
    return supplier_service.add_supplier(
        "Amul Dairy", contact_person="Mr. Shah", phone="98250 12345", email="orders@amul.example"
    )


def _milk(stock_service, **kwargs):
    return stock_service.add_stock(
        "Milk", "Dairy", "litre", Decimal("20"), Decimal("56"), Decimal("0"), **kwargs
    )


def test_add_supplier_roundtrip(supplier_service, amul_id, clock):
    supplier = supplier_service.get_supplier(amul_id)

    assert isinstance(supplier, Supplier)
    assert supplier.name == "Amul Dairy"
    assert supplier.contact_person == "Mr. Shah"
    assert supplier.email == "orders@amul.example"
    assert supplier.address is None
    assert supplier.is_active is True
    assert supplier.created_at == clock()


def test_add_supplier_strips_and_blanks(supplier_service):
    supplier_id = supplier_service.add_supplier("  Tata Tea  ", phone="   ", notes=" weekly ")

    supplier = supplier_service.get_supplier(supplier_id)
    assert supplier.name == "Tata Tea"
    assert supplier.phone is None
    assert supplier.notes == "weekly"


@pytest.mark.parametrize("name", ["", "   "])
def test_add_supplier_requires_name(supplier_service, name):
    with pytest.raises(ValidationError, match="Supplier name cannot be empty"):
        supplier_service.add_supplier(name)


def test_add_supplier_rejects_bad_email(supplier_service):
    with pytest.raises(ValidationError, match="Invalid email address"):
        supplier_service.add_supplier("Amul Dairy", email="orders.amul.example")


def test_list_suppliers_by_name_and_activity(supplier_service):
    tata = supplier_service.add_supplier("Tata Tea")
    supplier_service.add_supplier("Amul Dairy")
    supplier_service.deactivate_supplier(tata)

    assert [s.name for s in supplier_service.list_suppliers()] == ["Amul Dairy", "Tata Tea"]
    assert [s.name for s in supplier_service.list_suppliers(include_inactive=False)] == [
        "Amul Dairy"
    ]


def test_update_supplier_changes_and_clears(supplier_service, amul_id, clock):
    clock.advance(hours=1)

    supplier = supplier_service.update_supplier(amul_id, name="Amul", phone="")

    assert supplier.name == "Amul"
    assert supplier.phone is None
    assert supplier.contact_person == "Mr. Shah"
    assert supplier.updated_at == clock()


def test_update_supplier_rejects_unknown_field(supplier_service, amul_id):
    with pytest.raises(ValidationError, match="Unknown supplier fields: gstin"):
        supplier_service.update_supplier(amul_id, gstin="24AAACA1234A1Z5")


def test_update_supplier_rejects_bad_email(supplier_service, amul_id):
    with pytest.raises(ValidationError, match="Invalid email address"):
        supplier_service.update_supplier(amul_id, email="nobody")


def test_update_missing_supplier(supplier_service):
    with pytest.raises(NotFoundError):
        supplier_service.update_supplier(99, name="Ghost")


def test_deactivate_and_reactivate(supplier_service, amul_id):
    supplier_service.deactivate_supplier(amul_id)
    assert supplier_service.get_supplier(amul_id).is_active is False

    with pytest.raises(ConflictError, match="already inactive"):
        supplier_service.deactivate_supplier(amul_id)

    supplier_service.reactivate_supplier(amul_id)
    assert supplier_service.get_supplier(amul_id).is_active is True

    with pytest.raises(ConflictError, match="already active"):
        supplier_service.reactivate_supplier(amul_id)


def test_stock_linked_to_supplier(stock_service, supplier_service, amul_id):
    milk = _milk(stock_service, supplier_id=amul_id)
    _milk(stock_service)

    assert stock_service.get_stock(milk).supplier_id == amul_id
    assert stock_service.supplier_of(stock_service.get_stock(milk)).name == "Amul Dairy"
    assert [i.id for i in supplier_service.list_supplied_items(amul_id)] == [milk]


def test_stock_link_to_missing_supplier(stock_service):
    with pytest.raises(NotFoundError, match="Supplier 42"):
        _milk(stock_service, supplier_id=42)


def test_stock_link_to_inactive_supplier(stock_service, supplier_service, amul_id):
    supplier_service.deactivate_supplier(amul_id)

    with pytest.raises(ValidationError, match=f"Supplier {amul_id} is inactive"):
        _milk(stock_service, supplier_id=amul_id)


def test_deactivation_keeps_existing_links(stock_service, supplier_service, amul_id):
    milk = _milk(stock_service, supplier_id=amul_id)

    supplier_service.deactivate_supplier(amul_id)

    assert stock_service.get_stock(milk).supplier_id == amul_id


def test_edit_stock_relinks_and_unlinks(stock_service, supplier_service, amul_id):
    milk = _milk(stock_service)
    tata = supplier_service.add_supplier("Tata Tea")

    assert stock_service.edit_stock(milk, supplier_id=amul_id).supplier_id == amul_id
    assert stock_service.edit_stock(milk, supplier_id=tata).supplier_id == tata
    item = stock_service.edit_stock(milk, supplier_id=None)

    assert item.supplier_id is None
    assert stock_service.supplier_of(item) is None
    assert supplier_service.list_supplied_items(tata) == []


def test_edit_stock_rejects_missing_supplier(stock_service):
    milk = _milk(stock_service)

    with pytest.raises(NotFoundError):
        stock_service.edit_stock(milk, supplier_id=7)


def test_list_supplied_items_for_missing_supplier(supplier_service):
    with pytest.raises(NotFoundError):
        supplier_service.list_supplied_items(3)


def test_supplier_cache_refreshed_after_update(supplier_service, amul_id):
    assert supplier_service.list_suppliers()[0].name == "Amul Dairy"

    supplier_service.update_supplier(amul_id, name="Amul")

    assert supplier_service.list_suppliers()[0].name == "Amul"
