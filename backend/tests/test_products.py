import pytest

from backoffice.errors import AlreadyGroupedError, ConflictError, NotFoundError, ValidationFailed
from backoffice.models import ProductGroup, ProductGroupItem
from backoffice.schemas.products import ChannelPricing
from backoffice.services.products import (
    create_group,
    delete_group,
    list_groups,
    list_products,
    pricing_table,
    suggested_sale_price,
    update_group,
    update_product,
)
from backoffice.utils.product_resolver import ProductResolver


def test_resolver_creates_once_and_refreshes_name(db):
    resolver = ProductResolver(db)
    first = resolver.ensure_product("shopee", "VL-01", "Vela")
    again = resolver.ensure_product("shopee", "VL-01", "Vela Lavanda")
    other_channel = resolver.ensure_product("tiktok", "VL-01", "Vela")
    db.commit()

    assert first == again
    assert other_channel != first
    assert resolver.created == 2
    names = {p.code: p.name for p in list_products(db)}
    assert names == {"shopee_VL-01": "Vela Lavanda", "tiktok_VL-01": "Vela"}


def test_resolver_never_touches_cost_price(db, make_product):
    product = make_product("VL-01", "Vela", cost_price=12.5)
    db.commit()
    ProductResolver(db).ensure_product("shopee", "VL-01", "Vela nova")
    db.commit()
    db.refresh(product)
    assert float(product.cost_price) == 12.5


def test_update_product_cost_price(db, make_product):
    product = make_product("VL-01")
    db.commit()
    update_product(db, product.id, cost_price=9.9)
    [row] = list_products(db)
    assert row.cost_price == 9.9
    with pytest.raises(NotFoundError):
        update_product(db, 999, cost_price=1)


def test_create_group(db, make_product):
    a, b = make_product("A"), make_product("B")
    db.commit()
    group = create_group(db, " Vela Lavanda ", [a.id, b.id, a.id])
    assert group.name == "Vela Lavanda"
    assert {p.id for p in group.products} == {a.id, b.id}


def test_group_needs_two_distinct_products(db, make_product):
    a = make_product("A")
    db.commit()
    with pytest.raises(ValidationFailed):
        create_group(db, "G", [a.id, a.id])


def test_group_with_unknown_product(db, make_product):
    a = make_product("A")
    db.commit()
    with pytest.raises(NotFoundError):
        create_group(db, "G", [a.id, 999])


def test_product_in_another_group_fails_without_changes(db, make_product):
    a, b, c = make_product("A"), make_product("B"), make_product("C")
    db.commit()
    first = create_group(db, "First", [a.id, b.id])

    with pytest.raises(AlreadyGroupedError) as exc_info:
        create_group(db, "Second", [b.id, c.id])

    assert isinstance(exc_info.value, ConflictError)
    assert exc_info.value.product_ids == [b.id]
    assert db.query(ProductGroup).count() == 1
    [group] = list_groups(db)
    assert group.id == first.id
    assert {p.id for p in group.products} == {a.id, b.id}


def test_update_group_members(db, make_product):
    a, b, c = make_product("A"), make_product("B"), make_product("C")
    db.commit()
    group = create_group(db, "G", [a.id, b.id])

    updated = update_group(db, group.id, "G2", [a.id, c.id])
    assert updated.name == "G2"
    assert {p.id for p in updated.products} == {a.id, c.id}
    assert db.query(ProductGroupItem).count() == 2

    # A group can keep its own members
    update_group(db, group.id, None, [a.id, c.id])


def test_update_group_rejects_member_of_other_group(db, make_product):
    a, b, c, d = (make_product(x) for x in "ABCD")
    db.commit()
    g1 = create_group(db, "G1", [a.id, b.id])
    create_group(db, "G2", [c.id, d.id])
    with pytest.raises(AlreadyGroupedError):
        update_group(db, g1.id, None, [a.id, c.id])
    [reloaded] = [g for g in list_groups(db) if g.id == g1.id]
    assert {p.id for p in reloaded.products} == {a.id, b.id}


def test_delete_group_frees_products(db, make_product):
    a, b = make_product("A"), make_product("B")
    db.commit()
    group = create_group(db, "G", [a.id, b.id])
    delete_group(db, group.id)
    assert list_groups(db) == []
    again = create_group(db, "Again", [a.id, b.id])
    delete_group(db, again.id)
    with pytest.raises(NotFoundError):
        delete_group(db, again.id)


def test_suggested_sale_price():
    pricing = ChannelPricing(commission_percent=20, tax_percent=6, profit_percent=24)
    assert suggested_sale_price(50.0, pricing) == 100.0
    assert suggested_sale_price(None, pricing) is None


def test_suggested_sale_price_none_when_percentages_reach_100():
    pricing = ChannelPricing(commission_percent=50, profit_percent=50)
    assert suggested_sale_price(10.0, pricing) is None
    pricing = ChannelPricing(commission_percent=60, profit_percent=50)
    assert suggested_sale_price(10.0, pricing) is None


def test_pricing_table(db, make_product):
    make_product("A", "Vela", cost_price=50)
    make_product("B", "Difusor")
    db.commit()
    rows = {r.name: r for r in pricing_table(db, ChannelPricing(profit_percent=50))}
    assert rows["Vela"].suggested_price == 100.0
    assert rows["Difusor"].suggested_price is None
