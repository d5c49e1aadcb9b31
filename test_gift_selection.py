import pytest

from storefront.client import CartManager, GiftSelection
from storefront.client.models import FREE_PRODUCT, GIFT_POPUP, ProductInfo


@pytest.fixture
def popup_products(client, admin_headers, make_product):
    gifts = [make_product(name=name, price=199) for name in ("Lip Balm", "Soap", "Hair Oil")]
    response = client.put("/api/admin/gift-popup", json={
        "title": "Claim Your Complimentary Gift",
        "subTitle": "Choose Any 2",
        "active": True,
        "minCartValue": 1000,
        "maxCartValue": 4000,
        "maxSelectableGifts": 2,
        "giftProducts": [g["id"] for g in gifts],
    }, headers=admin_headers)
    assert response.status_code == 200
    return [g["id"] for g in gifts]


async def setup(api, store, make_product, price=1200):
    manager = CartManager(api, session_store=store)
    await manager.load()
    paid = await manager.add_item(ProductInfo.model_validate(make_product(name="Body Lotion", price=price)))
    popup = await GiftSelection.load(manager, api)
    return manager, popup, paid


@pytest.mark.asyncio
async def test_third_gift_is_refused(api, store, make_product, popup_products):
    manager, popup, _ = await setup(api, store, make_product)
    first, second, third = popup_products
    assert popup.visible

    assert await popup.toggle(first)
    assert await popup.toggle(second)
    assert popup.at_limit
    assert not popup.can_select(third)
    assert not await popup.toggle(third)
    assert popup.selected == [first, second]

    gifts = [line for line in manager.items if line.is_gift]
    assert sorted(line.product.id for line in gifts) == [first, second]
    assert all(line.unit_price == 0 and line.gift_source == GIFT_POPUP for line in gifts)


@pytest.mark.asyncio
async def test_deselect_removes_gift_line(api, store, make_product, popup_products):
    manager, popup, _ = await setup(api, store, make_product)
    gift = popup_products[0]

    await popup.toggle(gift)
    assert manager.find_line(gift, is_free=True) is not None
    assert await popup.toggle(gift)
    assert popup.selected == []
    assert manager.find_line(gift, is_free=True) is None

    cart = await api.get_cart(session_id=store.session_id())
    assert [i["productId"] for i in cart["items"] if i["isFree"]] == []


@pytest.mark.asyncio
async def test_leaving_band_strips_gifts(api, store, make_product, popup_products):
    manager, popup, paid = await setup(api, store, make_product, price=500)
    assert not popup.eligible
    assert not await popup.toggle(popup_products[0])

    await manager.update_quantity(paid.id, 3)
    assert popup.eligible
    await popup.toggle(popup_products[0])
    await popup.toggle(popup_products[1])

    await manager.update_quantity(paid.id, 9)
    assert not popup.eligible
    assert popup.selected == []
    assert not any(line.is_gift for line in manager.items)


@pytest.mark.asyncio
async def test_inactive_popup_is_hidden(api, store, make_product):
    manager, popup, _ = await setup(api, store, make_product, price=5000)
    assert not popup.config.active
    assert not popup.visible
    assert not await popup.toggle(1)


@pytest.mark.asyncio
async def test_close_and_new_cart_resets(api, store, make_product, popup_products):
    manager, popup, _ = await setup(api, store, make_product)
    await popup.toggle(popup_products[0])
    popup.close()
    assert not popup.visible

    popup.on_cart_changed(manager.cart_id)
    assert popup.dismissed

    popup.on_cart_changed(manager.cart_id + 100)
    assert not popup.dismissed
    assert popup.selected == []


@pytest.mark.asyncio
async def test_popup_gift_and_free_product_share_one_line(api, store, client, admin_headers, make_product):
    """A product that is both an automatic free product and a popup gift gets one zero-price line"""
    shared = make_product(name="Mini Serum", price=450)
    client.post("/api/admin/free-products", json={"productId": shared["id"], "minOrderValue": 1000},
                headers=admin_headers)
    client.put("/api/admin/gift-popup", json={
        "title": "Gifts", "active": True, "minCartValue": 1000, "maxSelectableGifts": 1,
        "giftProducts": [shared["id"]],
    }, headers=admin_headers)

    manager, popup, _ = await setup(api, store, make_product)
    assert await popup.toggle(shared["id"])
    free_lines = [line for line in manager.items if line.product.id == shared["id"] and line.is_free]
    assert len(free_lines) == 1


@pytest.mark.asyncio
async def test_selected_shared_gift_survives_leaving_rule_band(api, store, client, admin_headers, make_product):
    """Past the free-product band but inside the popup band, the picked gift stays"""
    shared = make_product(name="Mini Serum", price=450)
    client.post("/api/admin/free-products",
                json={"productId": shared["id"], "minOrderValue": 1000, "maxOrderValue": 2000},
                headers=admin_headers)
    client.put("/api/admin/gift-popup", json={
        "title": "Gifts", "active": True, "minCartValue": 1000, "maxCartValue": 5000,
        "maxSelectableGifts": 1, "giftProducts": [shared["id"]],
    }, headers=admin_headers)

    manager, popup, paid = await setup(api, store, make_product)
    assert manager.find_line(shared["id"], is_free=True).gift_source == FREE_PRODUCT
    assert await popup.toggle(shared["id"])
    assert manager.find_line(shared["id"], is_free=True).gift_source == GIFT_POPUP

    await manager.update_quantity(paid.id, 3)
    assert manager.subtotal == 3600
    assert popup.selected == [shared["id"]]
    assert manager.find_line(shared["id"], is_free=True) is not None

    # deselecting outside the rule band leaves no zero-price line behind
    assert await popup.toggle(shared["id"])
    assert popup.selected == []
    assert manager.find_line(shared["id"], is_free=True) is None
    cart = await api.get_cart(session_id=store.session_id())
    assert [i for i in cart["items"] if i["isFree"]] == []


@pytest.mark.asyncio
async def test_selection_follows_removed_gift_line(api, store, make_product, popup_products):
    manager, popup, _ = await setup(api, store, make_product)
    gift = popup_products[0]
    await popup.toggle(gift)

    assert await manager.remove_product(gift, is_free=True)
    assert popup.selected == []
    assert not popup.at_limit
