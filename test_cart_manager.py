import asyncio
import json

import httpx
import pytest

from storefront.client import CartManager, StorefrontAPI
from storefront.client.models import FREE_PRODUCT, ProductInfo


async def load_manager(api, store, **kwargs):
    manager = CartManager(api, session_store=store, **kwargs)
    await manager.load()
    return manager


async def server_items(api, manager):
    cart = await api.get_cart(session_id=manager.session_store.session_id())
    return {(i["productId"], i["isFree"], i["quantity"]) for i in cart["items"]}


@pytest.mark.asyncio
async def test_load_creates_session_cart(api, store):
    manager = await load_manager(api, store)
    assert manager.cart_id is not None
    assert manager.is_empty
    assert store.session_id().startswith("session_")

    again = await load_manager(api, store)
    assert again.cart_id == manager.cart_id


@pytest.mark.asyncio
async def test_add_item_merges_lines(api, store, make_product):
    product = ProductInfo.model_validate(make_product(price=120))
    manager = await load_manager(api, store)

    line = await manager.add_item(product, 2)
    assert isinstance(line.id, int)
    again = await manager.add_item(product, 1)
    assert again is line
    assert line.quantity == 3
    assert manager.subtotal == 360
    assert manager.total_items == 3
    assert await server_items(api, manager) == {(product.id, False, 3)}


@pytest.mark.asyncio
async def test_free_product_follows_subtotal(api, store, make_product, make_free_product):
    """Subtotal 900 -> 1500 -> 2500 against a 1000..2000 rule"""
    p1 = make_free_product(1000, 2000, name="P1")
    paid = ProductInfo.model_validate(make_product(price=100))
    manager = await load_manager(api, store)

    line = await manager.add_item(paid, 9)
    assert manager.subtotal == 900
    assert manager.find_line(p1["id"], is_free=True) is None

    assert await manager.update_quantity(line.id, 15)
    gift = manager.find_line(p1["id"], is_free=True)
    assert gift is not None
    assert gift.unit_price == 0
    assert gift.quantity == 1
    assert gift.gift_source == FREE_PRODUCT
    assert manager.subtotal == 1500
    assert await server_items(api, manager) == {(paid.id, False, 15), (p1["id"], True, 1)}

    assert await manager.update_quantity(line.id, 25)
    assert manager.find_line(p1["id"], is_free=True) is None
    assert await server_items(api, manager) == {(paid.id, False, 25)}


@pytest.mark.asyncio
async def test_new_rule_reconciles_on_refresh(api, store, make_product, make_free_product):
    """A rule created after load is applied as soon as the rules are refreshed"""
    paid = ProductInfo.model_validate(make_product(price=1500))
    manager = await load_manager(api, store)
    await manager.add_item(paid)

    freebie = make_free_product(1000, name="Freebie")
    assert await manager.load_free_products()
    line = manager.find_line(freebie["id"], is_free=True)
    assert line is not None
    assert line.gift_source == FREE_PRODUCT
    assert await server_items(api, manager) == {(paid.id, False, 1), (freebie["id"], True, 1)}

    # unchanged rules do not trigger another pass
    assert not await manager.load_free_products()


@pytest.mark.asyncio
async def test_reconcile_is_idempotent(api, store, make_product, make_free_product):
    make_free_product(500, name="Sample A")
    make_free_product(800, 3000, name="Sample B")
    paid = ProductInfo.model_validate(make_product(price=1000))
    manager = await load_manager(api, store, auto_reconcile=False)
    await manager.add_item(paid)

    assert await manager.reconcile_free_products() == 2
    assert await manager.reconcile_free_products() == 0
    assert await manager.reconcile_free_products() == 0
    assert len([line for line in manager.items if line.is_free]) == 2


@pytest.mark.asyncio
async def test_removing_last_paid_item_empties_cart(api, store, make_product, make_free_product):
    p1 = make_free_product(1000, name="P1")
    paid = ProductInfo.model_validate(make_product(price=1500))
    manager = await load_manager(api, store)

    line = await manager.add_item(paid)
    assert manager.find_line(p1["id"], is_free=True) is not None

    assert await manager.remove_item(line.id)
    assert manager.is_empty
    assert await server_items(api, manager) == set()


@pytest.mark.asyncio
async def test_quantity_zero_removes_line(api, store, make_product):
    paid = ProductInfo.model_validate(make_product(price=10))
    manager = await load_manager(api, store)
    line = await manager.add_item(paid, 4)
    assert await manager.update_quantity(line.id, 0)
    assert manager.is_empty


@pytest.mark.asyncio
async def test_clear_removes_everything(api, store, make_product, make_free_product):
    make_free_product(100, name="Freebie")
    manager = await load_manager(api, store)
    await manager.add_item(ProductInfo.model_validate(make_product(name="A", price=80)), 2)
    await manager.add_item(ProductInfo.model_validate(make_product(name="B", price=50)))
    assert any(line.is_free for line in manager.items)

    assert await manager.clear()
    assert manager.is_empty
    assert await server_items(api, manager) == set()


@pytest.mark.asyncio
async def test_load_picks_up_existing_lines(api, store, make_product):
    paid = ProductInfo.model_validate(make_product(price=40))
    first = await load_manager(api, store)
    await first.add_item(paid, 2)

    second = await load_manager(api, store)
    assert [(line.product.id, line.quantity) for line in second.items] == [(paid.id, 2)]
    assert second.subtotal == 80


# Failure handling against a scripted server

CART = {"id": 1, "sessionId": "s", "items": [], "subtotal": 0, "totalItems": 0}
PRODUCT = {"id": 5, "name": "Face Wash", "price": 200}


def line_payload(item_id, quantity, product=PRODUCT, is_free=False):
    return {"id": item_id, "cartId": 1, "productId": product["id"], "quantity": quantity,
            "isFree": is_free, "unitPrice": 0 if is_free else product["price"], "product": product}


def scripted_api(handler):
    return StorefrontAPI(base_url="http://testserver", transport=httpx.MockTransport(handler))


async def routes(request, extra):
    if request.method == "GET" and request.url.path == "/api/cart":
        return httpx.Response(200, json=CART)
    if request.url.path == "/api/free-products":
        return httpx.Response(200, json=[])
    return await extra(request)


@pytest.mark.asyncio
async def test_failed_add_rolls_back(store):
    messages = []

    async def fail(request):
        return httpx.Response(500, json={"message": "Internal server error"})

    async with scripted_api(lambda r: routes(r, fail)) as api:
        manager = await load_manager(api, store, notify=messages.append)
        assert await manager.add_item(ProductInfo.model_validate(PRODUCT)) is None

    assert manager.is_empty
    assert messages == ["Could not add item to cart: Internal server error"]


@pytest.mark.asyncio
async def test_network_error_rolls_back_quantity(store):
    cart = dict(CART, items=[line_payload(11, 2)])

    async def handler(request):
        if request.url.path == "/api/cart":
            return httpx.Response(200, json=cart)
        if request.url.path == "/api/free-products":
            return httpx.Response(200, json=[])
        raise httpx.ConnectError("connection refused", request=request)

    messages = []
    async with scripted_api(handler) as api:
        manager = await load_manager(api, store, notify=messages.append)
        assert not await manager.update_quantity(11, 5)

    assert manager.get_line(11).quantity == 2
    assert len(messages) == 1


@pytest.mark.parametrize("late_status", [200, 500])
@pytest.mark.asyncio
async def test_late_response_is_discarded(store, late_status):
    """An older PUT finishing last must not overwrite the newer quantity"""
    cart = dict(CART, items=[line_payload(11, 1)])
    release = asyncio.Event()

    async def handler(request):
        if request.url.path == "/api/cart":
            return httpx.Response(200, json=cart)
        if request.url.path == "/api/free-products":
            return httpx.Response(200, json=[])
        quantity = json.loads(request.content)["quantity"]
        if quantity == 2:
            await release.wait()
            if late_status != 200:
                return httpx.Response(late_status, json={"message": "boom"})
        else:
            release.set()
        return httpx.Response(200, json=line_payload(11, quantity))

    async with scripted_api(handler) as api:
        manager = await load_manager(api, store, notify=lambda message: None)
        await asyncio.gather(manager.update_quantity(11, 2), manager.update_quantity(11, 3))

    assert manager.get_line(11).quantity == 3


@pytest.mark.asyncio
async def test_remove_waits_for_pending_add(store):
    reached = asyncio.Event()
    release = asyncio.Event()
    deleted = []

    async def handler(request):
        if request.url.path == "/api/cart":
            return httpx.Response(200, json=CART)
        if request.url.path == "/api/free-products":
            return httpx.Response(200, json=[])
        if request.method == "POST":
            reached.set()
            await release.wait()
            return httpx.Response(201, json=line_payload(42, 1))
        if request.method == "DELETE":
            deleted.append(request.url.path)
            return httpx.Response(200, json={"message": "Cart item removed successfully"})
        return httpx.Response(405)

    async with scripted_api(handler) as api:
        manager = await load_manager(api, store)
        adding = asyncio.create_task(manager.add_item(ProductInfo.model_validate(PRODUCT)))
        await reached.wait()
        line = manager.find_line(PRODUCT["id"])
        assert line.is_pending

        removing = asyncio.create_task(manager.remove_item(line.id))
        release.set()
        await adding
        assert await removing

    assert deleted == ["/api/cart/items/42"]
    assert manager.is_empty


@pytest.mark.asyncio
async def test_remove_treats_missing_line_as_removed(store):
    cart = dict(CART, items=[line_payload(11, 1)])

    async def handler(request):
        if request.url.path == "/api/cart":
            return httpx.Response(200, json=cart)
        if request.url.path == "/api/free-products":
            return httpx.Response(200, json=[])
        return httpx.Response(404, json={"message": "Cart item not found"})

    async with scripted_api(handler) as api:
        manager = await load_manager(api, store)
        assert await manager.remove_item(11)
    assert manager.is_empty


@pytest.mark.asyncio
async def test_failed_clear_restores_lines(store):
    cart = dict(CART, items=[line_payload(11, 3)])

    async def handler(request):
        if request.url.path == "/api/cart":
            return httpx.Response(200, json=cart)
        if request.url.path == "/api/free-products":
            return httpx.Response(200, json=[])
        return httpx.Response(503, json={"message": "unavailable"})

    async with scripted_api(handler) as api:
        manager = await load_manager(api, store, notify=lambda message: None)
        assert not await manager.clear()
    assert [(line.id, line.quantity) for line in manager.items] == [(11, 3)]
