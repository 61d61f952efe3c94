import json
import os

import pytest

from gebeya.core.enums import LocalStoreKey
from gebeya.core.exceptions import LocalStoreError
from gebeya.schemas.cart import CartItem, Coordinates, ShippingAddress
from gebeya.services.local_store import AddressBook, CartCache, Favorites, LocalStore


"""
1. Raw key/value store
"""

def test_empty_defaults(local_store):
    assert local_store.get(LocalStoreKey.CART) == []
    assert local_store.get(LocalStoreKey.FAVORITES) == []
    assert local_store.get(LocalStoreKey.SAVED_SHIPPING_ADDRESS) == {}
    assert local_store.get("unknownKey") is None
    assert local_store.get("unknownKey", "fallback") == "fallback"


def test_defaults_are_not_shared(local_store):
    local_store.get(LocalStoreKey.CART).append("mutated")
    assert local_store.get(LocalStoreKey.CART) == []


def test_set_survives_reopen(local_store):
    local_store.set(LocalStoreKey.FAVORITES, ["P1", "P2"])

    reopened = LocalStore(local_store.path)
    assert reopened.get(LocalStoreKey.FAVORITES) == ["P1", "P2"]
    with open(local_store.path, encoding="utf-8") as f:
        assert json.load(f) == {"favorites": ["P1", "P2"]}


def test_set_replaces_whole_value(local_store):
    local_store.set("cart", [{"id": "P1_V1"}, {"id": "P1_V2"}])
    local_store.set("cart", [{"id": "P2_V1"}])

    assert local_store.get("cart") == [{"id": "P2_V1"}]


def test_remove(local_store):
    local_store.set(LocalStoreKey.CART, [{"id": "P1_V1"}])
    local_store.set(LocalStoreKey.FAVORITES, ["P1"])

    local_store.remove(LocalStoreKey.CART)
    local_store.remove(LocalStoreKey.CART)

    assert local_store.get(LocalStoreKey.CART) == []
    assert local_store.get(LocalStoreKey.FAVORITES) == ["P1"]


def test_writes_leave_no_temp_files(local_store):
    local_store.set(LocalStoreKey.CART, [])
    local_store.set(LocalStoreKey.FAVORITES, ["P1"])

    assert os.listdir(os.path.dirname(local_store.path)) == ["local_store.json"]


@pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]"])
def test_corrupt_store_raises(tmp_path, content):
    path = tmp_path / "local_store.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(LocalStoreError):
        LocalStore(str(path)).get(LocalStoreKey.CART)


def test_unserialisable_value_raises(local_store):
    with pytest.raises(LocalStoreError):
        local_store.set(LocalStoreKey.CART, [object()])


"""
2. Cart cache
"""

def _item(item_id="P1_V1", quantity=1, price=600.0):
    return CartItem(id=item_id, name="Habesha Kemis", price=price, quantity=quantity, variant_details={"size": "M"})


def test_add_item_merges_same_variant(local_store):
    cart = CartCache(local_store)

    cart.add_item(_item(quantity=1))
    cart.add_item(_item(quantity=2))
    items = cart.add_item(_item("P1_V2", quantity=1))

    assert [(i.id, i.quantity) for i in items] == [("P1_V1", 3), ("P1_V2", 1)]
    assert local_store.get(LocalStoreKey.CART)[0]["variantDetails"] == {"size": "M"}


def test_update_quantity(local_store):
    cart = CartCache(local_store)
    cart.add_item(_item())

    assert cart.update_quantity("P1_V1", 4)[0].quantity == 4
    assert cart.update_quantity("P1_V1", 0) == []


def test_remove_item(local_store):
    cart = CartCache(local_store)
    cart.add_item(_item())
    cart.add_item(_item("P2_V1"))

    assert [i.id for i in cart.remove_item("P1_V1")] == ["P2_V1"]


def test_total_and_clear(local_store):
    cart = CartCache(local_store)
    cart.add_item(_item(quantity=2, price=19.995))
    cart.add_item(_item("P2_V1", quantity=1, price=0.01))

    assert cart.total() == 40.0

    cart.clear()
    assert cart.get_items() == []
    assert cart.total() == 0


"""
3. Address book and favorites
"""

def test_address_book_empty(local_store):
    assert AddressBook(local_store).load() is None


def test_address_book_save_normalises(local_store):
    book = AddressBook(local_store)
    address = ShippingAddress(
        country="",
        first_name="Abebe",
        city="Addis Ababa",
        coordinates=Coordinates(latitude=9.0, longitude=38.7),
    )

    saved = book.save(address)

    assert saved.country == "Ethiopia"
    stored = local_store.get(LocalStoreKey.SAVED_SHIPPING_ADDRESS)
    assert stored["firstName"] == "Abebe"
    assert "coordinates" not in stored
    assert book.load().city == "Addis Ababa"


def test_address_book_overwrites(local_store):
    book = AddressBook(local_store)
    book.save(ShippingAddress(city="Adama"))
    book.save(ShippingAddress(city="Bahir Dar"))

    assert book.load().city == "Bahir Dar"


def test_favorites_toggle(local_store):
    favorites = Favorites(local_store)

    assert favorites.toggle("P1") is True
    favorites.add("P1")
    favorites.add("P2")
    assert favorites.list() == ["P1", "P2"]
    assert favorites.toggle("P1") is False
    assert favorites.list() == ["P2"]
