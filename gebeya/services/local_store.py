"""
Device-local key/value store.

Holds the shopping cart, the last used shipping address and favorites as JSON
blobs in a single file, keyed by ``LocalStoreKey``. Reads return the last
written value or an empty default; writes replace the whole value for a key.
There is no transactional behaviour: one foreground caller is assumed.

``CartCache``, ``AddressBook`` and ``Favorites`` wrap the raw store with the
operations the product, cart and checkout screens perform.
"""

import json
import logging
import os
import tempfile
from copy import deepcopy
from typing import Any, Dict, List, Optional, Union

from gebeya.core.config import get_settings
from gebeya.core.enums import LocalStoreKey
from gebeya.core.exceptions import LocalStoreError
from gebeya.schemas.cart import CartItem, ShippingAddress

logger = logging.getLogger(__name__)

KeyLike = Union[LocalStoreKey, str]


def _key_name(key: KeyLike) -> str:
    return key.value if isinstance(key, LocalStoreKey) else key


def _default_for(key: KeyLike):
    try:
        return LocalStoreKey(_key_name(key)).empty_default
    except ValueError:
        return None


class LocalStore:
    def __init__(self, path: str):
        self.path = os.path.expanduser(path)

    def _load(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise LocalStoreError(f"Cannot read local store {self.path}: {e}")
        if not isinstance(data, dict):
            raise LocalStoreError(f"Local store {self.path} does not hold a JSON object")
        return data

    def _dump(self, data: Dict[str, Any]) -> None:
        directory = os.path.dirname(self.path) or "."
        tmp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".local_store.", suffix=".json")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise LocalStoreError(f"Cannot write local store {self.path}: {e}")

    def get(self, key: KeyLike, default: Any = None) -> Any:
        data = self._load()
        name = _key_name(key)
        if name in data:
            return data[name]
        if default is not None:
            return default
        return deepcopy(_default_for(key))

    def set(self, key: KeyLike, value: Any) -> None:
        data = self._load()
        data[_key_name(key)] = value
        self._dump(data)

    def remove(self, key: KeyLike) -> None:
        data = self._load()
        name = _key_name(key)
        if name in data:
            del data[name]
            self._dump(data)


class CartCache:
    def __init__(self, store: LocalStore):
        self.store = store

    def get_items(self) -> List[CartItem]:
        return [CartItem.model_validate(raw) for raw in self.store.get(LocalStoreKey.CART)]

    def save_items(self, items: List[CartItem]) -> None:
        self.store.set(LocalStoreKey.CART, [item.to_document() for item in items])

    def add_item(self, item: CartItem) -> List[CartItem]:
        """Add an item, merging quantity into an existing line with the same id."""
        items = self.get_items()
        for existing in items:
            if existing.id == item.id:
                existing.quantity += item.quantity
                break
        else:
            items.append(item)
        self.save_items(items)
        return items

    def update_quantity(self, item_id: str, quantity: int) -> List[CartItem]:
        if quantity <= 0:
            return self.remove_item(item_id)
        items = self.get_items()
        for existing in items:
            if existing.id == item_id:
                existing.quantity = quantity
        self.save_items(items)
        return items

    def remove_item(self, item_id: str) -> List[CartItem]:
        items = [item for item in self.get_items() if item.id != item_id]
        self.save_items(items)
        return items

    def clear(self) -> None:
        self.store.remove(LocalStoreKey.CART)
        logger.info("Cart cleared from local store")

    def total(self) -> float:
        return round(sum(item.line_total for item in self.get_items()), 2)


class AddressBook:
    def __init__(self, store: LocalStore, default_country: Optional[str] = None):
        self.store = store
        self.default_country = default_country or get_settings().DEFAULT_COUNTRY

    def load(self) -> Optional[ShippingAddress]:
        saved = self.store.get(LocalStoreKey.SAVED_SHIPPING_ADDRESS)
        if not saved:
            return None
        return ShippingAddress.model_validate(saved)

    def save(self, address: ShippingAddress) -> ShippingAddress:
        """Persist the address for the next checkout, replacing any previous one."""
        normalised = address.model_copy(
            update={"country": address.country or self.default_country, "coordinates": None}
        )
        document = normalised.to_document()
        document.pop("coordinates", None)
        self.store.set(LocalStoreKey.SAVED_SHIPPING_ADDRESS, document)
        return normalised


class Favorites:
    def __init__(self, store: LocalStore):
        self.store = store

    def list(self) -> List[str]:
        return list(self.store.get(LocalStoreKey.FAVORITES))

    def add(self, product_id: str) -> List[str]:
        favorites = self.list()
        if product_id not in favorites:
            favorites.append(product_id)
            self.store.set(LocalStoreKey.FAVORITES, favorites)
        return favorites

    def remove(self, product_id: str) -> List[str]:
        favorites = [pid for pid in self.list() if pid != product_id]
        self.store.set(LocalStoreKey.FAVORITES, favorites)
        return favorites

    def toggle(self, product_id: str) -> bool:
        """Returns True if the product is a favorite after the call."""
        if product_id in self.list():
            self.remove(product_id)
            return False
        self.add(product_id)
        return True
