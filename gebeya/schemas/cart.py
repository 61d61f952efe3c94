"""
Schemas for the shopping cart and shipping address.

Cart items identify a product variant through a composite id of the form
``<productId>_<variantId>``. The cart travels through checkout as plain JSON,
so unknown keys (image URLs, UI flags) are kept and copied onto order line
items untouched.
"""

from typing import Any, Dict, List, Optional, Tuple

from pydantic import ConfigDict, Field, ValidationError

from gebeya.core.exceptions import MalformedCartItem
from gebeya.schemas.base import CamelSchema

COMPOSITE_ID_SEPARATOR = "_"


def split_composite_id(item_id: Any) -> Tuple[str, str]:
    """
    Split a cart item id into ``(product_id, variant_id)``.

    Raises:
        MalformedCartItem: unless the id splits into exactly two non-empty parts
    """
    if not isinstance(item_id, str) or not item_id:
        raise MalformedCartItem(f"Invalid item ID format for stock update: {item_id}")
    parts = item_id.split(COMPOSITE_ID_SEPARATOR)
    if len(parts) != 2 or not all(parts):
        raise MalformedCartItem(f"Invalid item ID format for stock update: {item_id}")
    return parts[0], parts[1]


class CartItem(CamelSchema):
    model_config = ConfigDict(extra="allow")

    id: str
    name: Optional[str] = None
    price: float = 0.0
    quantity: int = 1
    stock: Optional[float] = None
    variant_details: Dict[str, Any] = Field(default_factory=dict)
    image_url: Optional[str] = None

    @property
    def product_id(self) -> str:
        return split_composite_id(self.id)[0]

    @property
    def variant_id(self) -> str:
        return split_composite_id(self.id)[1]

    @property
    def line_total(self) -> float:
        return self.price * self.quantity

    def describe(self) -> str:
        """Human-readable label such as ``Shirt (M, Red)``."""
        details = ", ".join(str(v) for v in self.variant_details.values()) if self.variant_details else "Variant"
        return f"{self.name or self.id} ({details})"

    def to_line_item(self, supplier_id: Optional[str]) -> Dict[str, Any]:
        line = self.model_dump(by_alias=True, mode="json", exclude_none=True)
        line["supplierId"] = supplier_id
        return line


def parse_cart(raw_items: Any) -> List[CartItem]:
    """
    Validate raw cart JSON structurally.

    Every item must carry a composite id with exactly two non-empty parts and a
    positive integer quantity. Nothing touches the store before this passes.
    """
    if not isinstance(raw_items, list) or not raw_items:
        raise MalformedCartItem("Invalid cart data")

    items = []
    for raw in raw_items:
        try:
            item = raw if isinstance(raw, CartItem) else CartItem.model_validate(raw)
        except ValidationError as e:
            label = raw.get("name") or raw.get("id") if isinstance(raw, dict) else raw
            raise MalformedCartItem(f"Invalid data for item {label}: {e.errors()[0]['msg']}")

        split_composite_id(item.id)
        if item.quantity <= 0:
            raise MalformedCartItem(f"Invalid data for item {item.name or item.id}")
        items.append(item)
    return items


class Coordinates(CamelSchema):
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    accepted_by: Optional[str] = None


class ShippingAddress(CamelSchema):
    country: str = "Ethiopia"
    first_name: str = ""
    last_name: str = ""
    address: str = ""
    apartment: str = ""
    city: str = ""
    postal_code: str = ""
    phone: str = ""
    coordinates: Optional[Coordinates] = None

    def to_order_document(self) -> Dict[str, Any]:
        """Shape stored on the order; coordinates are always present, possibly all null."""
        document = self.to_document()
        document["coordinates"] = (self.coordinates or Coordinates()).to_document()
        return document


class CustomerDetails(CamelSchema):
    first_name: str = ""
    last_name: str = ""
    phone: str = ""
