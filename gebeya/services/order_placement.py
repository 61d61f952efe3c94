"""
Order Placement Transaction

Turns a verified payment and a cart into an order, as one unit of work:

- Reads the stock of every referenced variant (row-locked where supported)
  and the parent product of every distinct product id
- Resolves the supplier of each product; a missing product or supplier id
  resolves to None and is recorded as a warning (configurable)
- Rejects the whole order on a missing variant or insufficient stock
- Decrements each variant and inserts the order plus its audit rows

Either every decrement and the order row commit together, or nothing does.

The transaction reference is unique on the orders table. A retry with a
reference that already produced an order returns that order instead of
placing a second one, which also settles the "commit outcome unknown" state
after a dropped connection.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from gebeya.core.config import get_settings
from gebeya.core.enums import ActivityAction, OrderStatus, PaymentMethod, PaymentStatus
from gebeya.core.exceptions import (
    CheckoutError,
    InsufficientStock,
    MalformedCartItem,
    OrderPlacementFailed,
    SupplierNotFound,
    VariantNotFound,
)
from gebeya.models.activity_log import ActivityLog
from gebeya.models.order import Order, new_order_id
from gebeya.models.product import Product, ProductVariant
from gebeya.schemas.cart import CartItem, CustomerDetails, ShippingAddress, parse_cart
from gebeya.schemas.order import OrderRead, PlacementResult
from gebeya.schemas.payment import VerifiedPayment

logger = logging.getLogger(__name__)

VariantKey = Tuple[str, str]


class OrderPlacementService:
    """
    Places orders against the catalog/order store.

    The service runs its own transaction, so it expects a session with no
    transaction in progress.
    """

    def __init__(self, db: AsyncSession, missing_supplier_policy: Optional[str] = None):
        self.db = db
        self.missing_supplier_policy = missing_supplier_policy or get_settings().MISSING_SUPPLIER_POLICY

    async def find_order_by_transaction_ref(self, tx_ref: str) -> Optional[Order]:
        result = await self.db.execute(select(Order).where(Order.transaction_ref == tx_ref))
        return result.scalar_one_or_none()

    async def place_order(
        self,
        payment: VerifiedPayment,
        cart_items: List[Any],
        user_id: str,
        shipping_address: Optional[ShippingAddress] = None,
        payment_method: str = PaymentMethod.CHAPA.value,
        user_email: Optional[str] = None,
        customer_details: Optional[CustomerDetails] = None,
        amount: Optional[float] = None,
    ) -> PlacementResult:
        """
        Place an order for a verified payment.

        Args:
            payment: Gateway-verified payment; its tx_ref identifies the order
            cart_items: Raw cart items, each with a ``<productId>_<variantId>`` id
            user_id: Buyer id
            shipping_address: Delivery address stored on the order
            payment_method: Payment method label, e.g. "Chapa"
            user_email: Buyer email, used to list orders later
            customer_details: Buyer name/phone captured at checkout
            amount: Order total; defaults to the amount reported by the gateway

        Returns:
            PlacementResult with the order, whether it was created by this call,
            and any supplier attribution warnings

        Raises:
            MalformedCartItem: input fails validation; raised before any store access
            VariantNotFound: a referenced variant does not exist
            InsufficientStock: a variant holds less stock than requested
            SupplierNotFound: supplier missing while the policy is "reject"
            OrderPlacementFailed: the transaction aborted for any other reason
        """
        tx_ref = payment.tx_ref if payment else None
        total = amount if amount is not None else (payment.amount if payment else None)

        if not tx_ref:
            raise MalformedCartItem("Incomplete transaction data: missing transaction reference")
        if not user_id:
            raise MalformedCartItem("Incomplete transaction data: missing buyer id")
        if not total or total <= 0:
            raise MalformedCartItem("Incomplete transaction data: missing amount")
        items = parse_cart(cart_items)

        try:
            return await self._place_in_transaction(
                payment=payment,
                items=items,
                user_id=user_id,
                user_email=user_email,
                shipping_address=shipping_address or ShippingAddress(),
                customer_details=customer_details or CustomerDetails(),
                payment_method=payment_method,
                total=float(total),
            )
        except CheckoutError:
            raise
        except IntegrityError as e:
            # Lost a race against a concurrent placement for the same reference
            try:
                existing = await self._existing_after_conflict(tx_ref)
            except SQLAlchemyError as lookup_error:
                logger.error(f"Re-reading order {tx_ref} after integrity error failed: {lookup_error}")
                raise OrderPlacementFailed(f"order lookup failed: {lookup_error}") from lookup_error
            if existing is not None:
                logger.info(f"Order for {tx_ref} was committed concurrently; returning order {existing.order.id}")
                return existing
            logger.error(f"Integrity error placing order {tx_ref}: {e}")
            raise OrderPlacementFailed(str(e.orig)) from e
        except Exception as e:
            logger.exception(f"Order transaction for {tx_ref} aborted")
            raise OrderPlacementFailed(str(e)) from e

    async def _existing_after_conflict(self, tx_ref: str) -> Optional[PlacementResult]:
        async with self.db.begin():
            order = await self.find_order_by_transaction_ref(tx_ref)
            if order is None:
                return None
            return PlacementResult(order=OrderRead.model_validate(order), created=False)

    async def _place_in_transaction(
        self,
        payment: VerifiedPayment,
        items: List[CartItem],
        user_id: str,
        user_email: Optional[str],
        shipping_address: ShippingAddress,
        customer_details: CustomerDetails,
        payment_method: str,
        total: float,
    ) -> PlacementResult:
        tx_ref = payment.tx_ref

        async with self.db.begin():
            existing = await self.find_order_by_transaction_ref(tx_ref)
            if existing is not None:
                logger.info(f"Order {existing.id} already exists for {tx_ref}; not placing a duplicate")
                return PlacementResult(order=OrderRead.model_validate(existing), created=False)

            # 1. Distinct products, and requested quantity per variant
            product_ids = sorted({item.product_id for item in items})
            requested: Dict[VariantKey, int] = {}
            first_item: Dict[VariantKey, CartItem] = {}
            for item in items:
                key = (item.product_id, item.variant_id)
                requested[key] = requested.get(key, 0) + item.quantity
                first_item.setdefault(key, item)

            # 2. Reads inside the unit of work
            variants = await self._load_variants(list(requested))
            supplier_ids, warnings = await self._resolve_suppliers(product_ids)

            # 3. Validate every line before writing anything
            for key, quantity in requested.items():
                item = first_item[key]
                variant = variants.get(key)
                if variant is None:
                    raise VariantNotFound(item.id, item.variant_id, item.describe())
                available = variant.stock
                if not isinstance(available, int) or isinstance(available, bool) or available < quantity:
                    raise InsufficientStock(item.id, item.variant_id, available, quantity, item.describe())

            # 4. Guarded decrements, then the order itself
            for key, quantity in requested.items():
                product_id, variant_id = key
                result = await self.db.execute(
                    update(ProductVariant)
                    .where(
                        ProductVariant.product_id == product_id,
                        ProductVariant.id == variant_id,
                        ProductVariant.stock >= quantity,
                    )
                    .values(stock=ProductVariant.stock - quantity)
                )
                if result.rowcount != 1:
                    item = first_item[key]
                    raise InsufficientStock(
                        item.id, variant_id, variants[key].stock, quantity, item.describe()
                    )

            order = Order(
                id=new_order_id(),
                user_id=user_id,
                user_email=user_email,
                cart_items=[item.to_line_item(supplier_ids.get(item.product_id)) for item in items],
                total_amount=total,
                payment_method=payment_method,
                shipping_address=shipping_address.to_order_document(),
                customer_details=customer_details.to_document(),
                status=OrderStatus.PROCESSING.value,
                payment_status=PaymentStatus.SUCCESS.value,
                transaction_ref=tx_ref,
                gateway_response=payment.gateway_snapshot(),
                accepted_by=None,
                delivery_accepted_at=None,
            )
            self.db.add(order)
            self.db.add(
                ActivityLog(
                    action=ActivityAction.ORDER_PLACED.value,
                    entity_type="order",
                    entity_id=order.id,
                    transaction_ref=tx_ref,
                    user_id=user_id,
                    details={
                        "total_amount": total,
                        "line_items": len(items),
                        "decrements": {f"{p}_{v}": q for (p, v), q in requested.items()},
                    },
                )
            )
            for product_id, message in warnings:
                self.db.add(
                    ActivityLog(
                        action=ActivityAction.SUPPLIER_MISSING.value,
                        entity_type="product",
                        entity_id=product_id,
                        transaction_ref=tx_ref,
                        user_id=user_id,
                        details={"order_id": order.id, "message": message},
                    )
                )
            await self.db.flush()
            placed = PlacementResult(
                order=OrderRead.model_validate(order),
                created=True,
                warnings=[message for _, message in warnings],
            )

        logger.info(
            f"Transaction successful! Order {placed.order.id} created for {tx_ref} "
            f"and stock updated for {len(requested)} variant(s)"
        )
        return placed

    async def _load_variants(self, keys: List[VariantKey]) -> Dict[VariantKey, ProductVariant]:
        conditions = [
            and_(ProductVariant.product_id == product_id, ProductVariant.id == variant_id)
            for product_id, variant_id in keys
        ]
        result = await self.db.execute(
            select(ProductVariant).where(or_(*conditions)).with_for_update()
        )
        return {(v.product_id, v.id): v for v in result.scalars().all()}

    async def _resolve_suppliers(self, product_ids: List[str]) -> Tuple[Dict[str, Optional[str]], List[Tuple[str, str]]]:
        """
        Map each product id to its supplier id.

        Returns the map plus ``(product_id, message)`` warnings for products whose
        supplier could not be resolved.
        """
        result = await self.db.execute(
            select(Product.id, Product.supplier_id).where(Product.id.in_(product_ids))
        )
        found = {row.id: row.supplier_id for row in result}

        supplier_ids: Dict[str, Optional[str]] = {}
        warnings: List[Tuple[str, str]] = []
        for product_id in product_ids:
            supplier_id = found.get(product_id) or None
            supplier_ids[product_id] = supplier_id
            if supplier_id:
                continue

            if product_id not in found:
                message = f"Product document {product_id} not found! Cannot get supplier ID."
            else:
                message = f"Supplier ID missing for product {product_id}"

            if self.missing_supplier_policy == "reject":
                raise SupplierNotFound(product_id)
            logger.warning(message)
            warnings.append((product_id, message))

        return supplier_ids, warnings
