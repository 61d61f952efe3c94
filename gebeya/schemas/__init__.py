from .base import BaseSchema, CamelSchema
from .cart import CartItem, ShippingAddress, Coordinates, CustomerDetails, parse_cart, split_composite_id
from .payment import VerifiedPayment
from .order import OrderRead, OrderConfirmation, PlacementResult, DeliveryAcceptance
from .checkout import CheckoutRequest, CheckoutAttempt, CheckoutOutcome, CheckoutVerifyRequest
