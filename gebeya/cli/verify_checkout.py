# gebeya/cli/verify_checkout.py
import asyncio
import json

import click

from gebeya.core.config import get_settings
from gebeya.core.logging_config import configure_logging
from gebeya.database import async_session
from gebeya.schemas.checkout import CheckoutRequest
from gebeya.services.chapa.client import ChapaClient
from gebeya.services.checkout_service import CheckoutWorkflow, cart_total, generate_tx_ref
from gebeya.services.local_store import CartCache, LocalStore
from gebeya.services.payment_verifier import PaymentVerifier

@click.command()
@click.option('--tx-ref', default=None, help='Chapa transaction reference (generated when omitted)')
@click.option('--user-id', required=True, help='Buyer id')
@click.option('--user-email', default=None, help='Buyer email')
@click.option('--amount', type=float, default=None, help='Order total (defaults to the cart total)')
@click.option('--cart-file', type=click.Path(exists=True, dir_okay=False), required=True,
              help='JSON file holding the cart items')
@click.option('--keep-cart', is_flag=True, help='Do not clear the local cart after a successful order')
def verify_checkout(tx_ref, user_id, user_email, amount, cart_file, keep_cart):
    """Run one checkout attempt: verify the payment and place the order"""
    configure_logging()
    settings = get_settings()

    with open(cart_file, "r", encoding="utf-8") as f:
        cart_items = json.load(f)

    request = CheckoutRequest(
        tx_ref=tx_ref or generate_tx_ref(user_id),
        amount=amount if amount is not None else cart_total(cart_items),
        user_id=user_id,
        user_email=user_email,
        cart_items=cart_items,
    )

    async def _run():
        client = ChapaClient(secret_key=settings.CHAPA_SECRET_KEY, base_url=settings.CHAPA_BASE_URL)
        cart_cache = None if keep_cart else CartCache(LocalStore(settings.local_store_file))
        async with async_session() as session:
            workflow = CheckoutWorkflow(session, PaymentVerifier(client), cart_cache=cart_cache)
            return await workflow.run(request)

    outcome = asyncio.run(_run())
    click.echo(json.dumps(outcome.to_document(), indent=2))
    if not outcome.succeeded:
        raise SystemExit(1)

if __name__ == "__main__":
    verify_checkout()
