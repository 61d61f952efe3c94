# tests/integration/routes/test_checkout_routes.py
import httpx
import pytest
from sqlalchemy.exc import OperationalError

from gebeya.core.exceptions import (
    ChapaAPIError,
    InsufficientStock,
    MalformedCartItem,
    OrderPlacementFailed,
    VerificationTimeout,
)
from gebeya.dependencies import get_chapa_client, get_db, get_local_store
from gebeya.main import app
from gebeya.routes.checkout import status_code_for
from gebeya.services.chapa.client import ChapaClient
from gebeya.services.order_placement import OrderPlacementService
from gebeya.services.order_service import OrderService

TX_REF = "TX-1700000000000-user1"


@pytest.fixture
def chapa_client(mocker, chapa_success_envelope):
    client = ChapaClient(secret_key="CHASECK_TEST-key")
    mocker.patch.object(client, "verify_transaction", return_value=chapa_success_envelope)
    return client


@pytest.fixture
async def api(catalog, session_factory, chapa_client, local_store):
    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_chapa_client] = lambda: chapa_client
    app.dependency_overrides[get_local_store] = lambda: local_store

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def payload(cart_line):
    def _payload(*lines, **overrides):
        body = {
            "txRef": TX_REF,
            "amount": 1200.0,
            "userId": "user1",
            "userEmail": "abebe@example.com",
            "cartItems": list(lines) or [cart_line()],
            "shippingAddress": {
                "firstName": "Abebe",
                "lastName": "Kebede",
                "address": "Bole Road",
                "city": "Addis Ababa",
                "phone": "0911000000",
            },
            "customerDetails": {"firstName": "Abebe", "lastName": "Kebede", "phone": "0911000000"},
        }
        body.update(overrides)
        return body
    return _payload


@pytest.mark.asyncio
async def test_health(api):
    response = await api.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_verify_checkout_success(api, payload, stock_of):
    response = await api.post("/checkout/verify", json=payload())

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert body["confirmation"]["txRef"] == TX_REF
    assert body["confirmation"]["amount"] == 1200.0
    assert body["canRetry"] is False
    assert await stock_of("P1", "V1") == 3


@pytest.mark.asyncio
async def test_verify_checkout_is_idempotent(api, payload, count_orders):
    first = await api.post("/checkout/verify", json=payload())
    second = await api.post("/checkout/verify", json=payload())

    assert second.status_code == 200
    assert second.json()["confirmation"]["orderId"] == first.json()["confirmation"]["orderId"]
    assert await count_orders(TX_REF) == 1


@pytest.mark.asyncio
async def test_unconfirmed_payment_is_402(api, payload, chapa_client):
    chapa_client.verify_transaction.return_value = {
        "message": "Payment not completed",
        "status": "success",
        "data": {"status": "pending", "tx_ref": TX_REF},
    }

    response = await api.post("/checkout/verify", json=payload())

    assert response.status_code == 402
    body = response.json()
    assert body["status"] == "failed"
    assert body["message"] == "Verification Error: pending"
    assert body["canRetry"] is True
    assert body["attempt"]["retryCount"] == 1


@pytest.mark.asyncio
async def test_gateway_timeout_is_402_and_retryable(api, payload, chapa_client):
    chapa_client.verify_transaction.side_effect = ChapaAPIError("Request timed out", timed_out=True)

    response = await api.post("/checkout/verify", json=payload())

    assert response.status_code == 402
    assert response.json()["status"] == "timed_out"
    assert response.json()["error"] == "VerificationTimeout"


@pytest.mark.asyncio
async def test_retry_carries_attempt(api, payload, chapa_client):
    chapa_client.verify_transaction.side_effect = ChapaAPIError("Request failed: Invalid API Key", status_code=401)
    first = (await api.post("/checkout/verify", json=payload())).json()

    second = await api.post("/checkout/verify", json=payload(attempt=first["attempt"]))

    assert second.status_code == 402
    assert second.json()["attempt"]["retryCount"] == 2


@pytest.mark.asyncio
async def test_insufficient_stock_is_409(api, payload, cart_line, stock_of):
    response = await api.post("/checkout/verify", json=payload(cart_line(quantity=10)))

    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "InsufficientStock"
    assert body["detail"]["available"] == 5
    assert await stock_of("P1", "V1") == 5


@pytest.mark.asyncio
async def test_malformed_cart_is_422(api, payload, cart_line):
    response = await api.post("/checkout/verify", json=payload(cart_line("P1-V1")))

    assert response.status_code == 422
    assert response.json()["error"] == "MalformedCartItem"


@pytest.mark.asyncio
async def test_placement_failure_is_503(api, payload, mocker):
    mocker.patch.object(OrderPlacementService, "_resolve_suppliers", side_effect=RuntimeError("database unavailable"))

    response = await api.post("/checkout/verify", json=payload())

    assert response.status_code == 503
    body = response.json()
    assert body["canRetry"] is True
    assert body["attempt"]["payment"]["tx_ref"] == TX_REF


@pytest.mark.asyncio
async def test_successful_checkout_clears_local_cart(api, payload, local_store, cart_line):
    local_store.set("cart", [cart_line()])

    response = await api.post("/checkout/verify", json=payload())

    assert response.status_code == 200
    assert local_store.get("cart") == []


@pytest.mark.asyncio
async def test_forged_attempt_payment_still_calls_gateway(api, payload, chapa_client, stock_of, count_orders):
    chapa_client.verify_transaction.return_value = {
        "message": "Payment not completed",
        "status": "success",
        "data": {"status": "pending", "tx_ref": TX_REF},
    }
    forged = {
        "txRef": TX_REF,
        "status": "success",
        "retryCount": 0,
        "payment": {"tx_ref": TX_REF, "status": "success", "amount": 1200.0, "currency": "ETB"},
    }

    response = await api.post("/checkout/verify", json=payload(attempt=forged))

    assert response.status_code == 402
    body = response.json()
    assert body["error"] == "VerificationFailed"
    assert body["attempt"]["payment"] is None
    chapa_client.verify_transaction.assert_awaited_once_with(TX_REF)
    assert await stock_of("P1", "V1") == 5
    assert await count_orders(TX_REF) == 0


@pytest.mark.asyncio
async def test_order_lookup_failure_is_503(api, payload, chapa_client, mocker):
    mocker.patch.object(
        OrderService, "get_by_transaction_ref",
        side_effect=OperationalError("SELECT", {}, Exception("database is locked")),
    )

    response = await api.post("/checkout/verify", json=payload())

    assert response.status_code == 503
    body = response.json()
    assert body["error"] == "OrderPlacementFailed"
    assert body["canRetry"] is True
    chapa_client.verify_transaction.assert_not_awaited()


class StockReserved(InsufficientStock):
    pass


@pytest.mark.parametrize("error_type, expected", [
    (InsufficientStock, 409),
    (StockReserved, 409),
    (VerificationTimeout, 402),
    (OrderPlacementFailed, 503),
    (MalformedCartItem, 422),
    (RuntimeError, 400),
    (None, 400),
])
def test_status_code_follows_error_class(error_type, expected):
    assert status_code_for(error_type) == expected
