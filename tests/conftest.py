# tests/conftest.py
import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from gebeya.database import Base
from gebeya.models import ActivityLog, Order, Product, ProductVariant
from gebeya.schemas.payment import VerifiedPayment
from gebeya.services.local_store import LocalStore

TX_REF = "TX-1700000000000-user1"


@pytest.fixture(scope="function")
async def test_engine(tmp_path):
    """Create and configure the test database engine (function-scoped)."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'gebeya_test.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    """Provide a database session for tests"""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def catalog(session_factory):
    """
    Seed the catalog:

    - P1 (supplier S1): V1 stock 5, V2 stock 1
    - P2 (no supplier): V1 stock 3
    - P9/V1 stock 4, a variant whose product row is missing
    """
    async with session_factory() as session:
        async with session.begin():
            session.add_all([
                Product(
                    id="P1",
                    name="Habesha Kemis",
                    category="Clothing",
                    price=600.0,
                    supplier_id="S1",
                    variants=[
                        ProductVariant(id="V1", attributes={"size": "M", "color": "White"}, price=600.0, stock=5),
                        ProductVariant(id="V2", attributes={"size": "L", "color": "White"}, price=650.0, stock=1),
                    ],
                ),
                Product(
                    id="P2",
                    name="Netela",
                    category="Clothing",
                    price=250.0,
                    supplier_id=None,
                    variants=[ProductVariant(id="V1", attributes={"color": "Cream"}, price=250.0, stock=3)],
                ),
                # SQLite does not enforce the foreign key, which lets us model a missing product row
                ProductVariant(product_id="P9", id="V1", attributes={}, price=100.0, stock=4),
            ])
    return session_factory


@pytest.fixture
def stock_of(session_factory):
    """Read a variant's current stock from a fresh session."""
    async def _stock_of(product_id, variant_id):
        async with session_factory() as session:
            result = await session.execute(
                select(ProductVariant.stock).where(
                    ProductVariant.product_id == product_id,
                    ProductVariant.id == variant_id,
                )
            )
            return result.scalar_one()
    return _stock_of


@pytest.fixture
def count_orders(session_factory):
    async def _count_orders(tx_ref=TX_REF):
        async with session_factory() as session:
            result = await session.execute(
                select(func.count()).select_from(Order).where(Order.transaction_ref == tx_ref)
            )
            return result.scalar_one()
    return _count_orders


@pytest.fixture
def activity_for(session_factory):
    async def _activity_for(action):
        async with session_factory() as session:
            result = await session.execute(select(ActivityLog).where(ActivityLog.action == action))
            return result.scalars().all()
    return _activity_for


@pytest.fixture
def verified_payment():
    return VerifiedPayment(
        tx_ref=TX_REF,
        status="success",
        amount=1200.0,
        currency="ETB",
        email="abebe@example.com",
        first_name="Abebe",
        last_name="Kebede",
        updated_at="2023-11-14T22:13:20.000000Z",
        created_at="2023-11-14T22:12:01.000000Z",
    )


@pytest.fixture
def chapa_success_envelope():
    """Body of a successful Chapa verify response"""
    return {
        "message": "Payment details",
        "status": "success",
        "data": {
            "first_name": "Abebe",
            "last_name": "Kebede",
            "email": "abebe@example.com",
            "currency": "ETB",
            "amount": 1200,
            "charge": 42,
            "mode": "test",
            "method": "telebirr",
            "type": "API",
            "status": "success",
            "reference": "AP8xZ1kQ2",
            "tx_ref": TX_REF,
            "created_at": "2023-11-14T22:12:01.000000Z",
            "updated_at": "2023-11-14T22:13:20.000000Z",
        },
    }


@pytest.fixture
def cart_line():
    """Build a raw cart item as the mobile client sends it."""
    def _cart_line(item_id="P1_V1", quantity=2, name="Habesha Kemis", price=600.0, **extra):
        line = {
            "id": item_id,
            "name": name,
            "price": price,
            "quantity": quantity,
            "stock": 5,
            "variantDetails": {"size": "M", "color": "White"},
            "imageUrl": "https://cdn.example.com/p1.jpg",
        }
        line.update(extra)
        return line
    return _cart_line


@pytest.fixture
def local_store(tmp_path):
    return LocalStore(str(tmp_path / "device" / "local_store.json"))
