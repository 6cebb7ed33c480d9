import pytest
from datetime import datetime, timezone
from decimal import Decimal

from marketplace import create_app
from marketplace.database import Base, create_tables, get_session
from marketplace.models import CommissionTier, Supplier
from marketplace.services import commission_service
from marketplace.services.order_split_service import CheckoutInput, ShippingAddress
from marketplace.services.ports import NotificationSink
from marketplace.services.supplier_grouping_service import CartItem


class RecordingSink(NotificationSink):
    """Notification sink that keeps every event for assertions."""

    def __init__(self, fail_for=None):
        self.events = []
        self.fail_for = set(fail_for or ())

    def notify(self, recipient_id, event):
        if recipient_id in self.fail_for:
            raise RuntimeError(f'delivery to {recipient_id} failed')
        self.events.append((recipient_id, event))

    @property
    def recipients(self):
        return [recipient for recipient, _ in self.events]


def make_item(product_id, supplier_id, quantity, unit_price, **kwargs):
    """Build a consistent cart item (total = quantity x unit price)."""
    unit_price = Decimal(str(unit_price))
    kwargs.setdefault('product_name', f'Product {product_id}')
    kwargs.setdefault('shipping_cost', Decimal('0.00'))
    return CartItem(
        product_id=product_id,
        supplier_id=supplier_id,
        quantity=quantity,
        unit_price=unit_price,
        total_price=(unit_price * quantity).quantize(Decimal('0.01')),
        **kwargs
    )


def make_tier(tier_id, min_amount, max_amount, rate, is_active=True):
    """Transient tier for pure resolver tests."""
    return CommissionTier(
        id=tier_id,
        min_amount=Decimal(str(min_amount)),
        max_amount=None if max_amount is None else Decimal(str(max_amount)),
        commission_rate=Decimal(str(rate)),
        is_active=is_active,
    )


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing."""
    app = create_app('config.TestConfig')
    with app.app_context():
        create_tables()
    return app


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """Database session with empty tables after each test."""
    ctx = app.app_context()
    ctx.push()
    session = get_session()
    yield session
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()
    ctx.pop()


@pytest.fixture
def standard_tiers():
    """[0, 1000) at 5% and [1000, inf) at 3%."""
    return [
        make_tier(1, 0, 1000, '0.05'),
        make_tier(2, 1000, None, '0.03'),
    ]


@pytest.fixture
def db_tiers(session):
    """The standard tiers persisted."""
    return [
        commission_service.create_tier(session, '0', '1000', '0.05', description='Small orders'),
        commission_service.create_tier(session, '1000', None, '0.03', description='Large orders'),
    ]


@pytest.fixture
def suppliers(session):
    rows = [
        Supplier(id='sup-x', name='Xiamen Tools', email='orders@xiamen.test'),
        Supplier(id='sup-y', name='Yiwu Textiles', email='sales@yiwu.test'),
        Supplier(id='sup-z', name='Zhejiang Parts', email=None),
    ]
    session.add_all(rows)
    session.commit()
    return rows


@pytest.fixture
def address():
    return ShippingAddress(
        street='12 Harbour Road',
        city='Mumbai',
        state='MH',
        zip_code='400001',
        country='IN',
    )


@pytest.fixture
def checkout_input(address):
    return CheckoutInput(shipping_address=address, payment_method='T/T', buyer_id='buyer-1')


@pytest.fixture
def fixed_now():
    return datetime(2024, 5, 10, 14, 30, tzinfo=timezone.utc)


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture(name='make_item')
def make_item_fixture():
    return make_item


@pytest.fixture(name='make_tier')
def make_tier_fixture():
    return make_tier


@pytest.fixture
def failing_sink():
    """Sink whose deliveries to sup-x blow up."""
    return RecordingSink(fail_for={'sup-x'})
