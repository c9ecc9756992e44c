import pytest
from httpx import ASGITransport, AsyncClient

from app.main import app, build_workflow
from app.core.enums import PaymentStatus, UserRole
from app.core.errors import RouteUnresolved
from app.core.security import create_access_token, hash_password
from app.models.booking import Address
from app.models.user import User
from app.services.payments import PaymentConfirmation
from app.storage.memory import create_memory_storage


class FakeRouting:
    """Routing collaborator returning a fixed distance, or failing."""

    def __init__(self, distance_km: float = 10.0):
        self.distance_km = distance_km
        self.error = None
        self.calls = []

    async def resolve_distance(self, pickup: Address, destination: Address) -> float:
        self.calls.append((pickup.label, destination.label))
        if self.error is not None:
            raise self.error
        return self.distance_km


class FakePayments:
    """Payment collaborator whose outcomes are queued per test.

    Each queued outcome is either a PaymentStatus for the charge or an
    exception instance to raise. Without a queue every charge is pending.
    """

    def __init__(self, settles_offline: bool = False):
        self.settles_offline = settles_offline
        self.outcomes = []
        self.charges = []
        self.statuses = {}
        self.verify_calls = []

    async def charge(self, amount_minor, currency, metadata):
        self.charges.append({"amount_minor": amount_minor, "currency": currency, "metadata": metadata})
        outcome = self.outcomes.pop(0) if self.outcomes else PaymentStatus.PENDING
        if isinstance(outcome, Exception):
            raise outcome
        confirmation_id = f"cs_test_{len(self.charges)}"
        self.statuses.setdefault(confirmation_id, outcome)
        return PaymentConfirmation(
            id=confirmation_id,
            status=outcome,
            redirect_url=f"https://checkout.example.test/{confirmation_id}",
        )

    async def verify(self, confirmation_id):
        self.verify_calls.append(confirmation_id)
        return self.statuses.get(confirmation_id, PaymentStatus.FAILED)


class RecordingNotifier:
    def __init__(self):
        self.events = []

    async def __call__(self, event, data):
        self.events.append((str(event), data))
        return True

    def of(self, event) -> list:
        return [data for name, data in self.events if name == str(event)]


@pytest.fixture
def storage():
    return create_memory_storage()


@pytest.fixture
def routing():
    return FakeRouting()


@pytest.fixture
def payments():
    return FakePayments()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def workflow(storage, routing, payments, notifier):
    return build_workflow(storage, routing=routing, payments=payments, notifier=notifier)


@pytest.fixture
async def test_client(storage, workflow):
    app.state.storage = storage
    app.state.workflow = workflow
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
def route_unresolved(routing):
    routing.error = RouteUnresolved("No route found")
    return routing


@pytest.fixture
def valid_quote_data():
    return {
        "pickup": "Damrak 1, Amsterdam",
        "destination": "Schiphol Airport",
        "vehicle_class": "standard",
    }


@pytest.fixture
def valid_contact_data():
    return {
        "email": "john@example.com",
        "phone": "+31 6 12345678",
        "scheduled_date": "2026-11-02",
        "scheduled_time": "08:30",
        "passengers": 2,
        "luggage": 1,
    }


@pytest.fixture
def create_user_factory(storage):
    async def _create_user(email="customer@example.com", password="secret-pass", role=UserRole.CUSTOMER, verified=True):
        user = User(
            email=email,
            name=email.split("@")[0],
            password_hash=hash_password(password),
            role=role,
            email_verified=verified,
        )
        await storage.users.insert(user)
        return user

    return _create_user


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}

    return _headers


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "pricing: marks tests related to pricing"
    )
    config.addinivalue_line(
        "markers", "payments: marks tests related to payment handling"
    )
    config.addinivalue_line(
        "markers", "auth: marks tests related to authentication"
    )
    config.addinivalue_line(
        "markers", "idempotency: marks tests related to idempotency"
    )
