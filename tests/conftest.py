# tests/conftest.py
import os
from decimal import Decimal

import pytest
from app import create_app
from models.base import Base, dispose_engine, init_engine_and_session
from models.payments_store import create_profile, create_purchase_request, get_profile
from models.providers_store import install_provider
from tests.utils import PRIVATE_KEY, PUBLIC_KEY


@pytest.fixture(scope="session", autouse=True)
def _set_env(tmp_path_factory):
    db_path = tmp_path_factory.mktemp("db") / "payments.sqlite3"
    os.environ["DATABASE_URL"] = f"sqlite:///{db_path}"
    os.environ["SITE_BASE_URL"] = "https://shop.example"
    os.environ.setdefault("APP_ENV", "test")
    os.environ.setdefault("METRICS_ENABLED", "1")
    os.environ.setdefault("AUTO_CREATE_SCHEMA", "1")
    dispose_engine()
    yield
    dispose_engine()


@pytest.fixture(scope="session")
def app(_set_env):
    return create_app({"TESTING": True, "WTF_CSRF_ENABLED": False})


@pytest.fixture(autouse=True)
def _db_clean(app):
    engine, _Session = init_engine_and_session()
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())
    yield


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture
def liqpay_installed(app):
    install_provider("liqpay")
    return "liqpay"


@pytest.fixture
def profile(app, liqpay_installed):
    with app.app_context():
        pid = create_profile("liqpay", "LiqPay", {
            "public_key": PUBLIC_KEY, "private_key": PRIVATE_KEY})
    return get_profile(pid)


@pytest.fixture
def purchase_request(profile):
    return create_purchase_request(profile, Decimal("100.00"), "UAH",
                                   purchaser="alice", title="Gold membership",
                                   request_key="req-42")
