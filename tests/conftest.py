import pytest
import uuid

from app import create_app
from app.database import Base, db_session, get_session, create_tables, drop_tables
from config import Config


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application instance for testing (SQLite file database, no Redis)."""
    db_path = tmp_path_factory.mktemp('db') / 'group_discount.db'

    class TestingConfig(Config):
        TESTING = True
        ENV = 'testing'
        SQLALCHEMY_DATABASE_URI = f'sqlite:///{db_path}'
        SQLALCHEMY_ECHO = False
        AUTO_CREATE_TABLES = False
        CACHE_ENABLED = False
        PLATFORM_SHOP_DOMAIN = 'test-shop.myshopify.com'

    app = create_app(TestingConfig)
    create_tables()
    yield app
    drop_tables()


@pytest.fixture(autouse=True)
def clean_tables(app):
    """Empty every table after each test."""
    yield
    session = get_session()
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    db_session.remove()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """Database session shared with the request handlers (same thread)."""
    session = get_session()
    yield session
    session.rollback()


@pytest.fixture(scope='function')
def shop_id():
    """Unique shop identifier per test."""
    return f'shop-{str(uuid.uuid4())[:8]}.myshopify.com'
