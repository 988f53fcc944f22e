import pytest
from backoffice import create_app, get_db
from backoffice.models.authz import Base

from seed_utils import TEST_SECRET


@pytest.fixture()
def app_instance():
    app = create_app({
        'DATABASE_URL': 'sqlite+pysqlite:///:memory:',
        'JWT_SECRET_KEY': TEST_SECRET,
        # cheap hashing keeps the suite fast
        'PASSWORD_HASH_METHOD': 'pbkdf2:sha256:1000',
    })
    engine = get_db().get_bind()
    Base.metadata.create_all(engine)
    yield app
    get_db().close()
    Base.metadata.drop_all(engine)


@pytest.fixture()
def client(app_instance):
    return app_instance.test_client()


@pytest.fixture()
def app_ctx(app_instance):
    with app_instance.app_context():
        yield app_instance
