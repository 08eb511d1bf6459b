import os, sys, pytest
# Ensure the backend directory is on path so 'ims' can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
from ims import create_app, get_db
from ims.models.authz import Base
# Import all model modules to ensure tables are registered before create_all
import ims.models.product  # noqa: F401
import ims.models.inventory  # noqa: F401
import ims.models.customer  # noqa: F401
import ims.models.sale  # noqa: F401
import ims.models.audit  # noqa: F401

TEST_SECRET = 'test-secret-key-long-enough-for-hs256-signing'


@pytest.fixture(scope='session', autouse=True)
def app_instance():
    os.environ['DATABASE_URL'] = 'sqlite+pysqlite:///:memory:'
    app = create_app({'JWT_SECRET_KEY': TEST_SECRET, 'TESTING': True})
    # After app and blueprints are registered, ensure all tables exist
    with app.app_context():
        engine = get_db().get_bind()
        Base.metadata.create_all(engine)
    yield app


@pytest.fixture()
def client(app_instance):
    return app_instance.test_client()
