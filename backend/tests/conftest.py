import os, sys, pytest
# Ensure backend directory is on path so 'portal' and 'tests' can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
from portal import create_app, get_db
from portal.models.identity import Base
# Import all model modules to ensure tables are registered before create_all
import portal.models.service_request  # noqa: F401
import portal.models.audit  # noqa: F401


@pytest.fixture(scope='session', autouse=True)
def app_instance(tmp_path_factory):
    app = create_app({
        'TESTING': True,
        'DATABASE_URL': 'sqlite+pysqlite:///:memory:',
        'JWT_SECRET_KEY': 'test-secret-key-that-is-long-enough-for-hs256',
        'APP_TIMEZONE': 'UTC',
        'ENFORCE_STATUS_TRANSITIONS': False,
        'STORAGE_BACKEND': 'local',
        'STORAGE_ROOT': str(tmp_path_factory.mktemp('storage')),
        'REALTIME_KEEPALIVE_SECONDS': 0.05,
    })
    # After app and blueprints are registered, ensure all tables exist
    with app.app_context():
        engine = get_db().get_bind()
        Base.metadata.create_all(engine)
    yield app


@pytest.fixture()
def client(app_instance):
    return app_instance.test_client()
