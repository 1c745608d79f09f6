from flask import Flask
import pytest
from sqlalchemy import select
from portal import get_db
from portal.models.identity import Profile, UserRole, ROLE_ADMIN
from portal.services.policy import is_admin, role_of
from scripts.seed_admin import ensure_admin_account, promote
from tests.test_utils_seed import ensure_user


@pytest.fixture()
def app_context(app_instance):
    with app_instance.app_context():
        yield app_instance


def test_ensure_admin_account_is_idempotent(app_context: Flask):
    session = get_db()
    user, created, granted = ensure_admin_account(session, 'Seeded.Admin@example.com', 'Start123!', 'Seeded Admin')
    session.commit()
    assert created and granted
    assert user.email == 'seeded.admin@example.com'
    assert session.get(Profile, user.id).full_name == 'Seeded Admin'
    again, created2, granted2 = ensure_admin_account(session, 'seeded.admin@example.com', 'Other456!')
    session.commit()
    assert again.id == user.id
    assert (created2, granted2) == (False, False)
    assert again.verify_password('Start123!')
    assert is_admin(user.id)
    assert role_of(user.id) == ROLE_ADMIN


def test_promote_existing_customer(app_context: Flask):
    customer = ensure_user('promote-me@example.com')
    session = get_db()
    assert role_of(customer.id) == 'customer'
    assert promote(session, 'promote-me@example.com') is True
    session.commit()
    roles = session.execute(select(UserRole.role).where(UserRole.user_id == customer.id)).scalars().all()
    assert roles == [ROLE_ADMIN]
    assert promote(session, 'nobody@example.com') is False
