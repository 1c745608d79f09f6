#!/usr/bin/env python
"""Idempotent seed script for the portal's admin account.

Usage:
    python backend/scripts/seed_admin.py                          # admin from SEED_ADMIN_* env vars
    python backend/scripts/seed_admin.py --email ops@example.com  # explicit email
    python backend/scripts/seed_admin.py --promote user@example.com
    python backend/scripts/seed_admin.py --dry-run                # run logic then rollback
"""
from __future__ import annotations
import os, sys, argparse, textwrap
from sqlalchemy import select, text

# Allow running from repo root
sys.path.append(os.path.abspath('backend'))

from portal import create_app, get_db  # type: ignore
from portal.models.identity import Base, Profile, User, UserRole, ROLE_ADMIN


def ensure_admin_role(session, user: User) -> bool:
    existing = session.execute(
        select(UserRole).where(UserRole.user_id == user.id, UserRole.role == ROLE_ADMIN)
    ).scalar_one_or_none()
    if existing:
        return False
    session.add(UserRole(user_id=user.id, role=ROLE_ADMIN))
    return True


def ensure_admin_account(session, email: str, password: str, full_name: str = 'Administrator', phone: str = None):
    """Create (or reuse) the user + profile for `email` and grant the admin role.

    Returns (user, created_user, granted_role). Existing passwords are never overwritten.
    """
    email = email.strip().lower()
    user = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
    created = False
    if not user:
        user = User(email=email, password_hash='')
        user.set_password(password)
        session.add(user)
        session.flush()
        created = True
    if session.get(Profile, user.id) is None:
        session.add(Profile(id=user.id, full_name=full_name, email=email, phone=phone))
    granted = ensure_admin_role(session, user)
    session.flush()
    return user, created, granted


def promote(session, email: str) -> bool:
    user = session.execute(select(User).where(User.email == email.strip().lower())).scalar_one_or_none()
    if not user:
        print(f"[WARN] No user with email {email}; nothing promoted")
        return False
    return ensure_admin_role(session, user)


def parse_args():
    p = argparse.ArgumentParser(
        description="Seed the portal admin account",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""Examples:\n  seed from env: seed_admin.py\n  promote existing user: seed_admin.py --promote user@example.com\n  dry run: seed_admin.py --dry-run\n""")
    )
    p.add_argument('--email', default=os.getenv('SEED_ADMIN_EMAIL', 'admin@example.com'), help='Admin email')
    p.add_argument('--password', default=os.getenv('SEED_ADMIN_PASSWORD', 'ChangeMe123!'), help='Password for a newly created admin')
    p.add_argument('--name', default=os.getenv('SEED_ADMIN_NAME', 'Administrator'), help='Profile full name')
    p.add_argument('--promote', metavar='EMAIL', help='Grant the admin role to an existing account instead')
    p.add_argument('--dry-run', action='store_true', help='Rollback after operations (no commit)')
    return p.parse_args()


def main():
    args = parse_args()
    app = create_app()
    with app.app_context():
        session = get_db()
        try:
            session.execute(text('SELECT 1 FROM users LIMIT 1'))
        except Exception:
            # Auto-create schema for bootstrap; in real env prefer alembic upgrade
            session.rollback()
            import portal.models.service_request  # noqa: F401
            import portal.models.audit  # noqa: F401
            Base.metadata.create_all(session.get_bind())

    with app.app_context():
        session = get_db()
        if args.promote:
            changed = promote(session, args.promote)
            summary = f"role granted to {args.promote}" if changed else f"{args.promote} unchanged"
        else:
            _, created, granted = ensure_admin_account(session, args.email, args.password, args.name)
            summary = f"user created: {created}, role granted: {granted} ({args.email})"
        if args.dry_run:
            session.rollback()
            print(f"[DRY-RUN] (rolled back) {summary}")
        else:
            session.commit()
            print(f"[DONE] {summary}")


if __name__ == '__main__':
    main()
