#!/usr/bin/env python
"""Idempotent bootstrap seed: first admin account plus starter categories and locations.

Usage:
    python backend/scripts/seed_admin.py              # seed normally
    python backend/scripts/seed_admin.py --show-roles # print role -> permission counts
    python backend/scripts/seed_admin.py --dry-run    # run logic then rollback (no DB changes)
"""
from __future__ import annotations
import os, sys, argparse, textwrap
from sqlalchemy import select

# Allow running from repo root
sys.path.append(os.path.abspath('backend'))

from ims import create_app, get_db  # type: ignore
from ims.constants.permissions import ROLE_PERMISSIONS, Role
from ims.models.authz import Base, User
from ims.models.product import Category, Location
import ims.models.inventory  # noqa: F401
import ims.models.customer  # noqa: F401
import ims.models.sale  # noqa: F401
import ims.models.audit  # noqa: F401

STARTER_CATEGORIES = [
    ('Cotton', 'COTTON'),
    ('Silk', 'SILK'),
    ('Linen', 'LINEN'),
    ('Synthetic', 'SYNTH'),
]

STARTER_LOCATIONS = [
    ('Main Warehouse', 'MAIN'),
    ('Showroom', 'SHOW'),
]


def ensure_initial_admin(session):
    admin_email = os.getenv('SEED_ADMIN_EMAIL', 'admin@example.com')
    existing = session.execute(select(User).where(User.email == admin_email)).scalar_one_or_none()
    if existing:
        return False
    user = User(full_name='Administrator', email=admin_email, role=Role.ADMIN.value, password_hash='')
    user.set_password(os.getenv('SEED_ADMIN_PASSWORD', 'ChangeMe123'))
    session.add(user)
    print(f"[INFO] Created initial admin user {admin_email} with temporary password.")
    return True


def ensure_refs(session, model, rows):
    existing = {r.code for r in session.execute(select(model)).scalars().all()}
    created = 0
    for name, code in rows:
        if code not in existing:
            session.add(model(name=name, code=code))
            created += 1
    return created


def print_role_summary():
    name_w = max(len(r.value) for r in ROLE_PERMISSIONS)
    print(f"{'Role'.ljust(name_w)} | Count | Sample (up to 8)")
    print('-' * (name_w + 40))
    for role, perms in ROLE_PERMISSIONS.items():
        sample = ', '.join(p.value for p in perms[:8])
        print(f"{role.value.ljust(name_w)} | {str(len(perms)).rjust(5)} | {sample}")


def parse_args():
    p = argparse.ArgumentParser(
        description="Seed the first admin user and starter reference data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""Examples:\n  seed normally: seed_admin.py\n  dry run: seed_admin.py --dry-run\n  show roles: seed_admin.py --show-roles\n""")
    )
    p.add_argument('--show-roles', action='store_true', help='Print role permission counts after seeding')
    p.add_argument('--dry-run', action='store_true', help='Rollback after operations (no commit)')
    return p.parse_args()


def main():
    args = parse_args()
    app = create_app()
    with app.app_context():
        session = get_db()
        # Bootstrap fallback when migrations have not been run; prefer alembic upgrade
        Base.metadata.create_all(session.get_bind(), checkfirst=True)
        try:
            admin_created = ensure_initial_admin(session)
            created_c = ensure_refs(session, Category, STARTER_CATEGORIES)
            created_l = ensure_refs(session, Location, STARTER_LOCATIONS)
            if args.dry_run:
                session.rollback()
                print(f"[DRY-RUN] (rolled back) admin: {admin_created}, categories: {created_c}, locations: {created_l}")
            else:
                session.commit()
                print(f"[DONE] admin: {admin_created}, categories created: {created_c}, locations created: {created_l}")
            if args.show_roles:
                print('\nRole Permission Summary:')
                print_role_summary()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


if __name__ == '__main__':
    main()
