"""
Create a user (e.g. the first admin). Run from project root after seeding roles:
  python -m app.scripts.create_user EMAIL PASSWORD [ROLE] [--name "Full Name"]
Example:
  python -m app.scripts.create_user admin@example.com your-secure-password ADMIN
"""
import argparse
import sys

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.core.errors import ConflictError
from app.core.security import EMAIL_MAX_LEN, PASSWORD_MAX_LEN, PASSWORD_MIN_LEN, hash_password
from app.models import Role
from app.services.credential_store import CredentialStore, normalize_email


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a Tessera user from the command line.")
    parser.add_argument("email", help="Email (unique)")
    parser.add_argument("password", help=f"Password ({PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} chars)")
    parser.add_argument("role", nargs="?", default=None, help="Role name (default: DEFAULT_ROLE)")
    parser.add_argument("--name", default=None, help="Full name")
    args = parser.parse_args(argv)

    settings = get_settings()
    email = normalize_email(args.email)
    if not email or len(email) > EMAIL_MAX_LEN or "@" not in email:
        print("Invalid email.", file=sys.stderr)
        return 1
    if not (PASSWORD_MIN_LEN <= len(args.password) <= PASSWORD_MAX_LEN):
        print(f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters.", file=sys.stderr)
        return 1
    role_name = args.role or settings.DEFAULT_ROLE

    db = SessionLocal()
    try:
        role = db.query(Role).filter(Role.name == role_name).first()
        if role is None:
            print(
                f"Role '{role_name}' does not exist. Run python -m app.scripts.seed_rbac first.",
                file=sys.stderr,
            )
            return 1
        store = CredentialStore(db)
        try:
            store.create_user(
                email=email,
                password_hash=hash_password(args.password, rounds=settings.BCRYPT_ROUNDS),
                role=role,
                full_name=args.name,
            )
        except ConflictError:
            print(f"User '{email}' already exists.", file=sys.stderr)
            return 1
        print(f"Created user '{email}' with role '{role_name}'.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
