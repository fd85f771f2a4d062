"""
Create an account from the command line (e.g. the first admin). Run from project root:
  python -m imagegen.scripts.create_account USERNAME EMAIL PASSWORD [role]
Example:
  python -m imagegen.scripts.create_account admin admin@example.com s3cret1 admin
"""
import argparse
import logging
import sys

from imagegen.core.config import settings
from imagegen.core.database import SessionLocal
from imagegen.core.security import hash_password
from imagegen.models import User
from imagegen.schemas.auth import validate_email, validate_password, validate_username
from imagegen.services.bootstrap import ensure_admin


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create an ImageGen user or admin account.")
    parser.add_argument("username", help="Username (3-20 letters, digits, underscores)")
    parser.add_argument("email", help="Email address")
    parser.add_argument("password", help="Password (6-20 chars)")
    parser.add_argument("role", nargs="?", default="user", choices=["user", "admin"])
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    try:
        username = validate_username(args.username.strip())
        email = validate_email(args.email.strip())
        password = validate_password(args.password)
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        if args.role == "admin":
            if not ensure_admin(db, username, email, password):
                print(f"Admin '{username}' (or email '{email}') already exists.", file=sys.stderr)
                return 1
        else:
            existing = (
                db.query(User)
                .filter((User.username == username) | (User.email == email))
                .first()
            )
            if existing:
                print(f"User '{username}' (or email '{email}') already exists.", file=sys.stderr)
                return 1
            db.add(
                User(
                    username=username,
                    email=email,
                    password_hash=hash_password(password),
                    role="user",
                    status="active",
                )
            )
            db.commit()
        print(f"Created {args.role} account '{username}'.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
