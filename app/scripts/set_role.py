"""
Set a user's role (e.g. bootstrap the first admin). The user must have logged in
with Google at least once. Run from project root:
  python -m app.scripts.set_role EMAIL [role]
Example:
  python -m app.scripts.set_role you@example.com admin
"""
import argparse
import sys

from app.core.database import SessionLocal
from app.models.user import ROLE_ADMIN, ROLES, User


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Set the role of an existing Letter Drive user.")
    parser.add_argument("email", help="Email of a user who has signed in with Google")
    parser.add_argument("role", nargs="?", default=ROLE_ADMIN, choices=list(ROLES))
    args = parser.parse_args(argv)

    email = args.email.strip()
    if not email:
        print("Email must not be empty.", file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        users = db.query(User).filter(User.email == email).all()
        if not users:
            print(f"No user with email '{email}'. Sign in with Google first.", file=sys.stderr)
            return 1
        if len(users) > 1:
            print(f"Several users share email '{email}'; refusing to guess.", file=sys.stderr)
            return 1
        user = users[0]
        user.role = args.role
        db.commit()
        print(f"User '{email}' (id={user.id}) now has role '{args.role}'.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
