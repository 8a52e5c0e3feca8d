"""Create or update a user account with a password for local development."""
from __future__ import annotations

import argparse

from werkzeug.security import generate_password_hash

from barbershop import create_app
from barbershop.extensions import db
from barbershop.models import USER_ROLES, AuthAccount, Barber, User


def set_password(email: str, password: str, role: str, first_name: str, last_name: str) -> None:
    app = create_app()

    with app.app_context():
        user = User.query.filter_by(email=email).first()
        if user is None:
            user = User(first_name=first_name, last_name=last_name, email=email, role=role)
            db.session.add(user)
            db.session.flush()
            print(f"Created new {role} user: {email}")
        elif user.role != role:
            print(f"Updating user role from '{user.role}' to '{role}'")
            user.role = role

        # Barber endpoints resolve through the profile row, so make sure one exists.
        if role == "barber" and Barber.query.filter_by(user_id=user.id).first() is None:
            db.session.add(Barber(user_id=user.id, specialties=[]))
            print(f"Created barber profile for user: {email}")

        account = AuthAccount.query.filter_by(user_id=user.id).first()
        if account is None:
            account = AuthAccount(user_id=user.id)
            db.session.add(account)

        account.password_hash = generate_password_hash(password)
        db.session.commit()

        print(f"Password for {role} user '{email}' has been set successfully.")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Set a user password for local testing.")
    parser.add_argument("email", help="User email address")
    parser.add_argument("password", help="Plain-text password to hash and store")
    parser.add_argument("--role", choices=USER_ROLES, default="client", help="User role (default: client)")
    parser.add_argument("--first-name", default="Test")
    parser.add_argument("--last-name", default="User")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    set_password(args.email, args.password, args.role, args.first_name, args.last_name)


if __name__ == "__main__":
    main()
