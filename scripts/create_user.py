"""
Create a user account for the journal API.

Usage:
    python scripts/create_user.py            # author account
    python scripts/create_user.py --admin    # admin account
"""
import getpass
import sys

from journal_web import create_app
from journal_web.database import User, db

is_admin = "--admin" in sys.argv[1:]

print("\n" + "="*60)
print("CREATE ADMIN ACCOUNT" if is_admin else "CREATE USER ACCOUNT")
print("="*60)

email = input("\nEnter email: ").strip().lower()
full_name = input("Enter full name: ").strip()
password = getpass.getpass("Enter password: ").strip()

if not email or not password:
    print("\nEmail and password are required.")
    sys.exit(1)

app = create_app()
with app.app_context():
    # Check if user exists
    existing = User.query.filter_by(email=email).first()
    if existing:
        print(f"\nUser with email '{email}' already exists!")
        print("="*60 + "\n")
        sys.exit(1)

    user = User(email=email, full_name=full_name or None, is_admin=is_admin)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()

    print(f"\nUser created successfully!")
    print(f"  Email: {email}")
    print(f"  Admin: {'yes' if is_admin else 'no'}")
    print(f"  ID: {user.id}")
    print("\nYou can now log in with these credentials.")
    print("="*60 + "\n")
