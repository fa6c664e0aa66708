#!/usr/bin/env python3
"""
Password Hash Generator
Generates the bcrypt ADMIN_PASSWORD_HASH used by the CMS login, or checks a
password against an existing hash.

Usage:
    python generate_password_hash.py            - Generate a new hash
    python generate_password_hash.py --check    - Test a password against ADMIN_PASSWORD_HASH
"""
import getpass
import sys

from clinic_cms.config import settings
from clinic_cms.utils.security import hash_password, verify_password


def generate():
    print("This will generate a bcrypt hash for your admin password.")
    print("Copy the output to your .env file as ADMIN_PASSWORD_HASH")
    print()

    # Get password securely (won't echo to screen)
    password = getpass.getpass("Enter admin password: ")
    if not password:
        print("\n❌ Error: Password cannot be empty")
        return 1

    if password != getpass.getpass("Confirm password: "):
        print("\n❌ Error: Passwords do not match")
        return 1

    print("\n⏳ Generating hash (this may take a moment)...")
    hashed = hash_password(password)

    print("\n✅ Success! Copy this line to your .env file:\n")
    print(f"ADMIN_PASSWORD_HASH={hashed}")
    print()
    print("⚠️  Keep this hash secret and never commit it to version control!")
    return 0


def check():
    if not settings.ADMIN_PASSWORD_HASH:
        print("❌ Error: ADMIN_PASSWORD_HASH is not set")
        return 1

    print(f"Testing against hash: {settings.ADMIN_PASSWORD_HASH[:30]}...")
    password = getpass.getpass("Enter password to test: ")
    if verify_password(password, settings.ADMIN_PASSWORD_HASH):
        print("\n✅ Password matches!")
        return 0

    print("\n❌ Password does not match.")
    print("Generate a new hash with: python generate_password_hash.py")
    return 1


def main():
    print("=" * 60)
    print("CMS Admin Password Hash Generator")
    print("=" * 60)
    print()

    if len(sys.argv) > 1 and sys.argv[1] == "--check":
        return check()
    return generate()


if __name__ == "__main__":
    sys.exit(main())
