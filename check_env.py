#!/usr/bin/env python3
"""Helper script to check and create the .env file for the logistics API."""

from pathlib import Path
import os
import sys

SECRET_KEYS = ("THRIFT_JWT_SECRET", "THRIFT_INTERNAL_API_KEY", "THRIFT_PAYSTACK_SECRET_KEY", "THRIFT_EMAIL_API_KEY")

TEMPLATE = """# Database (SQLite by default; any SQLAlchemy URL works)
THRIFT_DATABASE_URL=sqlite:///data/thrift_logistics.db
THRIFT_CAMPUS_SEED_FILE=./data/campuses.json

# Authentication boundary (required)
THRIFT_JWT_SECRET=change-me-to-a-long-random-string
THRIFT_INTERNAL_API_KEY=change-me-internal-key

# Payment gateway (required for checkout and the second-installment sweep)
THRIFT_PAYSTACK_SECRET_KEY=sk_test_your_key_here
THRIFT_PAYMENT_CALLBACK_URL=http://localhost:3000/payment/verify

# Transactional email (optional; emails are skipped when unset)
# THRIFT_EMAIL_API_KEY=

# Installment sweep inside the API process (or run thrift-installment-sweeper)
THRIFT_RUN_INSTALLMENT_SWEEPER=false
# THRIFT_REMINDER_LEAD_HOURS=48,24

# THRIFT_FRONTEND_ALLOWED_ORIGINS - JSON array or comma-separated list
"""


def _mask(line: str) -> str:
    name, _, value = line.partition("=")
    value = value.strip()
    if name.strip() in SECRET_KEYS and len(value) > 8:
        return f"{name}={value[:4]}...{value[-4:]}"
    return line


def main():
    project_root = Path(__file__).parent
    env_file = project_root / ".env"

    print("=" * 60)
    print("Thrift Logistics Environment Checker")
    print("=" * 60)
    print()

    if not env_file.exists():
        print(f"❌ .env file NOT found at: {env_file}")
        env_file.write_text(TEMPLATE, encoding="utf-8")
        print(f"✅ Created template .env file at: {env_file}")
        print()
        print("⚠️  Edit .env and replace the placeholder secrets before starting the API.")
        return

    print(f"✅ Found .env file at: {env_file}")
    print("-" * 60)
    for line in env_file.read_text(encoding="utf-8").splitlines():
        print(_mask(line))
    print("-" * 60)
    print()

    print("Testing config loading...")
    print()
    sys.path.insert(0, str(project_root / "src"))
    try:
        from thrift_logistics.config import settings
    except Exception as e:
        print(f"❌ Error loading config: {e}")
        print("Make sure you're running this from the project root directory")
        return

    missing = [
        name
        for name, value in (
            ("THRIFT_JWT_SECRET", settings.jwt_secret),
            ("THRIFT_INTERNAL_API_KEY", settings.internal_api_key),
            ("THRIFT_PAYSTACK_SECRET_KEY", settings.paystack_secret_key),
        )
        if not value
    ]
    print(f"Database URL: {settings.database_url}")
    print(f"Campus seed file: {settings.campus_seed_file} ({'found' if settings.campus_seed_file.exists() else 'missing'})")
    print(f"Email delivery: {'enabled' if settings.email_api_key else 'disabled'}")
    print(f"Reminder lead hours: {', '.join(str(h) for h in settings.reminder_lead_hours) or 'none'}")
    if os.getenv("PORT"):
        print(f"PORT (from environment): {os.getenv('PORT')}")
    print()

    print("=" * 60)
    if missing:
        print(f"❌ ERROR: missing {', '.join(missing)}")
        print("=" * 60)
        print()
        print("Troubleshooting:")
        print("1. Make sure variables start with the THRIFT_ prefix")
        print("2. Make sure there are no spaces around = sign")
        print("3. Restart the backend after editing .env")
    else:
        print("✅ SUCCESS: required secrets are configured!")
        print("=" * 60)


if __name__ == "__main__":
    main()
