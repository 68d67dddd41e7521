#!/usr/bin/env python3
"""
Generate secure secrets for the NRL Fan Hub
Run this script to generate the SECRET_KEY used to sign session cookies
"""

import secrets


def generate_secrets():
    """Generate a secure random key for the application"""
    print("🔐 Generating secure secrets for NRL Fan Hub...")
    print("=" * 50)

    print(f"SECRET_KEY={secrets.token_urlsafe(32)}")

    print("=" * 50)
    print("📝 Copy this value to your .env file")
    print("⚠️  Keep it secure and never commit it to version control!")


if __name__ == "__main__":
    generate_secrets()
