# scripts/generate_encryption_key.py
"""
Print a fresh Fernet key for ENCRYPTION_KEY.
Run: python scripts/generate_encryption_key.py
"""
from __future__ import annotations

from services.crypto import generate_key


def main() -> None:
    key = generate_key()
    print("Add this to your .env:\n")
    print(f"ENCRYPTION_KEY={key}")


if __name__ == "__main__":
    main()
