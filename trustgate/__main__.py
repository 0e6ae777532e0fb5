"""
TrustGate — module entry point.

Usage:
    python -m trustgate hook REF OLD NEW
    python -m trustgate doctor
"""

from trustgate.cli.commands import main

if __name__ == "__main__":
    main()
