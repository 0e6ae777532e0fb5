"""TrustGate — signed-commit gatekeeper for git pushes."""

from trustgate.constants import PROJECT_VERSION

__version__ = PROJECT_VERSION
