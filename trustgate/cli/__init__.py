"""TrustGate command-line interface."""
