"""Project-wide constants for TrustGate."""

PROJECT_NAME = "trustgate"
PROJECT_DISPLAY_NAME = "TrustGate"
PROJECT_DESCRIPTION = "Verify that every pushed commit is signed by a key the repository trusts"
PROJECT_VERSION = "0.1.0"
PROJECT_LICENSE = "MIT"

# git uses an all-zero object id for "no such value"
ZERO_OID = "0" * 40

# Defaults for hook configuration
DEFAULT_KEYDIR = "keys"
DEFAULT_GPG_PROGRAM = "gpg"
DEFAULT_GIT_PROGRAM = "git"

# git config keys
CONFIG_KEY_KEYDIR = "hooks.verify.keydir"
CONFIG_KEY_GPG_PROGRAM = "hooks.verify.gpgprogram"
CONFIG_KEY_GPG_PROGRAM_FALLBACK = "gpg.program"

# Commit headers carrying an embedded signature; the one git strips
# before verifying depends on the repository's hash (object id length)
SIGNATURE_HEADERS = (b"gpgsig ", b"gpgsig-sha256 ")
SIGNATURE_HEADER_BY_OID_LENGTH = {40: b"gpgsig ", 64: b"gpgsig-sha256 "}

# Machine-readable status output of the signing program
STATUS_PREFIX = "[GNUPG:] "

# ERRSIG return code meaning "no public key" (GnuPG doc/DETAILS)
ERRSIG_NO_PUBLIC_KEY = "9"

TRUST_STORE_PREFIX = "trustgate-keyring-"
