"""AWS credential_process helper backed by the system keyring.

Profiles are stored as JSON records in the keyring. Static profiles hold a
long-lived IAM access key; delegated profiles are refreshed through one STS
assume-role hop from a static source profile.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
