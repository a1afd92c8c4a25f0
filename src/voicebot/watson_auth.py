"""Credentials for the IBM Watson service clients."""

from __future__ import annotations

from typing import Any


def iam_authenticator(apikey: str | None) -> Any:
    """IAM authenticator for an explicit API key.

    ``None`` lets each ``ibm_watson`` client fall back to the credentials the
    SDK reads from its own environment variables or ``ibm-credentials.env``.
    """
    if not apikey:
        return None
    from ibm_cloud_sdk_core.authenticators import IAMAuthenticator

    return IAMAuthenticator(apikey)
