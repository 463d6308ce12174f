"""Builtin vocabulary and masking primitives for payload redaction."""

from __future__ import annotations

import re


DEFAULT_REPLACEMENT = "***[REDACTED]***"
DEFAULT_MAX_DEPTH = 15

# cspell:disable
SENSITIVE_KEYS: frozenset[str] = frozenset(
    {
        # Authentication & tokens
        "password",
        "pass",
        "pwd",
        "passwd",
        "secret",
        "clientsecret",
        "apikey",
        "accesstoken",
        "refreshtoken",
        "auth",
        "authorization",
        "bearer",
        "jwt",
        "idtoken",
        "privatekey",
        "publickey",
        "session",
        "sessionid",
        "sessiontoken",
        "csrf",
        "xsrf",
        "otp",
        "pin",
        "totp",
        "mfa",
        "credential",
        "credentials",
        "access_token",
        "refresh_token",
        "x-access-token",
        "x-refresh-token",
        # Card & payment
        "card",
        "cardnumber",
        "cardno",
        "pan",
        "cvv",
        "cvc",
        "cvv2",
        "cvc2",
        "securitycode",
        "expiry",
        "expmonth",
        "expyear",
        "expdate",
        "expirationdate",
        "billingaddress",
        "paymentmethod",
        "bankaccount",
        "accountnumber",
        "accountno",
        "routingnumber",
        "iban",
        "swift",
        "bic",
        "upi",
        "vpa",
        "ach",
        "sortcode",
        # Payment providers
        "stripekey",
        "stripesecret",
        "paypal",
        "razorpay",
        "braintree",
        "encryptionkey",
        "merchantid",
        "merchantkey",
        # PII
        "ssn",
        "socialsecurity",
        "taxid",
        "dob",
        "dateofbirth",
        "driverslicense",
        "passport",
        "nationalid",
    }
)

# Only the last four digits of these may appear in output.
LAST4_FIELDS: frozenset[str] = frozenset(
    {"pan", "card", "cardnumber", "cardno", "accountnumber", "accountno", "bankaccount"}
)

# These must never appear in output, not even as a placeholder.
REMOVE_FIELDS: frozenset[str] = frozenset(
    {"cvv", "cvc", "cvv2", "cvc2", "securitycode", "pin"}
)
# cspell:enable

_SEPARATORS = re.compile(r"[_\-\s.]")
_NON_DIGITS = re.compile(r"[^0-9]")


def normalize_key(key: object) -> str:
    """Lowercase a key and strip underscores, hyphens, whitespace and dots."""

    return _SEPARATORS.sub("", str(key).lower())


def mask_last4(value: str, replacement: str) -> str:
    """Keep only the last four digits of a card or account number."""

    digits = _NON_DIGITS.sub("", value)
    if len(digits) >= 4:
        return f"****-****-****-{digits[-4:]}"
    return replacement


def looks_like_email(value: str) -> bool:
    return "@" in value and "." in value


def mask_email(value: str, replacement: str) -> str:
    """Reveal only the domain part of an email address."""

    at_index = value.find("@")
    if at_index != -1 and at_index < len(value) - 1:
        return f"***@{value[at_index + 1:]}"
    return replacement


__all__ = [
    "DEFAULT_MAX_DEPTH",
    "DEFAULT_REPLACEMENT",
    "LAST4_FIELDS",
    "REMOVE_FIELDS",
    "SENSITIVE_KEYS",
    "looks_like_email",
    "mask_email",
    "mask_last4",
    "normalize_key",
]
