"""Tests for key normalization, the sensitive key registry and traversal."""

from __future__ import annotations

import threading

import pytest

from traffic_logger.config import load_settings
from traffic_logger.metrics import get_metrics
from traffic_logger.redaction import (
    REMOVED,
    Redactor,
    add_sensitive_keys,
    build_redactor,
    is_sensitive_key,
    redact_data,
    remove_sensitive_keys,
)
from traffic_logger.redaction.defaults import (
    DEFAULT_REPLACEMENT,
    SENSITIVE_KEYS,
    mask_email,
    mask_last4,
    normalize_key,
)


@pytest.mark.parametrize(
    "key",
    ["Card_Number", "card-number", "CARD NUMBER", "card.number", "cardnumber", "  x-API_key "],
)
def test_normalize_key_is_idempotent(key):
    """Normalizing twice gives the same result as normalizing once."""

    once = normalize_key(key)

    assert normalize_key(once) == once
    assert once == once.lower()
    assert not any(ch in once for ch in "_- .")


def test_is_sensitive_key_ignores_case_and_separators(redactor):
    """Spelling variants of the same field resolve identically."""

    assert redactor.is_sensitive_key("Card_Number") is True
    assert redactor.is_sensitive_key("cardnumber") is True
    assert redactor.is_sensitive_key("CARD-NUMBER") is True
    assert redactor.is_sensitive_key("x-access-token") is True
    assert redactor.is_sensitive_key("username") is False


def test_builtin_vocabulary_is_stored_normalized(redactor):
    """Every registry member is already in normalized form."""

    keys = redactor.sensitive_keys

    assert all(normalize_key(key) == key for key in keys)
    assert "accesstoken" in keys
    assert "xaccesstoken" in keys
    assert len(SENSITIVE_KEYS) >= 70


def test_remove_fields_are_dropped_from_mapping(redactor):
    """Security codes leave no trace, not even the key."""

    sanitized = redactor.redact({"cardHolder": "Bob", "CVV": "123", "pin": "9999", "cvc_2": 1})

    assert sanitized == {"cardHolder": "Bob"}


def test_remove_fields_inside_lists_are_dropped(redactor):
    """Removal applies to mappings nested in sequences, never to list items."""

    sanitized = redactor.redact([{"cvv": "123", "id": 1}, "cvv", 7])

    assert sanitized == [{"id": 1}, "cvv", 7]


def test_partial_reveal_keeps_last_four_digits(redactor):
    """Card numbers reveal only their last four digits."""

    sanitized = redactor.redact({"cardNumber": "4111 1111 1111 1234"})

    assert sanitized == {"cardNumber": "****-****-****-1234"}


def test_partial_reveal_falls_back_to_marker_with_few_digits(redactor):
    """Fewer than four digits yields the full marker."""

    assert redactor.redact({"card_number": "12"}) == {"card_number": DEFAULT_REPLACEMENT}


def test_partial_reveal_counts_only_ascii_digits(redactor):
    """Digits from other scripts are dropped, never revealed."""

    assert mask_last4("١٢٣٤٥٦٧٨", "#") == "#"
    assert mask_last4("4111١٢٣٤", "#") == "****-****-****-4111"
    assert redactor.redact({"cardNumber": "٤١١١ ٢٢٢٢ 9876"}) == {"cardNumber": "****-****-****-9876"}


def test_partial_reveal_masks_non_text_values_fully(redactor):
    """Numeric card values are not textual and get the plain marker."""

    assert redactor.redact({"pan": 4111111111111234}) == {"pan": DEFAULT_REPLACEMENT}


def test_email_shaped_values_reveal_domain(redactor):
    """Any sensitive key holding an email reveals only the domain."""

    assert redactor.redact({"secret": "alice@example.com"}) == {"secret": "***@example.com"}


def test_email_value_under_non_sensitive_key_passes_through(redactor):
    """Emails are only masked when their key is sensitive."""

    assert redactor.redact({"email": "alice@example.com"}) == {"email": "alice@example.com"}


def test_sensitive_container_values_are_masked_whole(redactor):
    """A sensitive key hides its whole subtree behind the marker."""

    sanitized = redactor.redact({"credentials": {"user": "bob", "token": "t"}})

    assert sanitized == {"credentials": DEFAULT_REPLACEMENT}


def test_custom_replacement_marker_is_used_for_fallbacks():
    """Both the plain mask and the fallbacks use the configured marker."""

    redactor = Redactor(replacement="<hidden>")

    sanitized = redactor.redact({"password": "p", "cardNo": "1", "secret": "a.b@"})

    assert sanitized == {"password": "<hidden>", "cardNo": "<hidden>", "secret": "<hidden>"}
    assert redactor.redact({"password": "p"}, replacement="##") == {"password": "##"}


def test_depth_bound_leaves_deep_subtree_untouched(redactor):
    """A sensitive key below max_depth is not redacted."""

    value = {"a": {"b": {"c": {"password": "deep"}}, "password": "shallow"}}

    sanitized = redactor.redact(value, max_depth=2)

    assert sanitized["a"]["password"] == DEFAULT_REPLACEMENT
    assert sanitized["a"]["b"]["c"] == {"password": "deep"}


def test_non_sensitive_values_pass_through_unchanged(redactor):
    """Non-sensitive data is deep-equal to the input."""

    value = {
        "user": "bob",
        "count": 3,
        "ratio": 0.5,
        "flag": True,
        "missing": None,
        "blob": b"\x00\x01",
        "items": [1, "two", {"three": 3}],
        "pair": ("x", "y"),
    }

    assert redactor.redact(value) == value


def test_bare_scalars_and_lists_are_never_masked(redactor):
    """Only mapping keys drive redaction."""

    assert redactor.redact("password") == "password"
    assert redactor.redact(["password", "4111111111111111"]) == ["password", "4111111111111111"]
    assert redactor.redact(None) is None


def test_order_is_preserved(redactor):
    """Mapping key order and sequence order survive redaction."""

    value = {"z": 1, "password": "x", "a": [3, 2, 1], "m": {"y": 1, "b": 2}}

    sanitized = redactor.redact(value)

    assert list(sanitized) == ["z", "password", "a", "m"]
    assert sanitized["a"] == [3, 2, 1]
    assert list(sanitized["m"]) == ["y", "b"]


def test_sequence_types_are_preserved(redactor):
    """Lists stay lists and tuples stay tuples."""

    sanitized = redactor.redact({"rows": ({"token": "t"},), "cols": [{"token": "t"}]})

    assert isinstance(sanitized["rows"], tuple)
    assert isinstance(sanitized["cols"], list)


def test_input_is_never_mutated(redactor):
    """Redaction returns a copy."""

    value = {"password": "hunter2", "nested": {"cvv": "123"}, "rows": [{"token": "t"}]}

    redactor.redact(value)

    assert value == {"password": "hunter2", "nested": {"cvv": "123"}, "rows": [{"token": "t"}]}


def test_end_to_end_scenario(redactor):
    """The canonical account example redacts as documented."""

    value = {
        "user": "bob",
        "password": "hunter2",
        "account": {"accountNumber": "000123456789", "note": "vip"},
    }

    assert redactor.redact(value) == {
        "user": "bob",
        "password": "***[REDACTED]***",
        "account": {"accountNumber": "****-****-****-6789", "note": "vip"},
    }


def test_registry_add_and_remove_round_trip(redactor):
    """Adding then removing a key restores the original answer."""

    assert redactor.is_sensitive_key("foo") is False

    redactor.add_sensitive_keys(["foo"])
    assert redactor.is_sensitive_key("F_O-O") is True
    assert redactor.redact({"foo": "bar"}) == {"foo": DEFAULT_REPLACEMENT}

    redactor.remove_sensitive_keys(["foo"])
    assert redactor.is_sensitive_key("foo") is False
    redactor.remove_sensitive_keys(["never-added"])


def test_registry_accepts_a_single_string(redactor):
    """A bare string is one key, not a list of characters."""

    redactor.add_sensitive_keys("tenantSecret")

    assert redactor.is_sensitive_key("tenant_secret") is True
    assert redactor.is_sensitive_key("t") is False


def test_mask_value_decision_order(redactor):
    """Remove beats partial reveal, which beats email, which beats the marker."""

    assert redactor.mask_value("cvv", "123") is REMOVED
    assert redactor.mask_value("pan", "a@b.com 1234") == "****-****-****-1234"
    assert redactor.mask_value("secret", "a@b.com") == "***@b.com"
    assert redactor.mask_value("secret", "plain") == DEFAULT_REPLACEMENT


def test_mask_helpers():
    """The primitive maskers follow the documented formats."""

    assert mask_last4("000123456789", "#") == "****-****-****-6789"
    assert mask_last4("12-3", "#") == "#"
    assert mask_email("user@mail.example.org", "#") == "***@mail.example.org"
    assert mask_email("user.name@", "#") == "#"


def test_build_redactor_applies_settings():
    """Extra keys, allowlist and custom subsets come from settings."""

    settings = load_settings(
        {
            "LOG_REDACTION_EXTRA_KEYS": "tenant_secret, internal-id",
            "LOG_REDACTION_ALLOWLIST": "session",
            "LOG_REDACTION_REMOVE_FIELDS": "otp",
            "LOG_REDACTION_LAST4_FIELDS": "phone",
            "LOG_REDACTION_REPLACEMENT": "[x]",
            "LOG_REDACTION_MAX_DEPTH": "3",
        }
    )

    redactor = build_redactor(settings.redaction)

    assert redactor.is_sensitive_key("TenantSecret") is True
    assert redactor.is_sensitive_key("internal_id") is True
    assert redactor.is_sensitive_key("session") is False
    assert redactor.max_depth == 3
    assert redactor.redact(
        {"otp": "1234", "phone": "+1 555 010 9876", "cvv": "1", "session": "s"}
    ) == {"phone": "****-****-****-9876", "cvv": "[x]", "session": "s"}


def test_module_level_api_uses_default_redactor():
    """The module-level helpers share one lazily built redactor."""

    assert is_sensitive_key("password") is True

    add_sensitive_keys(["widgetSerial"])
    assert redact_data({"widget_serial": "W-1"}) == {"widget_serial": DEFAULT_REPLACEMENT}

    remove_sensitive_keys(["widgetSerial"])
    assert redact_data({"widget_serial": "W-1"}) == {"widget_serial": "W-1"}


def test_redaction_counts_are_recorded(redactor):
    """Masked and removed entries feed the runtime metrics."""

    redactor.redact({"password": "x", "token": "y", "cvv": "1", "ok": 1})

    metrics = get_metrics()
    assert metrics.redacted_total == 2
    assert metrics.removed_total == 1


def test_concurrent_registry_mutation_and_redaction(redactor):
    """Mutation and traversal from many threads never raises or corrupts."""

    errors = []
    payload = {"password": "x", "nested": [{"token": "t", "note": "n"}] * 5}

    def _mutate(index: int) -> None:
        try:
            for round_ in range(50):
                key = f"key{index}_{round_}"
                redactor.add_sensitive_keys([key])
                assert redactor.is_sensitive_key(key)
                redactor.remove_sensitive_keys([key])
        except Exception as exc:  # pragma: no cover - surfaced via assertion
            errors.append(exc)

    def _redact() -> None:
        try:
            for _ in range(50):
                sanitized = redactor.redact(payload)
                assert sanitized["password"] == DEFAULT_REPLACEMENT
                assert sanitized["nested"][0] == {"token": DEFAULT_REPLACEMENT, "note": "n"}
        except Exception as exc:  # pragma: no cover - surfaced via assertion
            errors.append(exc)

    threads = [threading.Thread(target=_mutate, args=(i,)) for i in range(4)]
    threads += [threading.Thread(target=_redact) for _ in range(4)]

    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert not any(key.startswith("key") for key in redactor.sensitive_keys)
