import json
import pytest
import stripe
from datetime import datetime
from unittest.mock import patch

from jobapply.core.config import Settings, ConfigurationError, validate_settings
from jobapply.core.exceptions import WebhookSignatureError
from jobapply.services.stripe_service import (
    stripe_service,
    from_timestamp,
    get_period_bounds,
    get_invoice_subscription_id,
    stripe_object_id,
)


def test_validate_settings_requires_stripe_secret():
    with pytest.raises(ConfigurationError):
        validate_settings(Settings(stripe_secret_key=""))

    validate_settings(Settings(stripe_secret_key="sk_test_dummy"))


def test_stripe_object_id_accepts_expanded_objects():
    assert stripe_object_id({"id": "cus_1", "email": "a@example.com"}) == "cus_1"
    assert stripe_object_id("cus_1") == "cus_1"
    assert stripe_object_id("") is None
    assert stripe_object_id(None) is None


def test_period_bounds_prefer_top_level_fields():
    subscription = {
        "current_period_start": 1767225600,
        "current_period_end": 1769904000,
        "items": {"data": [{"current_period_start": 0, "current_period_end": 0}]},
    }

    assert get_period_bounds(subscription) == (datetime(2026, 1, 1), datetime(2026, 2, 1))


def test_period_bounds_missing_everywhere():
    assert get_period_bounds({"id": "sub_1"}) == (None, None)
    assert from_timestamp(None) is None


def test_from_timestamp_is_naive_utc():
    converted = from_timestamp("1767225600")

    assert converted == datetime(2026, 1, 1)
    assert converted.tzinfo is None


@pytest.mark.asyncio
async def test_retrieved_session_is_plain_data():
    session = stripe.checkout.Session.construct_from(
        {"id": "cs_1", "payment_status": "paid", "metadata": {"userId": "user-1"}},
        "sk_test_dummy"
    )

    with patch("jobapply.services.stripe_service.stripe.checkout.Session.retrieve", return_value=session):
        result = await stripe_service.retrieve_checkout_session("cs_1")

    assert isinstance(result, dict)
    assert result["payment_status"] == "paid"
    assert result["metadata"]["userId"] == "user-1"


def test_invoice_subscription_id_shapes():
    assert get_invoice_subscription_id({"subscription": "sub_1"}) == "sub_1"
    assert get_invoice_subscription_id({"subscription": {"id": "sub_2"}}) == "sub_2"
    assert get_invoice_subscription_id(
        {"subscription": None, "parent": {"subscription_details": {"subscription": "sub_3"}}}
    ) == "sub_3"
    assert get_invoice_subscription_id({"id": "in_1"}) is None


def test_construct_event_without_secret_trusts_payload():
    payload = json.dumps({"id": "evt_1", "type": "ping"}).encode()

    with patch.object(stripe_service, "webhook_secret", None):
        assert stripe_service.construct_event(payload, None)["id"] == "evt_1"

        with pytest.raises(WebhookSignatureError):
            stripe_service.construct_event(b"not json", None)


def test_construct_event_verifies_signature():
    payload = json.dumps({"id": "evt_1", "type": "ping"}).encode()

    with patch.object(stripe_service, "webhook_secret", "whsec_test"):
        with patch("jobapply.services.stripe_service.stripe.Webhook.construct_event") as verify:
            event = stripe_service.construct_event(payload, "t=1,v1=abc")

    verify.assert_called_once_with(payload, "t=1,v1=abc", "whsec_test")
    assert event["type"] == "ping"


def test_construct_event_rejects_missing_signature():
    with patch.object(stripe_service, "webhook_secret", "whsec_test"):
        with pytest.raises(WebhookSignatureError) as exc_info:
            stripe_service.construct_event(b"{}", None)

    assert exc_info.value.status_code == 400
