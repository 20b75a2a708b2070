"""QRSigner"""
import pytest

from app.core.security import SigningKey, compute_signature
from shared.errors import ConfigurationError, InvalidRequest
from services.qr_signing.services.signer import QRSigner

from fixtures.clock import FakeClock


def test_sign_produces_payload_for_current_time(signing_key):
    clock = FakeClock()
    payload = QRSigner(signing_key, clock=clock).sign("u1", "a1")

    assert payload.user_id == "u1"
    assert payload.activity_id == "a1"
    assert payload.timestamp == "2025-03-01T08:00:00.123Z"
    assert payload.signature == compute_signature(signing_key, "u1", "a1", payload.timestamp)


def test_sign_is_deterministic_for_same_instant(signing_key):
    clock = FakeClock()
    signer = QRSigner(signing_key, clock=clock)
    assert signer.sign("u1", "a1") == signer.sign("u1", "a1")


def test_payload_is_immutable(signing_key):
    payload = QRSigner(signing_key, clock=FakeClock()).sign("u1", "a1")
    with pytest.raises(Exception):
        payload.user_id = "u2"


@pytest.mark.parametrize("user_id,activity_id", [(None, "a1"), ("u1", None), ("", "a1"), ("u1", "   ")])
def test_sign_requires_both_ids(signing_key, user_id, activity_id):
    with pytest.raises(InvalidRequest):
        QRSigner(signing_key, clock=FakeClock()).sign(user_id, activity_id)


def test_sign_without_secret_fails():
    calls = []

    def clock():
        calls.append(1)
        return FakeClock()()

    with pytest.raises(ConfigurationError):
        QRSigner(SigningKey(None), clock=clock).sign("u1", "a1")
    assert calls == []


def test_serialized_payload_uses_camel_case(signing_key):
    payload = QRSigner(signing_key, clock=FakeClock()).sign("u1", "a1")
    assert set(payload.model_dump(by_alias=True)) == {"userId", "activityId", "timestamp", "signature"}


def test_sign_rejects_unencodable_ids(signing_key):
    with pytest.raises(InvalidRequest):
        QRSigner(signing_key).sign("\ud800", "a1")
