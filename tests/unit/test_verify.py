"""
Tests for inbound callback signature verification.
"""

import hashlib
import hmac

import pytest

from conftest import FIXED_TS, SIGNING_SECRET

from followups.hitl.verify import SignatureVerifier

BODY = "payload=%7B%22actions%22%3A%5B%5D%7D"


def reference_signature(body: str, timestamp: str) -> str:
    base = f"v0:{timestamp}:{body}".encode()
    return "v0=" + hmac.new(SIGNING_SECRET.encode(), base, hashlib.sha256).hexdigest()


class TestSignatureVerifier:
    def test_matches_slack_v0_scheme(self, verifier):
        ts = str(FIXED_TS)
        assert verifier.compute_signature(BODY, ts) == reference_signature(BODY, ts)

    def test_valid_signature(self, verifier):
        ts = str(FIXED_TS)
        assert verifier.verify(BODY, ts, reference_signature(BODY, ts)) is True

    def test_accepts_bytes_body(self, verifier):
        ts = str(FIXED_TS)
        assert verifier.verify(BODY.encode(), ts, reference_signature(BODY, ts)) is True

    def test_tampered_body_rejected(self, verifier):
        ts = str(FIXED_TS)
        assert verifier.verify(BODY + "x", ts, reference_signature(BODY, ts)) is False

    def test_wrong_secret_rejected(self):
        other = SignatureVerifier("another-secret", clock=lambda: FIXED_TS)
        ts = str(FIXED_TS)
        assert other.verify(BODY, ts, reference_signature(BODY, ts)) is False

    @pytest.mark.parametrize("position", [3, 20, -1])
    def test_single_flipped_hex_char_rejected(self, verifier, position):
        ts = str(FIXED_TS)
        signature = list(reference_signature(BODY, ts))
        signature[position] = "0" if signature[position] != "0" else "1"
        assert verifier.verify(BODY, ts, "".join(signature)) is False

    @pytest.mark.parametrize("skew", [-300, 0, 300])
    def test_inside_replay_window(self, verifier, skew):
        ts = str(FIXED_TS + skew)
        assert verifier.verify(BODY, ts, reference_signature(BODY, ts)) is True

    @pytest.mark.parametrize("skew", [-301, 301, -3600])
    def test_outside_replay_window(self, verifier, skew):
        ts = str(FIXED_TS + skew)
        assert verifier.verify(BODY, ts, reference_signature(BODY, ts)) is False

    @pytest.mark.parametrize("timestamp,signature", [("", ""), ("abc", "v0=00"), (str(FIXED_TS), "")])
    def test_missing_or_garbage_headers(self, verifier, timestamp, signature):
        assert verifier.verify(BODY, timestamp, signature) is False

    def test_empty_secret_refused(self):
        with pytest.raises(ValueError):
            SignatureVerifier("")
