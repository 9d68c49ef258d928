"""
Tests for deterministic hashing of compiled steps.
"""
from campaign_runtime.hashing import canonicalize, content_hash, stable_json_dumps, steps_fingerprint
from campaign_runtime.steps import CampaignStep, DelayUnit


class TestStableJson:
    """Test canonical JSON."""

    def test_key_order_independent(self):
        assert stable_json_dumps({"b": 1, "a": 2}) == stable_json_dumps({"a": 2, "b": 1})

    def test_enums_and_sets(self):
        assert canonicalize({"unit": DelayUnit.HOURS, "tags": {"b", "a"}}) == {
            "tags": ["a", "b"],
            "unit": "hours",
        }

    def test_content_hash(self):
        h = content_hash({"a": 1})

        assert len(h) == 64
        assert h == content_hash({"a": 1})
        assert h != content_hash({"a": 2})


class TestStepsFingerprint:
    """Test step fingerprints."""

    def test_ignores_ids_and_timestamps(self):
        a = CampaignStep(campaign_id="c1", channel="email", content="Hi", created_at=1.0)
        b = CampaignStep(campaign_id="c2", channel="email", content="Hi", created_at=2.0)

        assert a.step_id != b.step_id
        assert steps_fingerprint([a]) == steps_fingerprint([b])

    def test_sensitive_to_order_and_content(self):
        a = CampaignStep(channel="email", content="Hi", order_index=0)
        b = CampaignStep(channel="sms", content="Yo", order_index=1)

        assert steps_fingerprint([a, b]) != steps_fingerprint([b, a])
        assert steps_fingerprint([a]) != steps_fingerprint([b])

    def test_empty(self):
        assert steps_fingerprint([]) == steps_fingerprint([])
