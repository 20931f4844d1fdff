"""
Tests for the Disposal Advisor client.

The completion endpoint is never contacted: either ``_complete`` is
replaced with a canned reply, or ``urllib3.PoolManager`` is swapped for a
fake to exercise the transport error paths.
"""

import json
from datetime import date
from types import SimpleNamespace

import pytest
import urllib3

from tech_inventory.services import disposal_advisor
from tech_inventory.services.disposal_advisor import (
    DisposalAdvisorClient,
    DisposalAdvisorError,
    DisposalVerdict,
    build_candidates,
    extract_json,
)

TODAY = date(2026, 10, 19)


def _asset(asset_id, product_type, purchase_date, status="active", name=None):
    return SimpleNamespace(
        id=asset_id,
        name=name or f"{product_type} {asset_id}",
        product_type=product_type,
        model="Model X",
        serial_number=f"SN-{asset_id:05d}",
        purchase_date=purchase_date,
        status=status,
    )


INVENTORY = [
    _asset(1, "Laptop", date(2020, 3, 1)),
    _asset(2, "Laptop", date(2025, 1, 10)),
    _asset(3, "Monitor", date(2018, 6, 1)),
    _asset(4, "Laptop", date(2017, 1, 1), status="disposed"),
]


class _FakeResponse:
    def __init__(self, status, payload):
        self.status = status
        self.data = payload if isinstance(payload, bytes) else json.dumps(payload).encode()


class _FakePoolManager:
    """Stands in for urllib3.PoolManager; records the last request."""

    response = None
    error = None
    last_request = None

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def request(self, method, url, body=None, headers=None, timeout=None):
        type(self).last_request = {
            "method": method,
            "url": url,
            "body": json.loads(body),
            "headers": headers,
        }
        if self.error is not None:
            raise self.error
        return self.response


def _completion(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


@pytest.fixture
def fake_pool(monkeypatch):
    _FakePoolManager.response = None
    _FakePoolManager.error = None
    _FakePoolManager.last_request = None
    monkeypatch.setattr(disposal_advisor.urllib3, "PoolManager", _FakePoolManager)
    return _FakePoolManager


@pytest.fixture
def advisor(app):
    with app.app_context():
        yield DisposalAdvisorClient()


class TestSuggest:
    """Tests for DisposalAdvisorClient.suggest()."""

    def test_laptops_older_than_four_years(self, advisor, monkeypatch):
        """Scenario: the model's pick is returned as exactly that id."""
        monkeypatch.setattr(
            advisor, "_complete", lambda message: 'Sure! {"ids": ["1"]} Hope that helps.'
        )
        ids = advisor.suggest("laptops older than 4 years", INVENTORY, today=TODAY)
        assert ids == ["1"]

    def test_ids_restricted_to_candidates(self, advisor, monkeypatch):
        """Unknown ids, disposed assets and duplicates are dropped."""
        monkeypatch.setattr(
            advisor, "_complete", lambda message: '["3", 3, "4", "99", true, "1"]'
        )
        assert advisor.suggest("old stuff", INVENTORY, today=TODAY) == ["3", "1"]

    @pytest.mark.parametrize(
        "reply",
        [
            '{"assetIds": [1]}',
            '[{"id": "1", "reason": "old"}]',
            '{"assets": [{"id": 1}]}',
        ],
    )
    def test_accepted_reply_shapes(self, advisor, monkeypatch, reply):
        monkeypatch.setattr(advisor, "_complete", lambda message: reply)
        assert advisor.suggest("old laptops", INVENTORY, today=TODAY) == ["1"]

    @pytest.mark.parametrize(
        "reply",
        ["I could not find anything.", '{"ids": ["1"', '{"answer": "1"}', "42"],
    )
    def test_unparseable_reply_is_empty(self, advisor, monkeypatch, reply):
        monkeypatch.setattr(advisor, "_complete", lambda message: reply)
        assert advisor.suggest("old laptops", INVENTORY, today=TODAY) == []

    def test_prompt_embeds_criteria_and_candidates(self, advisor, fake_pool):
        fake_pool.response = _FakeResponse(200, _completion('{"ids": []}'))

        advisor.suggest("monitors bought before 2019", INVENTORY, today=TODAY)

        body = fake_pool.last_request["body"]
        user_message = body["messages"][1]["content"]
        assert body["model"] == "gpt-4"
        assert body["messages"][0]["role"] == "system"
        assert "monitors bought before 2019" in user_message
        assert '"id": "3"' in user_message
        assert '"id": "4"' not in user_message
        assert fake_pool.last_request["headers"]["Authorization"] == "Bearer test-key"

    def test_blank_criteria_rejected(self, advisor):
        with pytest.raises(ValueError):
            advisor.suggest("   ", INVENTORY)

    def test_nothing_to_send_skips_request(self, advisor, fake_pool):
        disposed_only = [INVENTORY[3]]
        assert advisor.suggest("anything", disposed_only, today=TODAY) == []
        assert fake_pool.last_request is None


class TestEvaluate:
    """Tests for DisposalAdvisorClient.evaluate()."""

    def test_verdict_parsed(self, advisor, monkeypatch):
        monkeypatch.setattr(
            advisor,
            "_complete",
            lambda message: '{"shouldDispose": true, "reason": "Six years old."}',
        )
        verdict = advisor.evaluate(INVENTORY[0])
        assert verdict == DisposalVerdict(should_dispose=True, reason="Six years old.")

    def test_malformed_verdict_is_none(self, advisor, monkeypatch):
        monkeypatch.setattr(
            advisor, "_complete", lambda message: '{"shouldDispose": "yes"}'
        )
        assert advisor.evaluate(INVENTORY[0]) is None

    def test_reason_included_in_prompt(self, advisor, fake_pool):
        fake_pool.response = _FakeResponse(
            200, _completion('{"shouldDispose": false, "reason": "Still fine."}')
        )
        verdict = advisor.evaluate(INVENTORY[1], reason="cracked screen")
        assert verdict.should_dispose is False
        assert "cracked screen" in fake_pool.last_request["body"]["messages"][1]["content"]


class TestTransportErrors:
    """Transport failures surface as DisposalAdvisorError."""

    def test_non_200(self, advisor, fake_pool):
        fake_pool.response = _FakeResponse(500, {"error": "boom"})
        with pytest.raises(DisposalAdvisorError, match="HTTP 500"):
            advisor.suggest("old laptops", INVENTORY, today=TODAY)

    def test_network_error(self, advisor, fake_pool):
        fake_pool.error = urllib3.exceptions.MaxRetryError(None, "http://advisor.invalid")
        with pytest.raises(DisposalAdvisorError, match="unreachable"):
            advisor.suggest("old laptops", INVENTORY, today=TODAY)

    def test_envelope_without_content(self, advisor, fake_pool):
        fake_pool.response = _FakeResponse(200, {"choices": []})
        with pytest.raises(DisposalAdvisorError):
            advisor.suggest("old laptops", INVENTORY, today=TODAY)

    def test_missing_api_key(self, app, fake_pool):
        app.config["DISPOSAL_ADVISOR_API_KEY"] = ""
        with app.app_context():
            client = DisposalAdvisorClient()
            with pytest.raises(DisposalAdvisorError, match="not configured"):
                client.suggest("old laptops", INVENTORY, today=TODAY)
        assert fake_pool.last_request is None


class TestHelpers:
    """Tests for the prompt and reply helpers."""

    def test_build_candidates_skips_disposed_and_computes_age(self):
        candidates = build_candidates(INVENTORY, today=TODAY)
        assert [c["id"] for c in candidates] == ["1", "2", "3"]
        assert candidates[0]["ageYears"] == pytest.approx(6.6, abs=0.1)

    def test_extract_json_ignores_surrounding_text(self):
        assert extract_json('Here you go: [1, 2] and that is all') == [1, 2]
        assert extract_json('```json\n{"ids": []}\n```') == {"ids": []}

    def test_extract_json_none_cases(self):
        assert extract_json(None) is None
        assert extract_json("no json here") is None
