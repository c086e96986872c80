"""Testes da integração GitHub (verificação, transformação e entrega)."""

from __future__ import annotations

import json
from datetime import UTC, datetime

import pytest

from app.domain import InboundEvent, Source
from app.infra.crypto import compute_github_signature
from app.integrations import GitHubIntegration
from config.settings import SourceWebhookSettings
from tests.fakes.fake_sink import FakeSinkConnector
from utils.errors import MalformedPayloadError

SECRET = "gh-secret"
RECEIVED_AT = datetime(2024, 5, 1, 12, 30, tzinfo=UTC)

PUSH_PAYLOAD = {
    "ref": "refs/heads/main",
    "repository": {"full_name": "acme/relay", "private": False},
    "sender": {"login": "octocat"},
}


def _event(payload: object, **headers: str) -> InboundEvent:
    return InboundEvent(
        source=Source.GITHUB,
        raw_body=json.dumps(payload).encode("utf-8"),
        headers={"X-GitHub-Event": "push", "X-GitHub-Delivery": "d-123", **headers},
        received_at=RECEIVED_AT,
    )


@pytest.fixture
def sink() -> FakeSinkConnector:
    return FakeSinkConnector()


@pytest.fixture
def integration(sink: FakeSinkConnector) -> GitHubIntegration:
    return GitHubIntegration(sink, SourceWebhookSettings(secret=SECRET))


class TestVerifyRequest:
    def test_valid_signature(self, integration: GitHubIntegration) -> None:
        body = b'{"zen": "Keep it logically awesome."}'
        headers = {"X-Hub-Signature-256": compute_github_signature(body, SECRET)}
        assert integration.verify_request(body, headers) is True

    def test_missing_header_logs_warning(
        self, integration: GitHubIntegration, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level("WARNING"):
            assert integration.verify_request(b"{}", {}) is False
        assert "webhook_signature_missing" in caplog.text

    def test_invalid_signature_logs_warning(
        self, integration: GitHubIntegration, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level("WARNING"):
            ok = integration.verify_request(b"{}", {"x-hub-signature-256": "sha256=00"})
        assert ok is False
        assert "webhook_signature_invalid" in caplog.text

    def test_missing_secret_fails_closed(self, sink: FakeSinkConnector) -> None:
        integration = GitHubIntegration(sink, SourceWebhookSettings(secret=""))
        body = b"{}"
        headers = {"x-hub-signature-256": compute_github_signature(body, "")}
        assert integration.verify_request(body, headers) is False

    def test_disabled_policy_accepts_without_signature(
        self, sink: FakeSinkConnector, caplog: pytest.LogCaptureFixture
    ) -> None:
        integration = GitHubIntegration(
            sink, SourceWebhookSettings(secret="", signature_policy="disabled")
        )
        with caplog.at_level("WARNING"):
            assert integration.verify_request(b"{}", {}) is True
        assert "webhook_signature_skipped" in caplog.text


class TestTransform:
    def test_push_event_fields(self, integration: GitHubIntegration) -> None:
        event = _event(PUSH_PAYLOAD)

        record = integration.transform(event)

        assert record.type == "Integration"
        assert dict(record.fields) == {
            "Name": "GitHub Integration 2024-05-01T12:30:00+00:00",
            "Source": "GitHub",
            "Raw_Data": event.raw_body.decode("utf-8"),
            "Status": "Received",
            "Event_Type": "push",
            "Delivery_Id": "d-123",
            "Action": None,
            "Repository": "acme/relay",
            "Sender": "octocat",
        }

    def test_transform_is_deterministic(self, integration: GitHubIntegration) -> None:
        event = _event(PUSH_PAYLOAD)
        assert integration.transform(event) == integration.transform(event)

    def test_missing_optional_fields_become_none(self, integration: GitHubIntegration) -> None:
        event = InboundEvent(source=Source.GITHUB, raw_body=b'{"repository": "not-an-object"}')

        fields = integration.transform(event).fields

        assert fields["Event_Type"] is None
        assert fields["Delivery_Id"] is None
        assert fields["Repository"] is None
        assert fields["Sender"] is None

    def test_action_for_pull_request(self, integration: GitHubIntegration) -> None:
        event = _event({"action": "opened", **PUSH_PAYLOAD}, **{"X-GitHub-Event": "pull_request"})
        fields = integration.transform(event).fields
        assert fields["Event_Type"] == "pull_request"
        assert fields["Action"] == "opened"

    @pytest.mark.parametrize("body", [b"not json", b"[1, 2]", b'"text"'])
    def test_malformed_body(self, integration: GitHubIntegration, body: bytes) -> None:
        with pytest.raises(MalformedPayloadError):
            integration.transform(InboundEvent(source=Source.GITHUB, raw_body=body))


class TestProcess:
    @pytest.mark.asyncio
    async def test_push_end_to_end(
        self, integration: GitHubIntegration, sink: FakeSinkConnector
    ) -> None:
        body = json.dumps(PUSH_PAYLOAD).encode("utf-8")
        headers = {
            "X-Hub-Signature-256": compute_github_signature(body, SECRET),
            "X-GitHub-Event": "push",
        }
        assert integration.verify_request(body, headers) is True

        result = await integration.process(
            InboundEvent(source=Source.GITHUB, raw_body=body, headers=headers)
        )

        assert result.source is Source.GITHUB
        assert result.record_ids == ["a0001"]
        assert len(sink.created) == 1
        created = sink.created[0].fields
        assert created["Event_Type"] == "push"
        assert created["Repository"] == "acme/relay"
        assert created["Sender"] == "octocat"
        assert created["Raw_Data"] == body.decode("utf-8")
        assert sink.commits == []
