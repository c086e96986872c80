"""Testes do SalesforceConnector com httpx.MockTransport."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx
import pytest

from api.connectors.salesforce import SalesforceConnector
from app.domain import Reference, SinkRecord
from config.settings import SalesforceSettings
from utils.errors import (
    AuthenticationError,
    RemoteRejectedError,
    SinkUnavailableError,
    TransientConnectionError,
    UnitOfWorkFailedError,
)

INSTANCE_URL = "https://acme.my.salesforce.com"
DATA_PATH = "/services/data/v62.0"


def _settings(**overrides: Any) -> SalesforceSettings:
    values: dict[str, Any] = {
        "username": "relay@acme.com",
        "password": "pw",
        "security_token": "tok",
        "client_id": "cid",
        "client_secret": "csecret",
    }
    values.update(overrides)
    return SalesforceSettings(**values)


class FakeSalesforce:
    """Servidor falso: login + REST, com respostas programáveis por rota."""

    def __init__(self) -> None:
        self.logins = 0
        self.login_delay = 0.0
        self.login_status = 200
        self.requests: list[httpx.Request] = []
        self.responses: dict[tuple[str, str], list[httpx.Response]] = {}

    def queue(self, method: str, path: str, *responses: httpx.Response) -> None:
        self.responses.setdefault((method, path), []).extend(responses)

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/services/oauth2/token":
            self.logins += 1
            if self.login_delay:
                await asyncio.sleep(self.login_delay)
            if self.login_status != 200:
                return httpx.Response(self.login_status, json={"error": "invalid_grant"})
            return httpx.Response(
                200,
                json={
                    "access_token": f"token-{self.logins}",
                    "instance_url": INSTANCE_URL,
                },
            )

        self.requests.append(request)
        pending = self.responses.get((request.method, request.url.path))
        if not pending:
            return httpx.Response(404, json=[{"errorCode": "NOT_FOUND", "message": "no route"}])
        return pending.pop(0)


def _expired() -> httpx.Response:
    return httpx.Response(
        401,
        json=[{"errorCode": "INVALID_SESSION_ID", "message": "Session expired or invalid"}],
    )


def _created(record_id: str) -> httpx.Response:
    return httpx.Response(201, json={"id": record_id, "success": True, "errors": []})


@pytest.fixture
def fake() -> FakeSalesforce:
    return FakeSalesforce()


@pytest.fixture
def connector(fake: FakeSalesforce) -> SalesforceConnector:
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake))
    return SalesforceConnector(_settings(), client=client)


def _record(**fields: Any) -> SinkRecord:
    return SinkRecord(type="Integration", fields={"Name": "GitHub Integration", **fields})


# ──────────────────────────────────────────────────────────────────────────────
# Conexão
# ──────────────────────────────────────────────────────────────────────────────


class TestConnection:
    @pytest.mark.asyncio
    async def test_lazy_connect_on_first_operation(
        self, fake: FakeSalesforce, connector: SalesforceConnector
    ) -> None:
        fake.queue("POST", f"{DATA_PATH}/sobjects/Integration__c/", _created("a01"))

        assert connector.is_connected is False
        await connector.create(_record())

        assert connector.is_connected is True
        assert fake.logins == 1

    @pytest.mark.asyncio
    async def test_ensure_connected_is_idempotent(
        self, fake: FakeSalesforce, connector: SalesforceConnector
    ) -> None:
        first = await connector.ensure_connected()
        second = await connector.ensure_connected()

        assert first is second
        assert fake.logins == 1

    @pytest.mark.asyncio
    async def test_concurrent_first_use_logs_in_once(
        self, fake: FakeSalesforce, connector: SalesforceConnector
    ) -> None:
        fake.login_delay = 0.02

        sessions = await asyncio.gather(*(connector.ensure_connected() for _ in range(10)))

        assert fake.logins == 1
        assert all(session is sessions[0] for session in sessions)

    @pytest.mark.asyncio
    async def test_login_sends_password_with_security_token(
        self, connector: SalesforceConnector
    ) -> None:
        seen: dict[str, str] = {}

        async def _login(request: httpx.Request) -> httpx.Response:
            seen.update(dict(httpx.QueryParams(request.content.decode("utf-8"))))
            return httpx.Response(
                200, json={"access_token": "sekret-token", "instance_url": INSTANCE_URL + "/"}
            )

        client = httpx.AsyncClient(transport=httpx.MockTransport(_login))
        session = await SalesforceConnector(_settings(), client=client).ensure_connected()

        assert seen["grant_type"] == "password"
        assert seen["password"] == "pwtok"
        assert session.instance_url == INSTANCE_URL
        assert "sekret-token" not in repr(session)
        assert session.auth_headers()["Authorization"] == "Bearer sekret-token"

    @pytest.mark.asyncio
    async def test_rejected_login_raises_authentication_error(
        self, fake: FakeSalesforce, connector: SalesforceConnector
    ) -> None:
        fake.login_status = 400

        with pytest.raises(AuthenticationError):
            await connector.ensure_connected()
        assert connector.is_connected is False

    @pytest.mark.asyncio
    async def test_missing_credentials(self, fake: FakeSalesforce) -> None:
        client = httpx.AsyncClient(transport=httpx.MockTransport(fake))
        connector = SalesforceConnector(_settings(username=""), client=client)

        with pytest.raises(AuthenticationError, match="credentials_missing"):
            await connector.ensure_connected()
        assert fake.logins == 0

    @pytest.mark.asyncio
    async def test_login_server_error_is_unavailable(
        self, fake: FakeSalesforce, connector: SalesforceConnector
    ) -> None:
        fake.login_status = 503
        with pytest.raises(SinkUnavailableError):
            await connector.ensure_connected()

    @pytest.mark.asyncio
    async def test_disconnect_forces_new_login(
        self, fake: FakeSalesforce, connector: SalesforceConnector
    ) -> None:
        await connector.ensure_connected()
        await connector.disconnect()
        await connector.ensure_connected()

        assert fake.logins == 2


# ──────────────────────────────────────────────────────────────────────────────
# Reconexão única
# ──────────────────────────────────────────────────────────────────────────────


class TestReconnect:
    @pytest.mark.asyncio
    async def test_expired_session_reconnects_and_retries_once(
        self,
        fake: FakeSalesforce,
        connector: SalesforceConnector,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        path = f"{DATA_PATH}/sobjects/Integration__c/"
        fake.queue("POST", path, _expired(), _created("a02"))

        with caplog.at_level("INFO"):
            result = await connector.create(_record())

        assert result.id == "a02"
        assert fake.logins == 2
        assert len(fake.requests) == 2
        assert fake.requests[1].headers["Authorization"] == "Bearer token-2"
        assert "salesforce_session_expired" in caplog.text
        assert "metric_reconnect" in caplog.text

    @pytest.mark.asyncio
    async def test_second_expiry_surfaces(
        self, fake: FakeSalesforce, connector: SalesforceConnector
    ) -> None:
        path = f"{DATA_PATH}/sobjects/Integration__c/"
        fake.queue("POST", path, _expired(), _expired(), _created("never"))

        with pytest.raises(TransientConnectionError):
            await connector.create(_record())

        assert fake.logins == 2
        assert len(fake.requests) == 2

    @pytest.mark.asyncio
    async def test_plain_401_is_treated_as_expired(
        self, fake: FakeSalesforce, connector: SalesforceConnector
    ) -> None:
        path = f"{DATA_PATH}/sobjects/Integration__c/"
        fake.queue("POST", path, httpx.Response(401), _created("a03"))

        result = await connector.create(_record())
        assert result.id == "a03"

    @pytest.mark.asyncio
    async def test_validation_error_not_retried(
        self, fake: FakeSalesforce, connector: SalesforceConnector
    ) -> None:
        path = f"{DATA_PATH}/sobjects/Integration__c/"
        fake.queue(
            "POST",
            path,
            httpx.Response(
                400,
                json=[
                    {
                        "errorCode": "REQUIRED_FIELD_MISSING",
                        "message": "Required fields are missing",
                        "fields": ["Source__c"],
                    }
                ],
            ),
            _created("never"),
        )

        with pytest.raises(RemoteRejectedError) as exc_info:
            await connector.create(_record())

        assert exc_info.value.errors == [
            "REQUIRED_FIELD_MISSING: Required fields are missing [Source__c]"
        ]
        assert len(fake.requests) == 1
        assert fake.logins == 1

    @pytest.mark.asyncio
    async def test_server_error_not_retried(
        self, fake: FakeSalesforce, connector: SalesforceConnector
    ) -> None:
        path = f"{DATA_PATH}/sobjects/Integration__c/"
        fake.queue("POST", path, httpx.Response(503), _created("never"))

        with pytest.raises(SinkUnavailableError):
            await connector.create(_record())
        assert len(fake.requests) == 1

    @pytest.mark.asyncio
    async def test_transport_error_is_unavailable(self) -> None:
        async def _handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/services/oauth2/token":
                return httpx.Response(
                    200, json={"access_token": "t", "instance_url": INSTANCE_URL}
                )
            raise httpx.ConnectError("boom", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(_handler))
        connector = SalesforceConnector(_settings(), client=client)

        with pytest.raises(SinkUnavailableError):
            await connector.create(_record())


# ──────────────────────────────────────────────────────────────────────────────
# Operações
# ──────────────────────────────────────────────────────────────────────────────


class TestOperations:
    @pytest.mark.asyncio
    async def test_create_translates_names(
        self, fake: FakeSalesforce, connector: SalesforceConnector
    ) -> None:
        fake.queue("POST", f"{DATA_PATH}/sobjects/Integration__c/", _created("a01"))

        result = await connector.create(_record(Event_Type="push", Status="Received"))

        body = json.loads(fake.requests[0].content)
        assert body == {
            "Name": "GitHub Integration",
            "Event_Type__c": "push",
            "Status__c": "Received",
        }
        assert fake.requests[0].headers["Authorization"] == "Bearer token-1"
        assert result.id == "a01"
        assert result.success is True

    @pytest.mark.asyncio
    async def test_create_with_unsuccessful_body_raises(
        self, fake: FakeSalesforce, connector: SalesforceConnector
    ) -> None:
        fake.queue(
            "POST",
            f"{DATA_PATH}/sobjects/Integration__c/",
            httpx.Response(
                201,
                json={
                    "id": None,
                    "success": False,
                    "errors": [{"statusCode": "FIELD_INTEGRITY_EXCEPTION", "message": "bad"}],
                },
            ),
        )

        with pytest.raises(RemoteRejectedError) as exc_info:
            await connector.create(_record())
        assert exc_info.value.errors == ["FIELD_INTEGRITY_EXCEPTION: bad"]

    @pytest.mark.asyncio
    async def test_update_and_delete(
        self, fake: FakeSalesforce, connector: SalesforceConnector
    ) -> None:
        path = f"{DATA_PATH}/sobjects/Integration__c/a01"
        fake.queue("PATCH", path, httpx.Response(204))
        fake.queue("DELETE", path, httpx.Response(204))

        updated = await connector.update("Integration", "a01", {"Status": "Processed"})
        deleted = await connector.delete("Integration", "a01")

        assert updated.id == "a01"
        assert deleted.id == "a01"
        assert json.loads(fake.requests[0].content) == {"Status__c": "Processed"}
        assert fake.requests[1].method == "DELETE"

    @pytest.mark.asyncio
    async def test_standard_object_fields_untouched(
        self, fake: FakeSalesforce, connector: SalesforceConnector
    ) -> None:
        fake.queue("POST", f"{DATA_PATH}/sobjects/Account/", _created("001"))

        await connector.create(SinkRecord(type="Account", fields={"Name": "Acme", "Industry": "x"}))

        assert json.loads(fake.requests[0].content) == {"Name": "Acme", "Industry": "x"}

    @pytest.mark.asyncio
    async def test_query_with_paging(
        self, fake: FakeSalesforce, connector: SalesforceConnector
    ) -> None:
        next_url = f"{DATA_PATH}/query/01gD0000002HU6KIAW-2000"
        fake.queue(
            "GET",
            f"{DATA_PATH}/query",
            httpx.Response(
                200,
                json={
                    "totalSize": 3,
                    "done": False,
                    "nextRecordsUrl": next_url,
                    "records": [{"Id": "a01"}, {"Id": "a02"}],
                },
            ),
        )
        fake.queue(
            "GET",
            next_url,
            httpx.Response(200, json={"totalSize": 3, "done": True, "records": [{"Id": "a03"}]}),
        )

        first = await connector.query("SELECT Id FROM Integration__c")
        assert first.done is False
        assert first.total_size == 3
        assert fake.requests[0].url.params["q"] == "SELECT Id FROM Integration__c"

        second = await connector.query_more(first.next_records_url or "")
        assert second.done is True
        assert [r["Id"] for r in first.records + second.records] == ["a01", "a02", "a03"]

    @pytest.mark.asyncio
    async def test_aclose_keeps_injected_client_open(
        self, connector: SalesforceConnector
    ) -> None:
        await connector.ensure_connected()
        await connector.aclose()
        assert connector.is_connected is False


# ──────────────────────────────────────────────────────────────────────────────
# Unit of work
# ──────────────────────────────────────────────────────────────────────────────


def _graph(*entries: dict[str, Any], successful: bool = True) -> httpx.Response:
    return httpx.Response(
        200,
        json={
            "graphs": [
                {
                    "graphId": "relay",
                    "graphResponse": {"compositeResponse": list(entries)},
                    "isSuccessful": successful,
                }
            ]
        },
    )


class TestUnitOfWork:
    @pytest.mark.asyncio
    async def test_new_unit_of_work_does_not_connect(
        self, fake: FakeSalesforce, connector: SalesforceConnector
    ) -> None:
        uow = connector.new_unit_of_work()
        assert len(uow) == 0
        assert fake.logins == 0

    @pytest.mark.asyncio
    async def test_commit_sends_unit_as_single_graph(
        self, fake: FakeSalesforce, connector: SalesforceConnector
    ) -> None:
        fake.queue(
            "POST",
            f"{DATA_PATH}/composite/graph",
            _graph(
                {
                    "body": {"id": "001A", "success": True, "errors": []},
                    "httpHeaders": {},
                    "httpStatusCode": 201,
                    "referenceId": "ref1",
                },
                {
                    "body": None,
                    "httpHeaders": {},
                    "httpStatusCode": 204,
                    "referenceId": "ref2",
                },
            ),
        )

        uow = connector.new_unit_of_work()
        created = uow.register_create(_record(Event_Type="delivered"))
        uow.register_update("Integration", created, {"Status": "Linked"})
        results = await connector.commit_unit_of_work(uow)

        payload = json.loads(fake.requests[0].content)
        assert len(payload["graphs"]) == 1
        assert payload["graphs"][0]["compositeRequest"] == [
            {
                "method": "POST",
                "url": f"{DATA_PATH}/sobjects/Integration__c",
                "referenceId": "ref1",
                "body": {"Name": "GitHub Integration", "Event_Type__c": "delivered"},
            },
            {
                "method": "PATCH",
                "url": f"{DATA_PATH}/sobjects/Integration__c/@{{ref1.id}}",
                "referenceId": "ref2",
                "body": {"Status__c": "Linked"},
            },
        ]
        assert results["ref1"].id == "001A"
        assert results["ref2"].id == "001A"
        assert all(result.success for result in results.values())
        assert uow.committed is True

    @pytest.mark.asyncio
    async def test_large_batch_sent_in_one_request(
        self, fake: FakeSalesforce, connector: SalesforceConnector
    ) -> None:
        entries = [
            {"body": {"id": f"a{i:03d}"}, "httpStatusCode": 201, "referenceId": f"ref{i}"}
            for i in range(1, 41)
        ]
        fake.queue("POST", f"{DATA_PATH}/composite/graph", _graph(*entries))

        uow = connector.new_unit_of_work()
        for index in range(40):
            uow.register_create(_record(Event_Type=f"e{index}"))
        results = await connector.commit_unit_of_work(uow)

        assert len(fake.requests) == 1
        assert len(results) == 40
        assert results["ref40"].id == "a040"

    @pytest.mark.asyncio
    async def test_commit_failure_applies_nothing(
        self, fake: FakeSalesforce, connector: SalesforceConnector
    ) -> None:
        fake.queue(
            "POST",
            f"{DATA_PATH}/composite/graph",
            _graph(
                {
                    "body": [
                        {
                            "errorCode": "PROCESSING_HALTED",
                            "message": "The transaction was rolled back",
                        }
                    ],
                    "httpStatusCode": 400,
                    "referenceId": "ref1",
                },
                {
                    "body": [
                        {
                            "errorCode": "STRING_TOO_LONG",
                            "message": "Email: data value too large",
                            "fields": ["Email__c"],
                        }
                    ],
                    "httpStatusCode": 400,
                    "referenceId": "ref2",
                },
                successful=False,
            ),
        )

        uow = connector.new_unit_of_work()
        uow.register_create(_record())
        uow.register_create(_record(Email="x" * 300))

        with pytest.raises(UnitOfWorkFailedError) as exc_info:
            await connector.commit_unit_of_work(uow)

        failure = exc_info.value
        assert set(failure.results) == {"ref1", "ref2"}
        assert all(not result.success for result in failure.results.values())
        assert "STRING_TOO_LONG: Email: data value too large [Email__c]" in failure.errors

    @pytest.mark.asyncio
    async def test_commit_retries_once_on_expired_session(
        self, fake: FakeSalesforce, connector: SalesforceConnector
    ) -> None:
        ok = _graph(
            {"body": {"id": "a01", "success": True}, "httpStatusCode": 201, "referenceId": "ref1"}
        )
        fake.queue("POST", f"{DATA_PATH}/composite/graph", _expired(), ok)

        uow = connector.new_unit_of_work()
        uow.register_create(_record())
        results = await connector.commit_unit_of_work(uow)

        assert results["ref1"].id == "a01"
        assert fake.logins == 2

    @pytest.mark.asyncio
    async def test_unit_stays_pending_when_login_fails(
        self, fake: FakeSalesforce, connector: SalesforceConnector
    ) -> None:
        fake.login_status = 400
        uow = connector.new_unit_of_work()
        uow.register_create(_record())

        with pytest.raises(AuthenticationError):
            await connector.commit_unit_of_work(uow)
        assert uow.committed is False
        assert fake.requests == []

        fake.login_status = 200
        fake.queue(
            "POST",
            f"{DATA_PATH}/composite/graph",
            _graph({"body": {"id": "a01"}, "httpStatusCode": 201, "referenceId": "ref1"}),
        )
        results = await connector.commit_unit_of_work(uow)

        assert results["ref1"].id == "a01"
        assert uow.committed is True

    @pytest.mark.asyncio
    async def test_unit_stays_pending_when_sink_unreachable(self) -> None:
        async def _handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/services/oauth2/token":
                return httpx.Response(
                    200, json={"access_token": "t", "instance_url": INSTANCE_URL}
                )
            raise httpx.ConnectError("boom", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(_handler))
        connector = SalesforceConnector(_settings(), client=client)
        uow = connector.new_unit_of_work()
        uow.register_create(_record())

        with pytest.raises(SinkUnavailableError):
            await connector.commit_unit_of_work(uow)
        assert uow.committed is False

    @pytest.mark.asyncio
    async def test_commit_twice_rejected(
        self, fake: FakeSalesforce, connector: SalesforceConnector
    ) -> None:
        uow = connector.new_unit_of_work()
        uow.register_create(_record())
        fake.queue(
            "POST",
            f"{DATA_PATH}/composite/graph",
            _graph({"body": {"id": "a01"}, "httpStatusCode": 201, "referenceId": "ref1"}),
        )
        await connector.commit_unit_of_work(uow)

        with pytest.raises(ValueError, match="already_committed"):
            await connector.commit_unit_of_work(uow)

    @pytest.mark.asyncio
    async def test_commit_empty_rejected(self, connector: SalesforceConnector) -> None:
        with pytest.raises(ValueError, match="empty"):
            await connector.commit_unit_of_work(connector.new_unit_of_work())

    @pytest.mark.asyncio
    async def test_reference_to_unregistered_is_rejected_before_commit(
        self, fake: FakeSalesforce, connector: SalesforceConnector
    ) -> None:
        uow = connector.new_unit_of_work()
        with pytest.raises(ValueError):
            uow.register_update("Integration", Reference("ghost"), {"Status": "x"})
        assert fake.requests == []
