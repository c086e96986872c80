"""Conector Salesforce — sink compartilhado por todas as integrações.

Mantém uma única sessão (conexão) lazy, reutilizada entre requests:
- `ensure_connected` é idempotente e protegido por um lock de inicialização
  (double-checked): no primeiro uso concorrente, só um login acontece
- Sessão expirada (401 / INVALID_SESSION_ID) invalida a sessão, reconecta
  uma vez e repete a operação uma única vez; a segunda falha sobe inalterada
- Erros de validação (RemoteRejectedError/UnitOfWorkFailedError) nunca são
  retentados
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any, TypeVar

import httpx

from api.connectors.salesforce.auth import SalesforceSession, request_session
from api.connectors.salesforce.composite import (
    build_composite_request,
    parse_composite_response,
)
from api.connectors.salesforce.errors import (
    parse_salesforce_errors,
    raise_for_salesforce_error,
)
from api.connectors.salesforce.naming import fields_to_api, object_api_name
from app.domain.records import QueryResult, RecordResult
from app.domain.unit_of_work import UnitOfWork
from app.observability import record_latency, record_reconnect
from utils.errors import (
    RemoteRejectedError,
    SinkUnavailableError,
    TransientConnectionError,
    UnitOfWorkFailedError,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping

    from app.domain.records import SinkRecord
    from config.settings import SalesforceSettings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SalesforceConnector:
    """Cliente REST do Salesforce com sessão lazy e reconexão única.

    Seguro para uso concorrente por várias integrações no mesmo event loop:
    o único estado mutável compartilhado é a sessão, e sua criação é
    serializada pelo lock de inicialização. Operações não são serializadas.
    """

    def __init__(
        self,
        settings: SalesforceSettings,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Inicializa conector sem conectar.

        Args:
            settings: Credenciais, endpoint e versão da API
            client: AsyncClient opcional (testes injetam MockTransport)
        """
        self._settings = settings
        self._client = client
        self._owns_client = client is None
        self._session: SalesforceSession | None = None
        self._connect_lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        return self._session is not None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._settings.request_timeout_seconds)
        return self._client

    # ──────────────────────────────────────────────────────────────────────
    # Conexão
    # ──────────────────────────────────────────────────────────────────────

    async def ensure_connected(self) -> SalesforceSession:
        """Garante sessão ativa; no-op se já conectado.

        Raises:
            AuthenticationError: Credenciais inválidas ou rejeitadas
            SinkUnavailableError: Falha de transporte no login
        """
        session = self._session
        if session is not None:
            return session

        async with self._connect_lock:
            if self._session is None:
                self._session = await request_session(self._get_client(), self._settings)
                logger.info(
                    "salesforce_connected",
                    extra={
                        "instance_host": self._session.instance_host,
                        "api_version": self._settings.api_version,
                    },
                )
            return self._session

    def _invalidate(self, session: SalesforceSession) -> None:
        # Só descarta a sessão que falhou; outra task pode já ter reconectado
        if self._session is session:
            self._session = None
            logger.info("salesforce_session_invalidated")

    async def disconnect(self) -> None:
        """Descarta a sessão atual (próxima operação reconecta)."""
        async with self._connect_lock:
            if self._session is not None:
                self._session = None
                logger.info("salesforce_disconnected")

    async def aclose(self) -> None:
        """Encerra sessão e fecha o cliente HTTP próprio."""
        await self.disconnect()
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _run(
        self,
        operation: str,
        call: Callable[[SalesforceSession], Awaitable[T]],
    ) -> T:
        session = await self.ensure_connected()
        started_at = time.perf_counter()
        try:
            try:
                return await call(session)
            except TransientConnectionError:
                logger.warning(
                    "salesforce_session_expired",
                    extra={"operation": operation, "action": "reconnect_and_retry_once"},
                )
                self._invalidate(session)
                record_reconnect("salesforce", "session_expired")
                session = await self.ensure_connected()
                return await call(session)
        finally:
            record_latency("salesforce", operation, (time.perf_counter() - started_at) * 1000)

    async def _request(
        self,
        session: SalesforceSession,
        method: str,
        path: str,
        *,
        operation: str,
        json: Any = None,
        params: Mapping[str, str] | None = None,
    ) -> Any:
        """Executa request autenticado e retorna o corpo JSON (ou None).

        Raises:
            TransientConnectionError: Sessão expirada
            RemoteRejectedError: Erro de validação
            SinkUnavailableError: Transporte ou 5xx
        """
        url = path if path.startswith("http") else f"{session.instance_url}{path}"
        try:
            response = await self._get_client().request(
                method,
                url,
                json=json,
                params=params,
                headers=session.auth_headers(),
                timeout=self._settings.request_timeout_seconds,
            )
        except httpx.HTTPError as exc:
            logger.error(
                "salesforce_transport_error",
                extra={"operation": operation, "error_type": type(exc).__name__},
            )
            raise SinkUnavailableError(f"salesforce_transport_error ({operation})") from exc

        body = _json_or_none(response)
        raise_for_salesforce_error(response.status_code, body, operation)
        return body

    # ──────────────────────────────────────────────────────────────────────
    # Operações de registro
    # ──────────────────────────────────────────────────────────────────────

    def _sobject_path(self, record_type: str, record_id: str | None = None) -> str:
        api_type = object_api_name(record_type, self._settings.custom_suffix)
        path = f"{self._settings.data_path()}/sobjects/{api_type}"
        return f"{path}/{record_id}" if record_id else f"{path}/"

    async def create(self, record: SinkRecord) -> RecordResult:
        """Cria registro e retorna o id atribuído.

        Raises:
            RemoteRejectedError: Sink reportou erros de validação por campo
        """
        payload = fields_to_api(record.type, record.fields, self._settings.custom_suffix)

        async def _call(session: SalesforceSession) -> Any:
            return await self._request(
                session,
                "POST",
                self._sobject_path(record.type),
                operation="create",
                json=payload,
            )

        body = await self._run("create", _call)
        result = _record_result(body)
        if not result.success:
            raise RemoteRejectedError("salesforce_rejected (create)", errors=result.errors)
        logger.info(
            "sink_record_created",
            extra={"record_type": record.type, "record_id": result.id},
        )
        return result

    async def update(
        self,
        record_type: str,
        record_id: str,
        fields: Mapping[str, Any],
    ) -> RecordResult:
        """Atualiza campos de um registro existente."""
        payload = fields_to_api(record_type, fields, self._settings.custom_suffix)

        async def _call(session: SalesforceSession) -> Any:
            return await self._request(
                session,
                "PATCH",
                self._sobject_path(record_type, record_id),
                operation="update",
                json=payload,
            )

        await self._run("update", _call)
        logger.info("sink_record_updated", extra={"record_type": record_type, "record_id": record_id})
        return RecordResult(id=record_id)

    async def delete(self, record_type: str, record_id: str) -> RecordResult:
        """Exclui um registro."""

        async def _call(session: SalesforceSession) -> Any:
            return await self._request(
                session,
                "DELETE",
                self._sobject_path(record_type, record_id),
                operation="delete",
            )

        await self._run("delete", _call)
        logger.info("sink_record_deleted", extra={"record_type": record_type, "record_id": record_id})
        return RecordResult(id=record_id)

    async def query(self, soql: str) -> QueryResult:
        """Executa query SOQL (somente leitura) e retorna a primeira página.

        `done=False` indica mais páginas: use `query_more(next_records_url)`.
        """

        async def _call(session: SalesforceSession) -> Any:
            return await self._request(
                session,
                "GET",
                f"{self._settings.data_path()}/query",
                operation="query",
                params={"q": soql},
            )

        return QueryResult.model_validate(await self._run("query", _call) or {})

    async def query_more(self, next_records_url: str) -> QueryResult:
        """Busca a próxima página de uma query."""

        async def _call(session: SalesforceSession) -> Any:
            return await self._request(session, "GET", next_records_url, operation="query_more")

        return QueryResult.model_validate(await self._run("query_more", _call) or {})

    # ──────────────────────────────────────────────────────────────────────
    # Unit of work
    # ──────────────────────────────────────────────────────────────────────

    def new_unit_of_work(self) -> UnitOfWork:
        """Retorna unidade vazia (não toca na conexão)."""
        return UnitOfWork()

    async def commit_unit_of_work(self, uow: UnitOfWork) -> dict[str, RecordResult]:
        """Envia todas as operações como uma transação atômica.

        Returns:
            RecordResult por ReferenceId.

        Raises:
            UnitOfWorkFailedError: Alguma operação rejeitada; nada foi aplicado
            AuthenticationError, SinkUnavailableError: Sem resposta do sink; a
                unidade continua pendente
            ValueError: Unidade vazia ou já commitada
        """
        uow.check_committable()
        payload = build_composite_request(
            uow,
            self._settings.data_path(),
            self._settings.custom_suffix,
        )

        async def _call(session: SalesforceSession) -> Any:
            return await self._request(
                session,
                "POST",
                f"{self._settings.data_path()}/composite/graph",
                operation="commit_unit_of_work",
                json=payload,
            )

        body = await self._run("commit_unit_of_work", _call)
        # Marcada só com resposta do sink
        uow.mark_committed()
        results = parse_composite_response(uow, body)

        failed = [ref for ref, result in results.items() if not result.success]
        if failed:
            logger.warning(
                "sink_unit_of_work_rejected",
                extra={"operation_count": len(uow), "failed_references": failed},
            )
            raise UnitOfWorkFailedError("salesforce_unit_of_work_rejected", results=results)

        logger.info("sink_unit_of_work_committed", extra={"operation_count": len(uow)})
        return results


def _json_or_none(response: httpx.Response) -> Any:
    if response.status_code == 204 or not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None


def _record_result(body: Any) -> RecordResult:
    if not isinstance(body, dict):
        return RecordResult(success=False, errors=["EMPTY_RESPONSE: resposta sem corpo"])
    return RecordResult(
        id=body.get("id"),
        success=bool(body.get("success", True)),
        errors=[err.describe() for err in parse_salesforce_errors(body)],
    )


def create_salesforce_connector(
    settings: SalesforceSettings | None = None,
) -> SalesforceConnector:
    """Factory para criar conector com settings do ambiente.

    Args:
        settings: SalesforceSettings opcional. Se None, carrega do ambiente.
    """
    # Import local para evitar dependência circular
    from config.settings import get_salesforce_settings

    return SalesforceConnector(settings or get_salesforce_settings())
