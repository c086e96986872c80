"""Verificação de assinatura de webhooks por fonte.

Funções puras e determinísticas: nunca levantam exceção, retornam
SignatureResult/bool. Toda comparação de digest usa hmac.compare_digest
(tempo constante em relação à posição da divergência).

Esquemas:
- GitHub: HMAC-SHA256 do corpo bruto, header `sha256=<hex>`
- Stripe: HMAC-SHA256 de `"{t}." + corpo`, header `t=<ts>,v1=<hex>[,v1=...]`,
  com tolerância de timestamp contra replay
- SendGrid: ECDSA P-256/SHA-256 de `timestamp + corpo`, assinatura base64 DER,
  verificada com a chave pública configurada
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec

from app.domain.events import Source

if TYPE_CHECKING:
    from collections.abc import Mapping

GITHUB_SIGNATURE_HEADER = "x-hub-signature-256"
STRIPE_SIGNATURE_HEADER = "stripe-signature"
SENDGRID_SIGNATURE_HEADER = "x-twilio-email-event-webhook-signature"
SENDGRID_TIMESTAMP_HEADER = "x-twilio-email-event-webhook-timestamp"

SIGNATURE_HEADERS: dict[Source, str] = {
    Source.GITHUB: GITHUB_SIGNATURE_HEADER,
    Source.STRIPE: STRIPE_SIGNATURE_HEADER,
    Source.SENDGRID: SENDGRID_SIGNATURE_HEADER,
}

DEFAULT_STRIPE_TOLERANCE_SECONDS = 300


@dataclass(frozen=True)
class SignatureResult:
    """Resultado da verificação (sem dados sensíveis)."""

    valid: bool
    skipped: bool = False
    error: str | None = None


_OK = SignatureResult(valid=True)


def _fail(reason: str) -> SignatureResult:
    return SignatureResult(valid=False, error=reason)


def _constant_time_equals(expected: str, received: str) -> bool:
    # Bytes evitam TypeError do compare_digest com str não-ASCII
    return hmac.compare_digest(expected.encode("utf-8"), received.encode("utf-8"))


# ──────────────────────────────────────────────────────────────────────────────
# GitHub
# ──────────────────────────────────────────────────────────────────────────────


def compute_github_signature(payload: bytes, secret: str) -> str:
    """Calcula o valor esperado do header X-Hub-Signature-256."""
    digest = hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def check_github_signature(
    payload: bytes | None,
    signature: str | None,
    secret: str | None,
) -> SignatureResult:
    if not secret:
        return _fail("missing_secret")
    if not signature:
        return _fail("missing_signature")
    if not payload:
        return _fail("empty_payload")

    expected = compute_github_signature(payload, secret)
    if not _constant_time_equals(expected, signature):
        return _fail("signature_mismatch")
    return _OK


def verify_github_signature(
    payload: bytes | None,
    signature: str | None,
    secret: str | None,
) -> bool:
    """Valida assinatura GitHub (True somente se o HMAC bate exatamente)."""
    return check_github_signature(payload, signature, secret).valid


# ──────────────────────────────────────────────────────────────────────────────
# Stripe
# ──────────────────────────────────────────────────────────────────────────────


def parse_stripe_signature_header(header: str) -> tuple[int | None, list[str]]:
    """Extrai timestamp e assinaturas v1 do header Stripe-Signature.

    Returns:
        (timestamp ou None, lista de assinaturas v1)
    """
    timestamp: int | None = None
    signatures: list[str] = []
    for item in header.split(","):
        key, sep, value = item.strip().partition("=")
        if not sep:
            continue
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                timestamp = None
        elif key == "v1" and value:
            signatures.append(value)
    return timestamp, signatures


def compute_stripe_signature(payload: bytes, secret: str, timestamp: int) -> str:
    """Calcula assinatura v1 do Stripe para o timestamp informado."""
    signed_payload = f"{timestamp}.".encode() + payload
    return hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()


def check_stripe_signature(
    payload: bytes | None,
    signature_header: str | None,
    secret: str | None,
    *,
    tolerance_seconds: int = DEFAULT_STRIPE_TOLERANCE_SECONDS,
    now: float | None = None,
) -> SignatureResult:
    if not secret:
        return _fail("missing_secret")
    if not signature_header:
        return _fail("missing_signature")
    if not payload:
        return _fail("empty_payload")

    timestamp, signatures = parse_stripe_signature_header(signature_header)
    if timestamp is None:
        return _fail("missing_timestamp")
    if not signatures:
        return _fail("missing_v1_signature")

    current = time.time() if now is None else now
    if abs(current - timestamp) > tolerance_seconds:
        return _fail("timestamp_out_of_tolerance")

    expected = compute_stripe_signature(payload, secret, timestamp)
    # Compara contra todas (sem early-exit) para não vazar qual assinatura bateu
    matches = [_constant_time_equals(expected, sig) for sig in signatures]
    if not any(matches):
        return _fail("signature_mismatch")
    return _OK


def verify_stripe_signature(
    payload: bytes | None,
    signature_header: str | None,
    secret: str | None,
    *,
    tolerance_seconds: int = DEFAULT_STRIPE_TOLERANCE_SECONDS,
    now: float | None = None,
) -> bool:
    """Valida assinatura Stripe (esquema v1 com tolerância de timestamp)."""
    return check_stripe_signature(
        payload,
        signature_header,
        secret,
        tolerance_seconds=tolerance_seconds,
        now=now,
    ).valid


# ──────────────────────────────────────────────────────────────────────────────
# SendGrid
# ──────────────────────────────────────────────────────────────────────────────


def _load_ec_public_key(public_key: str) -> ec.EllipticCurvePublicKey | None:
    """Carrega chave pública EC em PEM ou base64 DER (formato do console SendGrid)."""
    try:
        if public_key.lstrip().startswith("-----BEGIN"):
            key = serialization.load_pem_public_key(public_key.encode("utf-8"))
        else:
            der = base64.b64decode(public_key.strip(), validate=True)
            key = serialization.load_der_public_key(der)
    except (ValueError, TypeError, binascii.Error, UnsupportedAlgorithm):
        return None
    if not isinstance(key, ec.EllipticCurvePublicKey):
        return None
    return key


def check_sendgrid_signature(
    payload: bytes | None,
    signature: str | None,
    timestamp: str | None,
    public_key: str | None,
) -> SignatureResult:
    if not public_key:
        return _fail("missing_secret")
    if not signature:
        return _fail("missing_signature")
    if not timestamp:
        return _fail("missing_timestamp")
    if not payload:
        return _fail("empty_payload")

    key = _load_ec_public_key(public_key)
    if key is None:
        return _fail("invalid_public_key")

    try:
        decoded_signature = base64.b64decode(signature, validate=True)
    except (ValueError, binascii.Error):
        return _fail("signature_not_base64")

    try:
        key.verify(
            decoded_signature,
            timestamp.encode("utf-8") + payload,
            ec.ECDSA(hashes.SHA256()),
        )
    except InvalidSignature:
        return _fail("signature_mismatch")
    return _OK


def verify_sendgrid_signature(
    payload: bytes | None,
    signature: str | None,
    timestamp: str | None,
    public_key: str | None,
) -> bool:
    """Valida assinatura ECDSA do Event Webhook do SendGrid."""
    return check_sendgrid_signature(payload, signature, timestamp, public_key).valid


# ──────────────────────────────────────────────────────────────────────────────
# Entrada única por fonte
# ──────────────────────────────────────────────────────────────────────────────


def check_signature(
    source: Source | str,
    raw_payload: bytes | None,
    headers: Mapping[str, str],
    secret: str | None,
    *,
    stripe_tolerance_seconds: int = DEFAULT_STRIPE_TOLERANCE_SECONDS,
) -> SignatureResult:
    """Verifica assinatura conforme o protocolo da fonte.

    Args:
        source: Fonte do webhook
        raw_payload: Corpo bruto do request
        headers: Headers recebidos (qualquer capitalização)
        secret: Secret HMAC ou chave pública (SendGrid)

    Returns:
        SignatureResult com motivo da falha quando inválido.
    """
    try:
        kind = Source(source)
    except ValueError:
        return _fail("unknown_source")

    lowered = {str(k).lower(): v for k, v in headers.items()}
    signature = lowered.get(SIGNATURE_HEADERS[kind])

    if kind is Source.GITHUB:
        return check_github_signature(raw_payload, signature, secret)
    if kind is Source.STRIPE:
        return check_stripe_signature(
            raw_payload,
            signature,
            secret,
            tolerance_seconds=stripe_tolerance_seconds,
        )
    return check_sendgrid_signature(
        raw_payload,
        signature,
        lowered.get(SENDGRID_TIMESTAMP_HEADER),
        secret,
    )


def verify_signature(
    source: Source | str,
    raw_payload: bytes | None,
    headers: Mapping[str, str],
    secret: str | None,
    *,
    stripe_tolerance_seconds: int = DEFAULT_STRIPE_TOLERANCE_SECONDS,
) -> bool:
    """Contrato booleano: True somente se a assinatura for válida."""
    return check_signature(
        source,
        raw_payload,
        headers,
        secret,
        stripe_tolerance_seconds=stripe_tolerance_seconds,
    ).valid


def skipped_signature() -> SignatureResult:
    """Resultado da política `disabled` (aceita sem verificação)."""
    return SignatureResult(valid=True, skipped=True)
