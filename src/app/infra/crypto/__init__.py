"""Verificação criptográfica de webhooks de entrada.

Localizado em app/infra/ para manter boundaries corretas:
- Integrações em app/ dependem daqui, nunca de api/
- Funções puras, sem IO
"""

from .signature import (
    SIGNATURE_HEADERS,
    SignatureResult,
    check_signature,
    compute_github_signature,
    compute_stripe_signature,
    skipped_signature,
    verify_github_signature,
    verify_sendgrid_signature,
    verify_signature,
    verify_stripe_signature,
)

__all__ = [
    "SIGNATURE_HEADERS",
    "SignatureResult",
    "check_signature",
    "compute_github_signature",
    "compute_stripe_signature",
    "skipped_signature",
    "verify_github_signature",
    "verify_sendgrid_signature",
    "verify_signature",
    "verify_stripe_signature",
]
