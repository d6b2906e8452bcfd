"""
Single home of the "does this order count?" heuristic.

Order status is free text copied from each marketplace export, and every
channel words cancellation / non-payment differently ("Cancelado",
"Cancelled", "Não pago", "Aguardando pagamento"...). A substring match on the
lower-cased status is deliberately permissive; keep all such checks here.
"""
import unicodedata

# Matched against the accent-stripped, lower-cased status
INVALID_STATUS_PHRASES: tuple[str, ...] = (
    "cancel",                 # cancelado, cancelada, cancelled, canceled, cancelamento
    "nao pago",
    "unpaid",
    "aguardando pagamento",
    "pagamento pendente",
    "awaiting payment",
    "pending payment",
)


def _fold(text: str) -> str:
    normalized = unicodedata.normalize("NFKD", text)
    return "".join(c for c in normalized if not unicodedata.combining(c)).lower()


def is_order_valid_for_accounting(status: str | None) -> bool:
    """True unless the status mentions cancellation or missing payment."""
    if not status:
        return True
    folded = _fold(status)
    return not any(phrase in folded for phrase in INVALID_STATUS_PHRASES)
