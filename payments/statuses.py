"""Map provider status vocabularies onto the canonical order status."""

PENDING = "pending"
SUCCESS = "success"
FAILED = "failed"

CANONICAL_STATUSES = (PENDING, SUCCESS, FAILED)

# provider -> (success statuses, failure statuses); anything else stays pending
STATUS_TABLES = {
    "native": (
        {"SUCCESS", "PAID"},
        {"FAILED", "FAILURE", "CANCELLED", "USER_DROPPED"},
    ),
    "flat": (
        {"PAID", "SUCCESS"},
        {"FAILED", "CANCELLED", "USER_DROPPED", "EXPIRED", "VOID"},
    ),
    "generic": (
        {"SUCCESS", "SUCCESSFUL", "PAID", "CHARGED", "CAPTURED", "COMPLETED", "SETTLED"},
        {"FAILED", "FAILURE", "CANCELLED", "CANCELED", "DECLINED", "USER_DROPPED", "EXPIRED", "VOID"},
    ),
}


def map_status(raw_status, provider: str = "generic") -> str:
    """Return ``pending``, ``success`` or ``failed`` for any raw status.

    Unknown or missing values map to ``pending`` so a later notification can
    still settle the order.
    """
    success, failure = STATUS_TABLES.get(provider) or STATUS_TABLES["generic"]
    status = str(raw_status or "").strip().upper()
    if status in success:
        return SUCCESS
    if status in failure:
        return FAILED
    return PENDING
