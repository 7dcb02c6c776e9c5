"""Read-only transaction view: orders left-joined with their payment detail."""

from dataclasses import dataclass

from django.db.models import F

from .models import Order
from .utils import DEFAULT_LIMIT, page_params, pagination

# public sort key -> ORM path
SORT_FIELDS = {
    "payment_time": "order_status__payment_time",
    "created_at": "created_at",
    "createdAt": "created_at",
    "order_amount": "amount",
    "transaction_amount": "order_status__transaction_amount",
    "status": "status",
    "school_id": "school_id",
    "custom_order_id": "custom_order_id",
    "gateway": "gateway_name",
    "payment_mode": "order_status__payment_mode",
}


@dataclass(frozen=True)
class TransactionQuery:
    status: str = ""
    school_id: str = ""
    sort: str = "payment_time"
    order: str = "desc"
    page: int = 1
    limit: int = DEFAULT_LIMIT

    def __post_init__(self):
        if self.sort not in SORT_FIELDS:
            raise ValueError(f"Unsupported sort field: {self.sort}")
        if self.order not in ("asc", "desc"):
            raise ValueError(f"Unsupported sort order: {self.order}")

    @classmethod
    def from_params(cls, params, **overrides) -> "TransactionQuery":
        values = {
            "status": (params.get("status") or "").strip(),
            "school_id": (params.get("school_id") or "").strip(),
            "sort": (params.get("sort") or "payment_time").strip(),
            "order": (params.get("order") or "desc").strip().lower(),
        }
        values["page"], values["limit"] = page_params(params)
        values.update(overrides)
        return cls(**values)


def serialize_transaction(order: Order) -> dict:
    detail = getattr(order, "order_status", None)
    return {
        "collect_id": str(order.pk),
        "school_id": order.school_id,
        "gateway": order.gateway_name,
        "order_amount": order.amount,
        "transaction_amount": detail.transaction_amount if detail else None,
        "status": order.status,
        "custom_order_id": order.custom_order_id,
        "payment_time": detail.payment_time if detail else None,
        "payment_mode": detail.payment_mode if detail else None,
        "bank_reference": detail.bank_reference if detail else None,
        "student_info": order.student_info,
        "created_at": order.created_at,
    }


def build_transaction_page(query: TransactionQuery) -> dict:
    qs = Order.objects.select_related("order_status")
    if query.status:
        qs = qs.filter(status=query.status)
    if query.school_id:
        qs = qs.filter(school_id=query.school_id)

    # counted before the page window is applied
    total = qs.count()

    path = SORT_FIELDS[query.sort]
    if query.order == "desc":
        ordering = [F(path).desc(nulls_last=True), "-pk"]
    else:
        ordering = [F(path).asc(nulls_first=True), "pk"]
    start = (query.page - 1) * query.limit
    orders = list(qs.order_by(*ordering)[start:start + query.limit])

    return {
        "data": [serialize_transaction(o) for o in orders],
        "pagination": pagination(query.page, query.limit, total),
    }


def transaction_status(custom_order_id: str):
    """Return the status view of one order, or ``None`` when it does not exist."""
    order = Order.objects.select_related("order_status").filter(custom_order_id=custom_order_id).first()
    if order is None:
        return None
    detail = getattr(order, "order_status", None)
    return {
        "custom_order_id": order.custom_order_id,
        "status": order.status,
        "amount": order.amount,
        "school_id": order.school_id,
        "student_info": order.student_info,
        "payment_details": {
            "transaction_amount": detail.transaction_amount,
            "payment_mode": detail.payment_mode,
            "bank_reference": detail.bank_reference,
            "payment_time": detail.payment_time,
            "payment_message": detail.payment_message,
        } if detail else None,
    }
