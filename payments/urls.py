from django.urls import path

from . import views, webhook

app_name = "payments"
urlpatterns = [
    # provider notifications
    path("webhook", webhook.payment_webhook, name="webhook"),
    path("webhook/", webhook.payment_webhook),
    path("webhook/logs", views.webhook_logs_view, name="webhook_logs"),

    path("transactions", views.transactions_view, name="transactions"),
    path("transactions/school/<str:school_id>", views.school_transactions_view, name="school_transactions"),
    path("transaction-status/<str:custom_order_id>", views.transaction_status_view, name="transaction_status"),

    path("payments/create-payment", views.create_payment_view, name="create_payment"),
    path("payments/payment-status/<str:collect_request_id>", views.payment_status_view, name="payment_status"),
]
