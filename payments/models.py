from django.db import models


class Order(models.Model):
    STATUS_PENDING = "pending"
    STATUS_SUCCESS = "success"
    STATUS_FAILED = "failed"
    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_SUCCESS, "Success"),
        (STATUS_FAILED, "Failed"),
    ]

    school_id = models.CharField(max_length=64, db_index=True)
    trustee_id = models.CharField(max_length=64, blank=True, default="")
    student_name = models.CharField(max_length=128)
    student_id = models.CharField(max_length=64)
    student_email = models.EmailField()
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    # gateway collect_request_id; assigned once when the payment link is created
    custom_order_id = models.CharField(max_length=64, unique=True, null=True, blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    gateway_name = models.CharField(max_length=64, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-created_at",)

    @property
    def student_info(self) -> dict:
        return {"name": self.student_name, "id": self.student_id, "email": self.student_email}

    def __str__(self):
        return f"{self.custom_order_id or self.pk} ({self.status})"


class OrderStatus(models.Model):
    """Payment detail for an Order, replaced wholesale by each processed notification."""

    order = models.OneToOneField(Order, on_delete=models.CASCADE, related_name="order_status")
    order_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    transaction_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    payment_mode = models.CharField(max_length=64, blank=True, default="")
    payment_details = models.TextField(blank=True, default="")
    bank_reference = models.CharField(max_length=128, blank=True, default="")
    payment_message = models.TextField(blank=True, default="")
    status = models.CharField(max_length=64, blank=True, default="")  # raw provider status
    error_message = models.TextField(blank=True, default="")
    payment_time = models.DateTimeField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "order statuses"

    def __str__(self):
        return f"{self.order_id} {self.status}"


class WebhookLog(models.Model):
    received_at = models.DateTimeField(db_index=True)
    # a body of JSON null is stored as SQL NULL
    payload = models.JSONField(null=True)

    class Meta:
        ordering = ("-received_at", "-id")

    def __str__(self):
        return f"WebhookLog#{self.pk} @ {self.received_at:%Y-%m-%d %H:%M:%S}"
