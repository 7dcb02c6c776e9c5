from django.contrib import admin

from .models import Order, OrderStatus, WebhookLog


class OrderStatusInline(admin.StackedInline):
    model = OrderStatus
    can_delete = False
    extra = 0


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("custom_order_id", "school_id", "student_name", "amount", "status", "gateway_name", "created_at")
    search_fields = ("custom_order_id", "school_id", "student_id", "student_email")
    list_filter = ("status", "gateway_name", "created_at")
    readonly_fields = ("custom_order_id", "created_at", "updated_at")
    inlines = [OrderStatusInline]


@admin.register(WebhookLog)
class WebhookLogAdmin(admin.ModelAdmin):
    list_display = ("id", "received_at")
    readonly_fields = ("received_at", "payload")
    ordering = ("-received_at",)

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
