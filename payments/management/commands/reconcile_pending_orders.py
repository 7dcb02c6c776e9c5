import time
from datetime import timedelta

from django.core.management.base import BaseCommand
from django.utils import timezone
from payments.models import Order
from payments.integrations.edviron import EdvironClient, EdvironError
from payments.services import refresh_order_from_gateway

class Command(BaseCommand):
    help = "Poll the gateway for pending orders and update their status (covers lost webhooks)"

    def add_arguments(self, parser):
        parser.add_argument("--max", type=int, default=50)
        parser.add_argument("--sleep", type=float, default=0.5)
        parser.add_argument("--older-than-minutes", type=int, default=1)

    def handle(self, *args, **opts):
        cutoff = timezone.now() - timedelta(minutes=opts["older_than_minutes"])
        qs = (
            Order.objects.filter(status=Order.STATUS_PENDING, custom_order_id__isnull=False)
            .filter(updated_at__lt=cutoff)
            .order_by("updated_at")[:opts["max"]]
        )
        orders = list(qs)
        if not orders:
            self.stdout.write(self.style.SUCCESS("No pending orders to reconcile."))
            return

        try:
            client = EdvironClient.from_settings()
        except EdvironError as e:
            self.stdout.write(self.style.ERROR(f"Gateway not configured: {e}"))
            return

        updated = 0
        for o in orders:
            try:
                data, order = refresh_order_from_gateway(o.custom_order_id, client=client)
            except EdvironError as e:
                self.stdout.write(self.style.WARNING(f"{o.custom_order_id}: {e}"))
            else:
                if order is None:
                    self.stdout.write(self.style.WARNING(f"{o.custom_order_id}: order no longer exists"))
                else:
                    if order.status != Order.STATUS_PENDING:
                        updated += 1
                    self.stdout.write(self.style.SUCCESS(f"Updated {o.custom_order_id} -> {order.status} (gateway: {data.get('status')})"))
            if opts["sleep"]:
                time.sleep(opts["sleep"])

        self.stdout.write(self.style.SUCCESS(f"Checked {len(orders)}, settled {updated} orders."))
