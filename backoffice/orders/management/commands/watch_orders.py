"""
Management command that runs the order board against the live change feed
"""
import asyncio

from django.core.management.base import BaseCommand, CommandError

from backoffice.core.gateway import DataGateway, GatewayError
from backoffice.orders.alerts import StreamAlerts, terminal_bell
from backoffice.orders.board import OrderBoard, DELIVERY_TYPE_FILTERS
from backoffice.orders.realtime import get_change_feed


class Command(BaseCommand):
    help = "Watch incoming orders live, with an alert (and terminal bell) for each new order"

    def add_arguments(self, parser):
        parser.add_argument(
            '--delivery-type',
            choices=DELIVERY_TYPE_FILTERS,
            default='all',
            help='Only summarise orders of this delivery type',
        )
        parser.add_argument(
            '--duration',
            type=float,
            default=0,
            help='Stop after this many seconds (0 = run until interrupted)',
        )
        parser.add_argument(
            '--no-bell',
            action='store_true',
            help='Do not ring the terminal bell on new orders',
        )

    def handle(self, *args, **options):
        try:
            asyncio.run(self._watch(options))
        except KeyboardInterrupt:
            self.stdout.write(self.style.WARNING("Stopped."))

    def _summary(self, board):
        groups = board.by_status_group()
        return ', '.join(f"{name}: {len(orders)}" for name, orders in groups.items())

    async def _watch(self, options):
        board = OrderBoard(
            DataGateway(),
            get_change_feed(),
            alerts=StreamAlerts(self.stdout, self.style),
            sound=None if options['no_bell'] else terminal_bell,
        )
        board.set_delivery_type_filter(options['delivery_type'])

        try:
            await board.load()
        except GatewayError as e:
            raise CommandError(f"Could not load orders: {e}")
        self.stdout.write(self.style.SUCCESS(f"Loaded {len(board.orders)} orders ({self._summary(board)})"))

        duration = options['duration']
        loop = asyncio.get_running_loop()
        deadline = loop.time() + duration if duration else None
        last_status = None

        async with board.live():
            while deadline is None or loop.time() < deadline:
                if board.connection_status != last_status:
                    last_status = board.connection_status
                    style = self.style.SUCCESS if board.is_connected else self.style.WARNING
                    self.stdout.write(style(f"Connection: {last_status.value}"))
                await asyncio.sleep(0.5)

        self.stdout.write(f"Final board: {self._summary(board)}")
