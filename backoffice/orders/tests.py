"""
Test suite for Orders module
Tests: Order board sync, change feed, status changes (single and bulk), signals, API
"""
import asyncio
from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal
from unittest import mock

from django.db import IntegrityError
from django.test import SimpleTestCase, TestCase, override_settings
from django.utils import timezone
from redis.exceptions import RedisError
from rest_framework import status
from backoffice.core.gateway import GatewayError
from backoffice.core.models import AuditLog
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.orders.board import OrderBoard
from backoffice.orders.models import Order, OrderStatusHistory
from backoffice.orders.realtime import (
    ChangeEvent, ChannelStatus, LocalChangeFeed, RedisChangeFeed,
    INSERT, UPDATE, DELETE, get_change_feed, reset_change_feed, publish_event,
)
from backoffice.orders.services import change_status, status_patch, StatusChangeError
from backoffice.parties.models import Customer

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=dt_timezone.utc)


def make_row(order_id, status='pending', delivery_type='delivery'):
    """An order row as the gateway returns it, with customer and items embedded"""
    return {
        'id': order_id,
        'order_number': order_id,
        'status': status,
        'delivery_type': delivery_type,
        'total': Decimal('10.00'),
        'created_at': BASE_TIME + timedelta(minutes=order_id),
        'customer': {'id': 100 + order_id, 'name': f'Customer {order_id}'},
        'items': [{'id': order_id * 10, 'product_name': 'Arroz', 'quantity': 1}],
    }


class FakeGateway:
    """In-memory gateway. ``select_one`` snapshots the row when called and
    can be held open with ``hold(order_id)`` to control completion order."""

    def __init__(self, rows=()):
        self.rows = {row['id']: dict(row) for row in rows}
        self.updates = []
        self.fail_updates = False
        self.fail_selects = False
        self._gates = {}

    def hold(self, order_id):
        gate = asyncio.Event()
        self._gates.setdefault(order_id, []).append(gate)
        return gate

    def _ordered(self):
        return sorted((dict(r) for r in self.rows.values()), key=lambda r: r['created_at'], reverse=True)

    async def select(self, table, filters=None, ordering=None, related=None):
        if self.fail_selects:
            raise GatewayError("connection refused", table=table)
        return self._ordered()

    async def select_one(self, table, pk, related=None):
        row = dict(self.rows[pk]) if pk in self.rows else None
        gates = self._gates.get(pk)
        if gates:
            await gates.pop(0).wait()
        return row

    async def update(self, table, filters, patch):
        if self.fail_updates:
            raise GatewayError("permission denied for table orders", table=table)
        self.updates.append((filters, patch))
        for pk in filters['id__in']:
            self.rows[pk].update(patch)
        return [dict(self.rows[pk]) for pk in filters['id__in']]


class RecordingAlerts:
    def __init__(self):
        self.messages = []

    def info(self, message):
        self.messages.append(('info', message))

    def success(self, message):
        self.messages.append(('success', message))

    def error(self, message):
        self.messages.append(('error', message))


async def spin(times=5):
    for _ in range(times):
        await asyncio.sleep(0)


class OrderBoardTests(SimpleTestCase):
    """Test the session-scoped order board against a fake gateway and the local feed"""

    def make_board(self, rows=None, sound=None):
        self.gateway = FakeGateway(rows if rows is not None else [make_row(1), make_row(2), make_row(3)])
        self.feed = LocalChangeFeed()
        self.alerts = RecordingAlerts()
        return OrderBoard(self.gateway, self.feed, alerts=self.alerts, sound=sound)

    async def settle(self, board):
        await spin()
        await board.drain()

    async def test_load_newest_first(self):
        board = self.make_board()
        await board.load()
        self.assertEqual([o['id'] for o in board.orders], [3, 2, 1])
        self.assertEqual(board.orders[0]['customer']['name'], 'Customer 3')

    async def test_refresh_is_idempotent_and_keeps_ui_state(self):
        board = self.make_board()
        await board.load()
        board.toggle_expanded(2)
        board.select(1)
        first = await board.refresh()
        first = [dict(o) for o in first]
        second = await board.refresh()
        self.assertEqual(first, second)
        self.assertEqual(board.expanded, {2})
        self.assertEqual(board.selected, {1})

    async def test_refresh_failure_alerts_and_keeps_state(self):
        board = self.make_board()
        await board.load()
        before = list(board.orders)
        self.gateway.fail_selects = True
        with self.assertRaises(GatewayError):
            await board.refresh()
        self.assertEqual(board.orders, before)
        self.assertEqual(self.alerts.messages[-1][0], 'error')

    async def test_mount_reports_subscribed_and_is_single(self):
        board = self.make_board()
        channel = board.mount()
        self.assertIs(board.mount(), channel)
        self.assertEqual(self.feed.subscriber_count('orders'), 1)
        self.assertEqual(board.connection_status, ChannelStatus.SUBSCRIBED)
        self.assertTrue(board.is_connected)
        board.unmount()

    async def test_connection_failure_status(self):
        board = self.make_board()
        board.mount()
        self.feed.fail('orders', ChannelStatus.TIMED_OUT)
        await spin()
        self.assertEqual(board.connection_status, ChannelStatus.TIMED_OUT)
        board.unmount()
        self.assertEqual(board.connection_status, ChannelStatus.CLOSED)
        self.assertEqual(self.feed.subscriber_count('orders'), 0)

    async def test_insert_notification_fetches_relations(self):
        sounds = []
        board = self.make_board(sound=lambda: sounds.append(1))
        await board.load()
        async with board.live():
            self.gateway.rows[4] = make_row(4)
            # the notification carries only the bare row
            self.feed.publish(ChangeEvent('orders', INSERT, new={'id': 4, 'status': 'pending'}))
            await self.settle(board)

        self.assertEqual(board.orders[0]['id'], 4)
        self.assertEqual(board.orders[0]['customer']['name'], 'Customer 4')
        self.assertEqual(len(board.orders[0]['items']), 1)
        self.assertIn(('info', 'New order #4 from Customer 4'), self.alerts.messages)
        self.assertEqual(sounds, [1])

    async def test_duplicate_insert_does_not_duplicate(self):
        board = self.make_board()
        await board.load()
        async with board.live():
            self.gateway.rows[4] = make_row(4)
            for _ in range(2):
                self.feed.publish(ChangeEvent('orders', INSERT, new={'id': 4}))
            await self.settle(board)
            # insert for an order already loaded
            self.feed.publish(ChangeEvent('orders', INSERT, new={'id': 1}))
            await self.settle(board)

        ids = [o['id'] for o in board.orders]
        self.assertEqual(len(ids), len(set(ids)))
        self.assertEqual(ids.count(4), 1)
        self.assertEqual(len([m for m in self.alerts.messages if m[0] == 'info']), 1)

    async def test_update_notification_keeps_expanded(self):
        board = self.make_board()
        await board.load()
        board.toggle_expanded(1)
        board.open_detail(1)
        async with board.live():
            self.gateway.rows[1]['status'] = 'sent'
            self.feed.publish(ChangeEvent('orders', UPDATE, new={'id': 1, 'status': 'sent'}))
            await self.settle(board)

        order = next(o for o in board.orders if o['id'] == 1)
        self.assertEqual(order['status'], 'sent')
        self.assertEqual(order['customer']['name'], 'Customer 1')
        self.assertEqual(board.detail['status'], 'sent')
        self.assertEqual(board.expanded, {1})

    async def test_update_for_unknown_order_is_ignored(self):
        board = self.make_board()
        await board.load()
        async with board.live():
            self.gateway.rows[9] = make_row(9)
            self.feed.publish(ChangeEvent('orders', UPDATE, new={'id': 9}))
            await self.settle(board)
        self.assertNotIn(9, [o['id'] for o in board.orders])

    async def test_delete_notification_prunes_ui_state(self):
        board = self.make_board()
        await board.load()
        board.toggle_expanded(2)
        board.select(2)
        board.open_detail(2)
        async with board.live():
            self.feed.publish(ChangeEvent('orders', DELETE, old={'id': 2}))
            await self.settle(board)
        self.assertEqual([o['id'] for o in board.orders], [3, 1])
        self.assertEqual(board.expanded, set())
        self.assertEqual(board.selected, set())
        self.assertIsNone(board.detail)

    async def test_last_started_refetch_wins(self):
        board = self.make_board()
        await board.load()
        async with board.live():
            older = self.gateway.hold(1)
            newer = self.gateway.hold(1)

            self.gateway.rows[1]['status'] = 'preparing'
            self.feed.publish(ChangeEvent('orders', UPDATE, new={'id': 1}))
            await spin()
            self.gateway.rows[1]['status'] = 'sent'
            self.feed.publish(ChangeEvent('orders', UPDATE, new={'id': 1}))
            await spin()

            # the newer fetch completes first, the stale one afterwards
            newer.set()
            await spin()
            older.set()
            await self.settle(board)

        self.assertEqual(next(o for o in board.orders if o['id'] == 1)['status'], 'sent')

    async def test_local_write_supersedes_inflight_refetch(self):
        board = self.make_board()
        await board.load()
        async with board.live():
            gate = self.gateway.hold(1)
            self.feed.publish(ChangeEvent('orders', UPDATE, new={'id': 1}))
            await spin()
            await board.set_status(1, 'delivered')
            gate.set()
            await self.settle(board)

        order = next(o for o in board.orders if o['id'] == 1)
        self.assertEqual(order['status'], 'delivered')
        self.assertIsNotNone(order['delivered_at'])

    async def test_update_right_after_insert_keeps_new_order(self):
        board = self.make_board(rows=[make_row(1)])
        await board.load()
        async with board.live():
            self.gateway.rows[2] = make_row(2)
            gate = self.gateway.hold(2)
            self.feed.publish(ChangeEvent('orders', INSERT, new={'id': 2}))
            await spin()
            self.gateway.rows[2]['status'] = 'preparing'
            self.feed.publish(ChangeEvent('orders', UPDATE, new={'id': 2, 'status': 'preparing'}))
            await spin()
            gate.set()
            await self.settle(board)

        self.assertEqual([o['id'] for o in board.orders], [2, 1])
        self.assertEqual(board.orders[0]['status'], 'preparing')
        self.assertEqual(self.alerts.messages.count(('info', 'New order #2 from Customer 2')), 1)

    async def test_refresh_supersedes_inflight_refetch(self):
        board = self.make_board()
        await board.load()
        async with board.live():
            gate = self.gateway.hold(1)
            self.feed.publish(ChangeEvent('orders', UPDATE, new={'id': 1}))
            await spin()
            self.gateway.rows[1]['status'] = 'delivered'
            await board.refresh()
            gate.set()
            await self.settle(board)

        self.assertEqual(next(o for o in board.orders if o['id'] == 1)['status'], 'delivered')
        self.assertEqual(board.orders, self.gateway._ordered())

    async def test_notification_after_unmount_changes_nothing(self):
        board = self.make_board()
        await board.load()
        board.mount()
        gate = self.gateway.hold(1)
        self.gateway.rows[1]['status'] = 'cancelled'
        self.feed.publish(ChangeEvent('orders', UPDATE, new={'id': 1}))
        await spin()
        board.unmount()
        gate.set()
        await spin()

        self.gateway.rows[5] = make_row(5)
        self.feed.publish(ChangeEvent('orders', INSERT, new={'id': 5}))
        await spin()

        self.assertEqual([o['id'] for o in board.orders], [3, 2, 1])
        self.assertEqual(next(o for o in board.orders if o['id'] == 1)['status'], 'pending')
        self.assertEqual(self.alerts.messages, [])

    async def test_bulk_success_patches_exactly_the_selection(self):
        board = self.make_board()
        await board.load()
        board.select(1)
        board.select(3)
        await board.bulk_set_status('delivered')

        self.assertEqual(len(self.gateway.updates), 1)
        filters, patch = self.gateway.updates[0]
        self.assertEqual(filters, {'id__in': [1, 3]})
        by_id = {o['id']: o for o in board.orders}
        self.assertEqual(by_id[1]['status'], 'delivered')
        self.assertEqual(by_id[3]['status'], 'delivered')
        self.assertIn('delivered_at', by_id[1])
        self.assertEqual(by_id[2]['status'], 'pending')
        self.assertEqual(board.selected, set())
        self.assertEqual(self.alerts.messages[-1], ('success', '2 order(s) updated'))

    async def test_bulk_failure_leaves_state_untouched(self):
        board = self.make_board()
        await board.load()
        board.select(1)
        board.select(2)
        before = [dict(o) for o in board.orders]
        self.gateway.fail_updates = True

        with self.assertRaises(GatewayError):
            await board.bulk_set_status('sent')

        self.assertEqual(board.orders, before)
        self.assertEqual(board.selected, {1, 2})
        level, message = self.alerts.messages[-1]
        self.assertEqual(level, 'error')
        self.assertTrue(message.startswith('Could not update status'))

    async def test_bulk_with_empty_selection(self):
        board = self.make_board()
        await board.load()
        with self.assertRaises(StatusChangeError):
            await board.bulk_set_status('sent')
        self.assertEqual(self.gateway.updates, [])
        self.assertEqual(self.alerts.messages, [('error', 'Select at least one order')])

    async def test_invalid_status_is_not_written(self):
        board = self.make_board()
        await board.load()
        with self.assertRaises(StatusChangeError):
            await board.set_status(1, 'lost')
        self.assertEqual(self.gateway.updates, [])

    async def test_groups_filter_and_select_all(self):
        rows = [
            make_row(1, 'pending', 'delivery'),
            make_row(2, 'preparing', 'pickup'),
            make_row(3, 'sent', 'delivery'),
            make_row(4, 'preparing', 'delivery'),
        ]
        board = self.make_board(rows)
        await board.load()
        groups = board.by_status_group()
        self.assertEqual([o['id'] for o in groups['preparing']], [4, 2, 1])
        self.assertEqual([o['id'] for o in groups['sent']], [3])

        board.set_delivery_type_filter('delivery')
        board.select_all('preparing')
        self.assertEqual(board.selected, {1, 4})
        board.deselect_all('preparing')
        self.assertEqual(board.selected, set())

        with self.assertRaises(ValueError):
            board.set_delivery_type_filter('drone')

    async def test_select_ignores_unknown_ids(self):
        board = self.make_board()
        await board.load()
        board.select(42)
        self.assertEqual(board.selected, set())

    async def test_failing_sound_does_not_break_merge(self):
        def broken():
            raise OSError("no audio device")

        board = self.make_board(sound=broken)
        await board.load()
        async with board.live():
            self.gateway.rows[4] = make_row(4)
            self.feed.publish(ChangeEvent('orders', INSERT, new={'id': 4}))
            await self.settle(board)
        self.assertEqual(board.orders[0]['id'], 4)


class ChangeFeedTests(SimpleTestCase):
    """Test change events and feeds"""

    def tearDown(self):
        reset_change_feed()

    def test_event_json(self):
        event = ChangeEvent('orders', UPDATE, new={'id': 7, 'total': Decimal('12.50')})
        parsed = ChangeEvent.from_json(event.to_json().encode('utf-8'))
        self.assertEqual(parsed.row_id, 7)
        self.assertEqual(parsed.new['total'], '12.50')

    def test_delete_row_id_comes_from_old(self):
        self.assertEqual(ChangeEvent('orders', DELETE, old={'id': 3}).row_id, 3)

    def test_unknown_event_type(self):
        with self.assertRaises(ValueError):
            ChangeEvent('orders', 'TRUNCATE')

    def test_backoff_is_bounded(self):
        feed = RedisChangeFeed(url='redis://localhost:6379/0', reconnect_attempts=5, base_delay=0.5, max_delay=4)
        self.assertEqual([feed.backoff_delay(n) for n in range(1, 6)], [0.5, 1.0, 2.0, 4, 4])
        self.assertIsNone(feed.backoff_delay(6))
        self.assertEqual(feed.channel_name('orders'), 'realtime:orders')

    @override_settings(REALTIME_BACKEND='local')
    def test_get_change_feed_local(self):
        reset_change_feed()
        feed = get_change_feed()
        self.assertIsInstance(feed, LocalChangeFeed)
        self.assertIs(get_change_feed(), feed)

    @override_settings(REALTIME_BACKEND='kafka')
    def test_get_change_feed_unknown(self):
        reset_change_feed()
        with self.assertRaises(ValueError):
            get_change_feed()

    def test_publish_event_never_raises(self):
        broken = mock.Mock()
        broken.publish.side_effect = ConnectionError("redis down")
        with mock.patch('backoffice.orders.realtime.get_change_feed', return_value=broken):
            publish_event(ChangeEvent('orders', INSERT, new={'id': 1}))
        broken.publish.assert_called_once()

    async def test_unsubscribed_channel_gets_nothing(self):
        feed = LocalChangeFeed()
        received = []
        statuses = []
        channel = feed.subscribe('orders', {INSERT: received.append}, on_status=statuses.append)
        feed.publish(ChangeEvent('orders', INSERT, new={'id': 1}))
        await spin()
        channel.unsubscribe()
        feed.publish(ChangeEvent('orders', INSERT, new={'id': 2}))
        await spin()
        self.assertEqual([e.row_id for e in received], [1])
        self.assertEqual(statuses, [ChannelStatus.CONNECTING, ChannelStatus.SUBSCRIBED, ChannelStatus.CLOSED])

    async def test_failing_handler_does_not_affect_other_subscribers(self):
        feed = LocalChangeFeed()
        received = []

        def broken(event):
            raise RuntimeError("boom")

        feed.subscribe('orders', {INSERT: broken})
        feed.subscribe('orders', {INSERT: received.append})
        feed.subscribe('customers', {INSERT: received.append})
        feed.publish(ChangeEvent('orders', INSERT, new={'id': 1}))
        await spin()
        self.assertEqual(len(received), 1)


class FakePubSub:
    """Stands in for ``redis.asyncio`` pub/sub.

    ``behaviour``: ``fail`` raises on subscribe, ``hang`` never finishes
    subscribing, ``drop`` delivers ``messages`` then loses the connection,
    ``stay`` delivers ``messages`` then waits forever.
    """

    def __init__(self, behaviour, messages=()):
        self.behaviour = behaviour
        self.messages = list(messages)
        self.channel = None
        self.closed = False

    async def subscribe(self, channel):
        self.channel = channel
        if self.behaviour == 'fail':
            raise RedisError("Connection refused")
        if self.behaviour == 'hang':
            await asyncio.Event().wait()

    async def listen(self):
        yield {'type': 'subscribe', 'channel': self.channel, 'data': 1}
        for data in self.messages:
            yield {'type': 'message', 'channel': self.channel, 'data': data}
        if self.behaviour == 'drop':
            raise RedisError("Connection lost")
        await asyncio.Event().wait()

    async def aclose(self):
        self.closed = True


class FakeRedis:
    def __init__(self, pubsub):
        self._pubsub = pubsub

    def pubsub(self):
        return self._pubsub

    async def aclose(self):
        pass


class RedisChannelTests(SimpleTestCase):
    """Test the Redis channel's subscribe and reconnect loop"""

    def make_feed(self, attempts):
        return RedisChangeFeed(
            url='redis://localhost:6379/0',
            subscribe_timeout=0.05,
            reconnect_attempts=attempts,
            base_delay=0.001,
            max_delay=0.001,
        )

    def connect_with(self, *pubsubs):
        return mock.patch(
            'backoffice.orders.realtime.aioredis.from_url',
            side_effect=[FakeRedis(p) for p in pubsubs],
        )

    async def wait_for_status(self, statuses, expected):
        for _ in range(200):
            if statuses and statuses[-1] == expected:
                return
            await asyncio.sleep(0.005)
        self.fail(f"channel never reached {expected}, saw {statuses}")

    async def test_gives_up_after_reconnect_attempts(self):
        statuses = []
        with self.connect_with(FakePubSub('fail'), FakePubSub('fail'), FakePubSub('fail')) as from_url:
            channel = self.make_feed(attempts=2).subscribe('orders', {}, on_status=statuses.append)
            await asyncio.wait_for(channel._listener, 1)

        self.assertEqual(from_url.call_count, 3)
        self.assertEqual(statuses, [
            ChannelStatus.CONNECTING, ChannelStatus.ERROR,
            ChannelStatus.CONNECTING, ChannelStatus.ERROR,
            ChannelStatus.CONNECTING, ChannelStatus.ERROR,
        ])
        self.assertEqual(channel.status, ChannelStatus.ERROR)

    async def test_subscribe_timeout(self):
        statuses = []
        pubsub = FakePubSub('hang')
        with self.connect_with(pubsub):
            channel = self.make_feed(attempts=0).subscribe('orders', {}, on_status=statuses.append)
            await asyncio.wait_for(channel._listener, 1)

        self.assertEqual(statuses, [ChannelStatus.CONNECTING, ChannelStatus.TIMED_OUT])
        self.assertEqual(channel.status, ChannelStatus.TIMED_OUT)
        self.assertTrue(pubsub.closed)

    async def test_delivers_messages_and_resets_attempts_after_subscribing(self):
        statuses = []
        received = []
        event = ChangeEvent('orders', UPDATE, new={'id': 5, 'status': 'sent'})
        connections = (
            FakePubSub('fail'),
            FakePubSub('drop', messages=[event.to_json().encode('utf-8'), b'not json']),
            FakePubSub('fail'),
        )
        with self.connect_with(*connections) as from_url:
            # one retry allowed: the second drop only gets a retry because
            # the successful subscribe reset the counter
            channel = self.make_feed(attempts=1).subscribe(
                'orders', {UPDATE: received.append}, on_status=statuses.append
            )
            await asyncio.wait_for(channel._listener, 1)

        self.assertEqual(from_url.call_count, 3)
        self.assertEqual([e.row_id for e in received], [5])
        self.assertEqual(connections[1].channel, 'realtime:orders')
        self.assertEqual(statuses, [
            ChannelStatus.CONNECTING, ChannelStatus.ERROR,
            ChannelStatus.CONNECTING, ChannelStatus.SUBSCRIBED, ChannelStatus.ERROR,
            ChannelStatus.CONNECTING, ChannelStatus.ERROR,
        ])

    async def test_unsubscribe_cancels_listener(self):
        statuses = []
        pubsub = FakePubSub('stay')
        with self.connect_with(pubsub):
            channel = self.make_feed(attempts=3).subscribe('orders', {}, on_status=statuses.append)
            await self.wait_for_status(statuses, ChannelStatus.SUBSCRIBED)
            channel.unsubscribe()
            await asyncio.gather(channel._listener, return_exceptions=True)

        self.assertTrue(channel._listener.cancelled())
        self.assertTrue(pubsub.closed)
        self.assertEqual(statuses, [ChannelStatus.CONNECTING, ChannelStatus.SUBSCRIBED, ChannelStatus.CLOSED])


class StatusServiceTests(TestCase):
    """Test status changes, history and customer totals"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.customer = TestDataFactory.create_customer()
        self.product = TestDataFactory.create_product(sale_price='20.00')

    def test_status_patch_timestamps(self):
        self.assertIn('delivered_at', status_patch('delivered'))
        self.assertIn('cancelled_at', status_patch('cancelled'))
        self.assertEqual(status_patch('sent'), {'status': 'sent'})
        with self.assertRaises(StatusChangeError):
            status_patch('lost')

    def test_order_number_sequence(self):
        first = TestDataFactory.create_order(customer=self.customer)
        second = TestDataFactory.create_order(customer=self.customer)
        self.assertEqual(second.order_number, first.order_number + 1)

    def test_order_number_collision_takes_next_number(self):
        first = TestDataFactory.create_order(customer=self.customer)
        # another writer already took the number this insert computed
        numbers = [first.order_number, first.order_number + 1]
        with mock.patch('backoffice.orders.models.next_order_number', side_effect=numbers):
            second = Order.objects.create(customer=self.customer)
        self.assertEqual(second.order_number, first.order_number + 1)
        self.assertEqual(Order.objects.count(), 2)

    def test_order_number_collisions_give_up(self):
        first = TestDataFactory.create_order(customer=self.customer)
        with mock.patch('backoffice.orders.models.next_order_number', return_value=first.order_number):
            with self.assertRaises(IntegrityError):
                Order.objects.create(customer=self.customer)
        self.assertEqual(Order.objects.count(), 1)

    def test_change_status_records_history_and_totals(self):
        orders = [TestDataFactory.create_order(customer=self.customer, items=[(self.product, 1)]) for _ in range(2)]
        with self.captureOnCommitCallbacks(execute=True):
            updated = change_status([o.id for o in orders], 'delivered', user=self.user, notes='entregue')

        self.assertEqual(updated, 2)
        self.assertEqual(OrderStatusHistory.objects.filter(status='delivered', user=self.user).count(), 2)
        self.assertTrue(all(o.delivered_at for o in Order.objects.all()))
        customer = Customer.objects.get(pk=self.customer.pk)
        self.assertEqual(customer.total_orders, 2)
        self.assertEqual(customer.total_spent, Decimal('40.00'))

    def test_cancelled_orders_leave_totals(self):
        order = TestDataFactory.create_order(customer=self.customer)
        with self.captureOnCommitCallbacks(execute=True):
            change_status([order.id], 'cancelled')
        self.assertEqual(Customer.objects.get(pk=self.customer.pk).total_orders, 0)

    def test_unknown_ids_reject_everything(self):
        order = TestDataFactory.create_order(customer=self.customer)
        with self.assertRaises(StatusChangeError):
            change_status([order.id, 999999], 'sent')
        self.assertEqual(Order.objects.get(pk=order.id).status, 'pending')

    def test_empty_ids(self):
        with self.assertRaises(StatusChangeError):
            change_status([], 'sent')

    def test_changes_are_published(self):
        with mock.patch('backoffice.orders.signals.publish_event') as publish:
            with self.captureOnCommitCallbacks(execute=True):
                order = TestDataFactory.create_order(customer=self.customer)
            self.assertEqual(publish.call_args_list[0].args[0].event_type, INSERT)
            self.assertEqual(publish.call_args_list[0].args[0].row_id, order.id)

            publish.reset_mock()
            with self.captureOnCommitCallbacks(execute=True):
                change_status([order.id], 'preparing')
            event = publish.call_args.args[0]
            self.assertEqual(event.event_type, UPDATE)
            self.assertEqual(event.new['status'], 'preparing')

            publish.reset_mock()
            with self.captureOnCommitCallbacks(execute=True):
                Order.objects.get(pk=order.id).delete()
            self.assertEqual(publish.call_args.args[0].event_type, DELETE)


class OrderAPITests(TestCase):
    """Test Order API endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.customer = TestDataFactory.create_customer(name='Beatriz', phone='11977776666')

    def test_list_nested_newest_first(self):
        first = TestDataFactory.create_order(customer=self.customer)
        second = TestDataFactory.create_order(customer=self.customer)
        response = self.client.get('/api/v1/orders/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([o['id'] for o in response.data], [second.id, first.id])
        self.assertEqual(response.data[0]['customer']['name'], 'Beatriz')
        self.assertEqual(len(response.data[0]['items']), 1)

    def test_list_filters(self):
        pending = TestDataFactory.create_order(customer=self.customer, status='pending')
        sent = TestDataFactory.create_order(status='sent', delivery_type='pickup')
        TestDataFactory.create_order(status='delivered')

        response = self.client.get('/api/v1/orders/?status=pending,sent')
        self.assertEqual({o['id'] for o in response.data}, {pending.id, sent.id})

        response = self.client.get('/api/v1/orders/?delivery_type=pickup')
        self.assertEqual([o['id'] for o in response.data], [sent.id])

        response = self.client.get(f'/api/v1/orders/?search=%23{pending.order_number}')
        self.assertEqual([o['id'] for o in response.data], [pending.id])

        response = self.client.get('/api/v1/orders/?search=beatriz')
        self.assertEqual([o['id'] for o in response.data], [pending.id])

    def test_list_date_range(self):
        order = TestDataFactory.create_order(customer=self.customer)
        today = timezone.localdate().isoformat()
        response = self.client.get(f'/api/v1/orders/?date_from={today}&date_to={today}')
        self.assertEqual([o['id'] for o in response.data], [order.id])

        response = self.client.get('/api/v1/orders/?date_to=2000-01-01')
        self.assertEqual(response.data, [])

    def test_list_bad_date(self):
        for query in ('date_from=01/05/2024', 'date_to=2024-02-30', 'date_from=ontem'):
            response = self.client.get(f'/api/v1/orders/?{query}')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, query)
            self.assertIn('YYYY-MM-DD', response.data['error'])

    def test_single_status_change(self):
        order = TestDataFactory.create_order(customer=self.customer)
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.patch(
                f'/api/v1/orders/{order.id}/status/', {'status': 'preparing', 'notes': 'na cozinha'}, format='json'
            )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'preparing')
        history = OrderStatusHistory.objects.get(order=order)
        self.assertEqual(history.notes, 'na cozinha')
        self.assertEqual(history.user, self.user)
        self.assertTrue(AuditLog.objects.filter(action='order_status', object_id=str(order.id)).exists())

    def test_invalid_status(self):
        order = TestDataFactory.create_order(customer=self.customer)
        response = self.client.patch(f'/api/v1/orders/{order.id}/status/', {'status': 'lost'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_bulk_status_change(self):
        a = TestDataFactory.create_order(customer=self.customer)
        b = TestDataFactory.create_order(customer=self.customer)
        untouched = TestDataFactory.create_order(customer=self.customer)
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(
                '/api/v1/orders/bulk-status/', {'ids': [a.id, b.id], 'status': 'sent'}, format='json'
            )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['updated'], 2)
        self.assertEqual(set(Order.objects.filter(status='sent').values_list('id', flat=True)), {a.id, b.id})
        self.assertEqual(Order.objects.get(pk=untouched.id).status, 'pending')
        self.assertEqual(OrderStatusHistory.objects.count(), 2)
        self.assertTrue(AuditLog.objects.filter(action='order_bulk_status').exists())

    def test_bulk_with_unknown_id_changes_nothing(self):
        order = TestDataFactory.create_order(customer=self.customer)
        response = self.client.post(
            '/api/v1/orders/bulk-status/', {'ids': [order.id, 999999], 'status': 'sent'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Order.objects.get(pk=order.id).status, 'pending')

    def test_bulk_requires_ids(self):
        response = self.client.post('/api/v1/orders/bulk-status/', {'ids': [], 'status': 'sent'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_detail_includes_history(self):
        order = TestDataFactory.create_order(customer=self.customer)
        with self.captureOnCommitCallbacks(execute=True):
            change_status([order.id], 'preparing', user=self.user)
        response = self.client.get(f'/api/v1/orders/{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([h['status'] for h in response.data['status_history']], ['preparing'])

    def test_patch_cannot_change_status(self):
        order = TestDataFactory.create_order(customer=self.customer)
        response = self.client.patch(f'/api/v1/orders/{order.id}/', {'status': 'delivered', 'notes': 'sem cebola'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        order.refresh_from_db()
        self.assertEqual(order.status, 'pending')
        self.assertEqual(order.notes, 'sem cebola')

    def test_delete_order(self):
        order = TestDataFactory.create_order(customer=self.customer)
        response = self.client.delete(f'/api/v1/orders/{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Order.objects.filter(pk=order.id).exists())
        self.assertTrue(AuditLog.objects.filter(action='delete', model_name='Order').exists())
