"""
Session-scoped order board.

Holds the operator's local copy of the order list and keeps it consistent
with the database through three paths: the initial load, the change feed,
and the operator's own status mutations.

* Change notifications only carry the bare row, so inserts and updates
  re-fetch the order with its customer and items before merging.
* Merges are by id; an id is never present twice.
* For one id, the re-fetch started last wins. A successful local write
  or a manual refresh also supersedes re-fetches still in flight.
* A new order is added by whichever re-fetch wins for its id, so an
  UPDATE right behind the INSERT does not lose it.
* Local mutations are write-then-reflect: state only changes after the
  gateway call succeeds.
* UI state (expanded cards, selection) lives in id-keyed sets and survives
  any replacement of the underlying rows.
* After ``unmount()`` nothing changes state any more, including re-fetches
  that were already in flight.
"""
import asyncio
import inspect
import logging
from collections import defaultdict
from contextlib import asynccontextmanager

from backoffice.core.gateway import GatewayError
from .alerts import LogAlerts, order_alert_text
from .realtime import ChannelStatus, INSERT, UPDATE, DELETE
from .services import status_patch, StatusChangeError

logger = logging.getLogger(__name__)

STATUS_GROUPS = {
    'preparing': ('pending', 'preparing'),
    'sent': ('sent',),
    'ready_pickup': ('ready_pickup',),
    'delivered': ('delivered',),
    'cancelled': ('cancelled',),
}

DELIVERY_TYPE_FILTERS = ('all', 'delivery', 'pickup')


class OrderBoard:
    table = 'orders'
    related = ('customer', 'items')

    def __init__(self, gateway, feed, alerts=None, sound=None):
        self.gateway = gateway
        self.feed = feed
        self.alerts = alerts or LogAlerts()
        self.sound = sound

        self.orders = []
        self.detail = None
        self.expanded = set()
        self.selected = set()
        self.delivery_type_filter = 'all'
        self.connection_status = ChannelStatus.CONNECTING

        self._channel = None
        self._mounted = False
        self._closed = False
        self._fetch_seq = defaultdict(int)
        # ids announced by an INSERT that are not in the list yet
        self._pending_inserts = set()
        self._tasks = set()

    # --- lifecycle ---

    @property
    def is_connected(self):
        return self.connection_status == ChannelStatus.SUBSCRIBED

    @property
    def is_mounted(self):
        return self._mounted

    async def load(self):
        """Initial load: every order with customer and items, newest first"""
        self.orders = await self.gateway.select(self.table, ordering=['-created_at'], related=self.related)
        self._prune()
        return self.orders

    def mount(self):
        """Open the order channel; a second call while mounted does nothing"""
        if self._channel is not None:
            return self._channel
        self._mounted = True
        self.connection_status = ChannelStatus.CONNECTING
        self._channel = self.feed.subscribe(
            self.table,
            {INSERT: self._on_insert, UPDATE: self._on_update, DELETE: self._on_delete},
            on_status=self._on_status,
        )
        return self._channel

    def unmount(self):
        if self._channel is None:
            return
        self._mounted = False
        self._closed = True
        channel, self._channel = self._channel, None
        try:
            channel.unsubscribe()
        finally:
            self.connection_status = ChannelStatus.CLOSED
            for task in list(self._tasks):
                task.cancel()

    @asynccontextmanager
    async def live(self):
        """``async with board.live():`` keeps the board subscribed for the block"""
        self.mount()
        try:
            yield self
        finally:
            self.unmount()

    async def drain(self):
        """Wait for notification re-fetches currently in flight"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _on_status(self, status):
        if self._mounted:
            self.connection_status = ChannelStatus(status)

    # --- change notifications ---

    def _spawn(self, coro):
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _on_insert(self, event):
        if self._mounted:
            if self._index(event.row_id) is None:
                self._pending_inserts.add(event.row_id)
            self._spawn(self._merge(event.row_id))

    def _on_update(self, event):
        if self._mounted:
            self._spawn(self._merge(event.row_id))

    def _on_delete(self, event):
        if self._mounted:
            self._remove(event.row_id)

    async def _refetch(self, order_id):
        """Fetch one order with relations; None when stale, failed or unmounted"""
        self._fetch_seq[order_id] += 1
        seq = self._fetch_seq[order_id]
        try:
            row = await self.gateway.select_one(self.table, order_id, related=self.related)
        except GatewayError as e:
            logger.warning(f"Re-fetch of order {order_id} failed: {e}")
            return None
        if not self._mounted or seq != self._fetch_seq[order_id]:
            return None
        return row

    async def _merge(self, order_id):
        """Merge the re-fetched order into the list.

        A row already held is replaced. A row not held is only added when an
        INSERT announced it, whichever re-fetch for that id ends up winning;
        updates for orders never announced are ignored.
        """
        row = await self._refetch(order_id)
        if row is None:
            return
        if self._replace(row):
            self._pending_inserts.discard(order_id)
            return
        if order_id not in self._pending_inserts:
            return
        self._pending_inserts.discard(order_id)
        self.orders.insert(0, row)
        self.alerts.info(order_alert_text(row))
        self._play_sound()

    def _index(self, order_id):
        for i, order in enumerate(self.orders):
            if order['id'] == order_id:
                return i
        return None

    def _replace(self, row):
        i = self._index(row['id'])
        if i is None:
            return False
        self.orders[i] = row
        if self.detail is not None and self.detail['id'] == row['id']:
            self.detail = row
        return True

    def _remove(self, order_id):
        # supersede any re-fetch in flight for this id
        self._fetch_seq[order_id] += 1
        self._pending_inserts.discard(order_id)
        self.orders = [order for order in self.orders if order['id'] != order_id]
        self._prune()

    def _prune(self):
        ids = {order['id'] for order in self.orders}
        self.expanded &= ids
        self.selected &= ids
        if self.detail is not None and self.detail['id'] not in ids:
            self.detail = None

    def _play_sound(self):
        if self.sound is None:
            return
        try:
            result = self.sound()
            if inspect.isawaitable(result):
                self._spawn(self._await_sound(result))
        except Exception as e:
            logger.debug(f"Notification sound unavailable: {e}")

    async def _await_sound(self, awaitable):
        try:
            await awaitable
        except Exception as e:
            logger.debug(f"Notification sound unavailable: {e}")

    # --- operator actions ---

    async def refresh(self):
        """Re-fetch the whole list and replace local state.

        Re-fetches started before the refresh are superseded by it; ones
        started while it was running still apply.
        """
        started = dict(self._fetch_seq)
        try:
            rows = await self.gateway.select(self.table, ordering=['-created_at'], related=self.related)
        except GatewayError as e:
            self.alerts.error(f"Could not refresh orders: {e}")
            raise
        if self._closed:
            return self.orders
        for order_id, seq in started.items():
            if self._fetch_seq[order_id] == seq:
                self._fetch_seq[order_id] += 1
        self._pending_inserts.difference_update(row['id'] for row in rows)
        self.orders = rows
        if self.detail is not None:
            self.detail = next((o for o in rows if o['id'] == self.detail['id']), None)
        self._prune()
        return self.orders

    def open_detail(self, order_id):
        i = self._index(order_id)
        self.detail = self.orders[i] if i is not None else None
        return self.detail

    def close_detail(self):
        self.detail = None

    async def set_status(self, order_id, status):
        await self._write_status([order_id], status)
        self.alerts.success("Status updated")

    async def bulk_set_status(self, status):
        """Move every selected order to ``status`` in one write"""
        if not self.selected:
            self.alerts.error("Select at least one order")
            raise StatusChangeError("No orders selected")
        ids = sorted(self.selected)
        await self._write_status(ids, status)
        self.selected.clear()
        self.alerts.success(f"{len(ids)} order(s) updated")

    async def _write_status(self, ids, status):
        try:
            patch = status_patch(status)
        except StatusChangeError as e:
            self.alerts.error(str(e))
            raise
        try:
            await self.gateway.update(self.table, {'id__in': list(ids)}, patch)
        except GatewayError as e:
            self.alerts.error(f"Could not update status: {e}")
            raise
        wanted = set(ids)
        for i, order in enumerate(self.orders):
            if order['id'] in wanted:
                self._fetch_seq[order['id']] += 1
                self.orders[i] = {**order, **patch}
                if self.detail is not None and self.detail['id'] == order['id']:
                    self.detail = self.orders[i]

    # --- view state ---

    def toggle_expanded(self, order_id):
        if order_id in self.expanded:
            self.expanded.discard(order_id)
        else:
            self.expanded.add(order_id)
        return order_id in self.expanded

    def select(self, order_id):
        if self._index(order_id) is not None:
            self.selected.add(order_id)

    def deselect(self, order_id):
        self.selected.discard(order_id)

    def select_all(self, group):
        self.selected.update(order['id'] for order in self.by_status_group()[group])

    def deselect_all(self, group):
        self.selected.difference_update(order['id'] for order in self.by_status_group()[group])

    def clear_selection(self):
        self.selected.clear()

    def set_delivery_type_filter(self, value):
        if value not in DELIVERY_TYPE_FILTERS:
            raise ValueError(f"Unknown delivery type filter: {value}")
        self.delivery_type_filter = value

    def visible_orders(self):
        if self.delivery_type_filter == 'all':
            return list(self.orders)
        return [o for o in self.orders if o['delivery_type'] == self.delivery_type_filter]

    def by_status_group(self):
        visible = self.visible_orders()
        return {
            group: [o for o in visible if o['status'] in statuses]
            for group, statuses in STATUS_GROUPS.items()
        }
