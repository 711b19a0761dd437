"""
Operator-facing notifications for the order board.

An alert sink receives short messages at three levels (info, success,
error). The default sink writes them to the log; the ``watch_orders``
command supplies one that prints to the terminal.
"""
import logging
import sys

logger = logging.getLogger(__name__)


class LogAlerts:
    """Alert sink backed by the logging module"""

    def __init__(self, name='backoffice.orders.board'):
        self.logger = logging.getLogger(name)

    def info(self, message):
        self.logger.info(message)

    def success(self, message):
        self.logger.info(message)

    def error(self, message):
        self.logger.warning(message)


class StreamAlerts:
    """Alert sink that writes styled lines to a management command's output"""

    def __init__(self, stdout, style):
        self.stdout = stdout
        self.style = style

    def info(self, message):
        self.stdout.write(self.style.NOTICE(message))

    def success(self, message):
        self.stdout.write(self.style.SUCCESS(message))

    def error(self, message):
        self.stdout.write(self.style.ERROR(message))


def terminal_bell(stream=None):
    """Ring the terminal bell; silently does nothing without a TTY"""
    stream = stream or sys.stdout
    if stream.isatty():
        stream.write('\a')
        stream.flush()


def order_alert_text(row):
    customer = (row.get('customer') or {}).get('name') or 'unknown customer'
    return f"New order #{row.get('order_number')} from {customer}"
