from polywhale.alerts.dispatcher import AlertDispatcher
from polywhale.alerts.manager import AlertManager, AlertSink
from polywhale.alerts.telegram import TelegramNotifier

__all__ = ["AlertDispatcher", "AlertManager", "AlertSink", "TelegramNotifier"]
