from marketstream.analytics.engine import IndicatorEngine, IndicatorWindow
from marketstream.analytics.subscriptions import SubscriptionManager

__all__ = ["IndicatorEngine", "IndicatorWindow", "SubscriptionManager"]
