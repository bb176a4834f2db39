from marketstream.connections.sockets import ConnectionSupervisor, build_headers
from marketstream.connections.subscription import Subscription, SubscriptionRegistry

__all__ = [
    "ConnectionSupervisor",
    "build_headers",
    "Subscription",
    "SubscriptionRegistry",
]
