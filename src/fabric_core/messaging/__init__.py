from fabric_core.messaging.protocol import (
    MessageDestination,
    MessagingClient,
    PostedMessage,
)

__all__ = [
    "MessageDestination",
    "MessagingClient",
    "PostedMessage",
]
