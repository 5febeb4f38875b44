from .api import MarketplaceAPI
from .cache import ConversationCache, ConversationView, MessageView
from .poller import ConversationSummary, ConversationSync, PollHandle

__all__ = [
    "MarketplaceAPI",
    "ConversationCache",
    "ConversationView",
    "MessageView",
    "ConversationSummary",
    "ConversationSync",
    "PollHandle",
]
