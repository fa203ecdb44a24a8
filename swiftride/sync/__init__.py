from swiftride.sync.channel import BookingChannel, MessageSource, open_booking_channel
from swiftride.sync.feed import ChangeFeed, FeedSubscription
from swiftride.sync.log import ChatMessage, MessageLog

__all__ = [
    "BookingChannel",
    "ChangeFeed",
    "ChatMessage",
    "FeedSubscription",
    "MessageLog",
    "MessageSource",
    "open_booking_channel",
]
