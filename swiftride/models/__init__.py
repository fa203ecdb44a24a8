from swiftride.models.booking import Booking
from swiftride.models.message import Message
from swiftride.models.profile import Profile
from swiftride.models.rider_profile import RiderProfile
from swiftride.models.user import User

__all__ = [
    "User",
    "Profile",
    "RiderProfile",
    "Booking",
    "Message",
]
