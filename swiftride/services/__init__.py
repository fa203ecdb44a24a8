from swiftride.services.acceptance_service import AcceptanceService
from swiftride.services.auth_service import AuthService
from swiftride.services.booking_service import BookingService
from swiftride.services.chat_service import ChatService
from swiftride.services.file_service import FileService
from swiftride.services.profile_service import ProfileService
from swiftride.services.rider_service import RiderService

__all__ = [
    "AcceptanceService",
    "AuthService",
    "BookingService",
    "ChatService",
    "FileService",
    "ProfileService",
    "RiderService",
]
