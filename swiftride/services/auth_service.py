from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError

from swiftride.errors import AppError, ValidationError
from swiftride.extensions import bcrypt, db
from swiftride.models import User
from swiftride.services.profile_service import ProfileService


class AuthService:
    @staticmethod
    def register_user(email, password, username=None):
        normalized_email = (email or "").strip().lower()
        if not normalized_email or "@" not in normalized_email:
            raise ValidationError("A valid email is required.")
        if len(password or "") < 8:
            raise ValidationError("Password must be at least 8 characters.")

        if User.query.filter_by(email=normalized_email).first():
            raise AppError("Email already registered.", 409)

        user = User(
            email=normalized_email,
            password_hash=bcrypt.generate_password_hash(password).decode("utf-8"),
            last_login=datetime.now(timezone.utc),
        )
        try:
            db.session.add(user)
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            raise AppError("Email already registered.", 409) from exc

        ProfileService.ensure_profile(user)
        if username and username.strip():
            ProfileService.upsert_profile(user.id, user.id, username)
        return user

    @staticmethod
    def authenticate_user(email, password):
        user = User.query.filter_by(email=(email or "").strip().lower()).first()
        if not user:
            raise AppError("Invalid credentials.", 401)

        try:
            is_valid = bcrypt.check_password_hash(user.password_hash, password or "")
        except ValueError:
            is_valid = False

        if not is_valid:
            raise AppError("Invalid credentials.", 401)
        if not user.is_active_user:
            raise AppError("User account is inactive.", 403)
        user.last_login = datetime.now(timezone.utc)
        db.session.commit()
        ProfileService.ensure_profile(user)
        return user
