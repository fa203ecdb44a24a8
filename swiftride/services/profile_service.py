from swiftride.errors import NotAuthorized, NotFound, ValidationError
from swiftride.extensions import cache, db
from swiftride.models import Profile
from swiftride.policies import can_edit_profile


class ProfileService:
    @staticmethod
    def _default_username(user):
        local = (user.email or "").split("@", 1)[0].strip()
        return local[:80] or f"user{user.id}"

    @staticmethod
    def ensure_profile(user):
        """Create the display profile on first successful authentication."""
        profile = db.session.get(Profile, user.id)
        if profile:
            return profile
        profile = Profile(id=user.id, username=ProfileService._default_username(user))
        db.session.add(profile)
        db.session.commit()
        return profile

    @staticmethod
    def get_profile(user_id):
        profile = db.session.get(Profile, user_id)
        if not profile:
            raise NotFound("Profile not found.")
        return profile

    @staticmethod
    @cache.memoize(timeout=60)
    def profile_snapshot(user_id):
        profile = db.session.get(Profile, user_id)
        return profile.to_dict() if profile else None

    @staticmethod
    def profiles_by_ids(user_ids):
        snapshots = {}
        for user_id in set(user_ids):
            snapshot = ProfileService.profile_snapshot(user_id)
            if snapshot is not None:
                snapshots[user_id] = snapshot
        return snapshots

    @staticmethod
    def upsert_profile(profile_id, principal_id, username, avatar_url=None):
        if not can_edit_profile(profile_id, principal_id):
            raise NotAuthorized("You can only edit your own profile.")
        username = (username or "").strip()
        if not username:
            raise ValidationError("Username is required.")
        if len(username) > 80:
            raise ValidationError("Username must be at most 80 characters.")

        profile = db.session.get(Profile, profile_id)
        if profile:
            profile.username = username
            profile.avatar_url = (avatar_url or "").strip() or None
        else:
            profile = Profile(id=profile_id, username=username, avatar_url=(avatar_url or "").strip() or None)
            db.session.add(profile)
        db.session.commit()
        cache.delete_memoized(ProfileService.profile_snapshot, profile_id)
        return profile
