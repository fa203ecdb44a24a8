from functools import wraps

from flask import abort
from flask_login import current_user

from swiftride.services import RiderService


def rider_required(func):
    @wraps(func)
    def inner(*args, **kwargs):
        if not current_user.is_authenticated:
            abort(401)
        if not RiderService.is_rider(current_user.id):
            abort(403)
        return func(*args, **kwargs)

    return inner
