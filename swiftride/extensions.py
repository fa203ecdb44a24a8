from flask_bcrypt import Bcrypt
from flask_caching import Cache
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

from swiftride.sync.feed import ChangeFeed

db = SQLAlchemy()
migrate = Migrate()
bcrypt = Bcrypt()
cache = Cache()
limiter = Limiter(key_func=get_remote_address)
login_manager = LoginManager()
change_feed = ChangeFeed()
