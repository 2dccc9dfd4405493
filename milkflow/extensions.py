from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# ======================
# Database
# ======================
db = SQLAlchemy()
migrate = Migrate()

# ======================
# Login Manager
# ======================
# The user_loader lives in milkflow/auth.py next to the login routes.
login_manager = LoginManager()

# ======================
# Rate Limiter
# ======================
# Storage comes from RATELIMIT_STORAGE_URI (Redis in production, memory locally).
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],              # No global limits by default
)
