import os

from starlette.config import Config
from starlette.datastructures import CommaSeparatedStrings, Secret

# If APP_CONFIG is set, use that as the path to the .env file, or default to .env
env_file = os.getenv("APP_CONFIG", ".env")
if "APP_CONFIG" in os.environ and not os.path.isfile(env_file):
    raise FileNotFoundError(f"The configuration file specified in APP_CONFIG or the default .env does not exist: {env_file}")

config = Config(env_file)

# JWT Configuration
JWT_SECRET_KEY: Secret = config("JWT_SECRET_KEY", cast=Secret)
JWT_ALGORITHM: str = config("JWT_ALGORITHM", default="HS256")
JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = config(
    "JWT_ACCESS_TOKEN_EXPIRE_MINUTES", cast=int, default=60
)
JWT_ISSUER: str = config("JWT_ISSUER", default="event-booking-api")
JWT_AUDIENCE: str = config("JWT_AUDIENCE", default="event-booking-api")

# Application Configuration
CORS_ORIGINS: CommaSeparatedStrings = config(
    "CORS_ORIGINS", cast=CommaSeparatedStrings, default=CommaSeparatedStrings([])
)
DEBUG: bool = config("DEBUG", cast=bool, default=False)
LOG_LEVEL: str = config("LOG_LEVEL", default="INFO")
SEED_DEMO_DATA: bool = config("SEED_DEMO_DATA", cast=bool, default=False)

# Email Configuration ("ses" sends through AWS SES, "console" only logs the code)
EMAIL_BACKEND: str = config("EMAIL_BACKEND", default="console")
AWS_REGION: str = config("AWS_REGION", default="us-east-2")
AWS_ACCESS_KEY: Secret = config("AWS_ACCESS_KEY", cast=Secret, default="")
AWS_SECRET_ACCESS_KEY: Secret = config("AWS_SECRET_ACCESS_KEY", cast=Secret, default="")
AWS_SES_SENDER_EMAIL: str = config("AWS_SES_SENDER_EMAIL", default="no-reply@eventbooking.local")

# OTP Configuration
OTP_LIFETIME_MINUTES: int = config("OTP_LIFETIME_MINUTES", cast=int, default=10)

# Login Throttling Configuration
LOGIN_MAX_ATTEMPTS: int = config("LOGIN_MAX_ATTEMPTS", cast=int, default=5)
LOGIN_LOCK_WINDOW_MINUTES: int = config("LOGIN_LOCK_WINDOW_MINUTES", cast=int, default=15)

# Password Configuration
PASSWORD_MIN_LENGTH: int = config("PASSWORD_MIN_LENGTH", cast=int, default=6)
BCRYPT_ROUNDS: int = config("BCRYPT_ROUNDS", cast=int, default=10)
# Seeded demo accounts share a fixed legacy hash. Turn off to reject it.
ALLOW_LEGACY_DEMO_CREDENTIALS: bool = config(
    "ALLOW_LEGACY_DEMO_CREDENTIALS", cast=bool, default=True
)

# Database Configuration
DATABASE_URL: str = config("DATABASE_URL", default="sqlite:///./event_booking.db")

# Cron Job Configuration (0 disables the job)
EXPIRED_STATE_CLEANUP_INTERVAL_SECONDS: int = config(
    "EXPIRED_STATE_CLEANUP_INTERVAL_SECONDS", cast=int, default=60
)
