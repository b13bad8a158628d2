from pydantic_settings import BaseSettings

# Defaults let the API run locally against a sqlite file without S3 or
# SendGrid credentials. Override them with a `.env` file or environment
# variables.
class Settings(BaseSettings):

    # 'development' or 'production'
    app_env: str = "development"
    debug: bool = True
    frontend_base_url: str = "http://localhost:3000"
    # Comma-separated list of extra allowed origins
    cors_origins: str = "http://127.0.0.1:3000"

    # Database settings
    database_hostname: str = "sqlite"  # 'sqlite' selects the local file below
    database_password: str = ""
    database_name: str = "./threadscape.db"
    database_username: str = ""
    database_port: str = "5432"

    # JWT / Auth
    secret_key: str = "change-me"
    algorithm: str = "HS256"
    # 30 days
    access_token_expire_minutes: int = 60 * 24 * 30
    cookie_name: str = "token"
    cookie_secure: bool = False
    cookie_samesite: str = "lax"

    # AWS S3 (product images)
    aws_access_key_id: str = ""
    aws_secret_key: str = ""
    aws_region: str = ""
    s3_bucket_name: str = ""
    # Public URL prefix for stored objects, e.g. a CloudFront domain.
    s3_public_base_url: str = ""
    s3_products_folder: str = "threadscape/products"

    # SendGrid / Email
    sendgrid_api_key: str = ""
    notification_email: str = ""
    sendgrid_from_email: str = ""
    # True in development to avoid delivering real emails
    sendgrid_sandbox_mode: bool = False

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


from dotenv import load_dotenv
load_dotenv()

settings = Settings()

env = settings.app_env.lower()

if env in ("production", "prod"):
    # Cross-site cookie for the hosted frontend
    settings.debug = False
    settings.cookie_secure = True
    settings.cookie_samesite = "none"
    if settings.cors_origins in (None, "", "http://127.0.0.1:3000"):
        settings.cors_origins = settings.frontend_base_url
else:
    if not settings.frontend_base_url:
        settings.frontend_base_url = "http://localhost:3000"
    if not settings.cors_origins:
        settings.cors_origins = "http://127.0.0.1:3000"


def allowed_origins() -> list:
    """Origins accepted by CORS: the frontend plus anything in `cors_origins`."""
    origins = [settings.frontend_base_url.rstrip('/')]
    for origin in (settings.cors_origins or "").split(","):
        origin = origin.strip().rstrip('/')
        if origin and origin not in origins:
            origins.append(origin)
    return origins