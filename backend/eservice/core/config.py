from pydantic_settings import BaseSettings
from typing import List, Any
import json
from pathlib import Path


def parse_csv_list(v: Any) -> List[str]:
    """Parse a list setting from a JSON array or a comma-separated string"""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        # Try JSON parsing first
        if v.startswith('['):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        # Fall back to comma-separated
        return [item.strip() for item in v.split(',') if item.strip()]
    return []


def parse_extensions(v: Any) -> List[str]:
    """Parse allowed extensions, normalized to lower case with a leading dot"""
    extensions = []
    for ext in parse_csv_list(v):
        ext = ext.lower()
        extensions.append(ext if ext.startswith('.') else f".{ext}")
    return extensions


class Settings(BaseSettings):
    """Application settings - all configurable via environment variables"""

    # ==========================================
    # Application
    # ==========================================
    APP_NAME: str = "E-Service Portal"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    TESTING: bool = False
    SECRET_KEY: str
    API_PREFIX: str = "/api"

    # Server Configuration
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8000

    # ==========================================
    # Database
    # ==========================================
    DATABASE_URL: str
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800  # 30 minutes
    DB_ECHO: bool = False

    # ==========================================
    # Authentication
    # ==========================================
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24 hours
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30
    BCRYPT_ROUNDS: int = 12  # 4 for tests, 12 for prod

    # ==========================================
    # CORS (stored as comma-separated string, parsed to list)
    # ==========================================
    CORS_ORIGINS_STR: str = "http://localhost:3000,http://127.0.0.1:3000"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return parse_csv_list(self.CORS_ORIGINS_STR)

    # ==========================================
    # Rate Limiting
    # ==========================================
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_PER_MINUTE: int = 60
    RATE_LIMIT_STORAGE_URI: str = "memory://"

    # ==========================================
    # File Upload
    # ==========================================
    FILEDATA_PATH: str = "filedata"
    MAX_UPLOAD_SIZE: int = 52428800  # 50MB, total size of a chunked upload
    MAX_REQUEST_FILE_SIZE: int = 10485760  # 10MB, single request attachment
    MAX_REQUEST_BODY_SIZE: int = 62914560  # 60MB, enforced by middleware
    ALLOWED_EXTENSIONS_STR: str = ".jpg,.jpeg,.png,.gif,.webp,.pdf"

    @property
    def ALLOWED_EXTENSIONS(self) -> List[str]:
        """Parse allowed extensions from comma-separated string"""
        return parse_extensions(self.ALLOWED_EXTENSIONS_STR)

    # ==========================================
    # Localization
    # ==========================================
    LOCALES_PATH: str = "localization/locales"
    DEFAULT_LANGUAGES_STR: str = "en,am,or"

    @property
    def DEFAULT_LANGUAGES(self) -> List[str]:
        return parse_csv_list(self.DEFAULT_LANGUAGES_STR)

    # ==========================================
    # Hahu SMS Gateway
    # ==========================================
    HAHU_API_URL: str = "https://hahu.io/api"
    HAHU_API_SECRET: str = ""
    HAHU_API_MODE: str = "devices"
    HAHU_API_DEVICE: str = ""
    HAHU_SIM: int = 2
    HAHU_PRIORITY: int = 1
    HAHU_OTP_EXPIRE_SECONDS: int = 60
    HAHU_OTP_MESSAGE: str = "Your OTP is {{otp}}"
    SMS_TIMEOUT_SECONDS: float = 15.0

    @property
    def HAHU_CONFIGURED(self) -> bool:
        return bool(self.HAHU_API_SECRET and self.HAHU_API_MODE and self.HAHU_API_DEVICE)

    # ==========================================
    # OTP
    # ==========================================
    OTP_LENGTH: int = 6
    OTP_EXPIRE_MINUTES: int = 10
    OTP_MESSAGE_TEMPLATE: str = "Your verification code is {code}"

    # ==========================================
    # Seeding
    # ==========================================
    SEED_ON_STARTUP: bool = True
    INITIAL_ADMIN_PHONE: str = ""
    INITIAL_ADMIN_PASSWORD: str = ""
    INITIAL_ADMIN_USERNAME: str = "admin"

    # ==========================================
    # Logging
    # ==========================================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/app.log"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env that aren't defined in Settings

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._filedata_dir = Path(self.FILEDATA_PATH).resolve()
        self._logo_dir = self._filedata_dir / "upload" / "logo"
        self._locales_dir = Path(self.LOCALES_PATH).resolve()

        # Create directories if they don't exist
        self._filedata_dir.mkdir(exist_ok=True, parents=True)
        self._logo_dir.mkdir(exist_ok=True, parents=True)
        self._locales_dir.mkdir(exist_ok=True, parents=True)
        if self.LOG_FILE:
            Path(self.LOG_FILE).parent.mkdir(exist_ok=True, parents=True)

    @property
    def FILEDATA_DIR(self) -> Path:
        return self._filedata_dir

    @property
    def LOGO_DIR(self) -> Path:
        return self._logo_dir

    @property
    def LOCALES_DIR(self) -> Path:
        return self._locales_dir

    def is_dev_mode(self) -> bool:
        """Check if running in development mode"""
        return self.ENVIRONMENT == "development" or self.DEBUG


# Create settings instance
settings = Settings()
