import os

_ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


class Settings:
    """Application settings loaded from environment variables."""

    # Data
    CUTOFF_DATA_PATH: str = os.getenv("CUTOFF_DATA_PATH", os.path.join(_ROOT_DIR, "csab_cutoffs.csv"))

    # Server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # CORS
    ALLOWED_ORIGINS: list = [
        origin.strip()
        for origin in os.getenv(
            "ALLOWED_ORIGINS",
            "https://www.motivationkaksha.in,https://motivationkaksha.in,http://127.0.0.1:5500",
        ).split(",")
        if origin.strip()
    ]


settings = Settings()
