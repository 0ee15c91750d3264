from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # SQLite works for local development; production points at PostgreSQL
    database_url: str = "sqlite:///./vault.db"

    # Signs the stateless bearer tokens. Rotating it logs everyone out.
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    jwt_expires_minutes: int = 60 * 24 * 7

    # Fernet key used to encrypt passport numbers at rest
    encryption_key: str

    # bcrypt work factor; each +1 doubles the hashing time
    bcrypt_rounds: int = 12

    # AviationStack — get a key at https://aviationstack.com
    # Leave empty to disable flight auto-fill (lookups report not found)
    aviationstack_api_key: str = ""
    aviationstack_base_url: str = "http://api.aviationstack.com/v1"
    aviationstack_timeout: float = 10.0

    # When true, TEST123 / DEMO456 resolve to sample flights after a live
    # lookup misses. Keep off outside demos.
    flight_lookup_demo_mode: bool = False

    cors_origins: list[str] = ["http://localhost:5173"]
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
