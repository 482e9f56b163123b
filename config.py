from pydantic_settings import BaseSettings
from functools import lru_cache

class Settings(BaseSettings):
    # MongoDB Configuration
    mongo_url: str = "mongodb://localhost:27017"
    db_name: str = "barbershop"

    # Application Configuration
    environment: str = "development"
    locale: str = "en"  # en, es
    log_level: str = "INFO"
    cors_origins: str = "*"  # comma-separated

    # JWT Configuration
    jwt_secret_key: str = "your-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expiration_minutes: int = 60 * 24 * 7  # 7 days

    # Invoicing
    invoice_prefix: str = "FAC"
    utc_offset_hours: int = -5  # Shop local time (Bogota, no DST)

    # Business block printed on receipts
    business_name: str = "The Brothers Barber Shop"
    business_address: str = ""
    business_phone: str = ""
    business_tax_id: str = "NIT: 000000000-0"
    business_email: str = "contact@thebrothers.com"

    def get_business_info(self) -> dict:
        """Business header for printed invoices"""
        return {
            "name": self.business_name,
            "address": self.business_address,
            "phone": self.business_phone,
            "tax_id": self.business_tax_id,
            "email": self.business_email,
        }

    def get_cors_origins(self) -> list:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = False

@lru_cache()
def get_settings():
    return Settings()
