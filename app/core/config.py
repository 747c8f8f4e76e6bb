from os import getenv
from dotenv import load_dotenv

load_dotenv()

class Config:

    ALLOWED_ORIGINS: list = getenv("ALLOWED_ORIGINS", "http://localhost:5173").split(",")


    POSTGRES_USER: str = getenv("POSTGRES_USER")
    POSTGRES_PASSWORD: str = getenv("POSTGRES_PASSWORD")
    POSTGRES_DB: str = getenv("POSTGRES_DB")
    POSTGRES_PORT: str = getenv("POSTGRES_PORT", "5432")

    @property
    def DATABASE_URL(self) -> str:
        return getenv(
            "DATABASE_URL",
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@db:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    # S3-хранилище (файлы документов и тендерных предложений)
    S3_ENDPOINT_URL: str = getenv("S3_ENDPOINT_URL")
    S3_BUCKET_NAME: str = getenv("S3_BUCKET_NAME")
    S3_REGION: str = getenv("S3_REGION")
    S3_ACCESS_KEY: str = getenv("S3_ACCESS_KEY")
    S3_SECRET_KEY: str = getenv("S3_SECRET_KEY")

    # Telegram-уведомления
    TELEGRAM_BOT_TOKEN: str = getenv("TELEGRAM_BOT_TOKEN")
    TELEGRAM_CHAT_ID: str = getenv("TELEGRAM_CHAT_ID")

    # Standstill после присуждения, календарные дни
    STANDSTILL_PERIOD_DAYS: int = int(getenv("STANDSTILL_PERIOD_DAYS", "10"))

    # Версии документов
    VERSION_READ_FAILURE_MODE: str = getenv("VERSION_READ_FAILURE_MODE", "degrade")
    VERSION_WRITE_RETRIES: int = int(getenv("VERSION_WRITE_RETRIES", "3"))

    # 0 = sweep only runs from the tender listing
    EXPIRY_SWEEP_INTERVAL_SECONDS: int = int(getenv("EXPIRY_SWEEP_INTERVAL_SECONDS", "0"))

    # Напоминания о сроке подачи: за сколько календарных дней, через запятую
    DEADLINE_REMINDER_DAYS: list = [int(d) for d in getenv("DEADLINE_REMINDER_DAYS", "3,1").split(",") if d.strip()]
    DEADLINE_REMINDER_INTERVAL_SECONDS: int = int(getenv("DEADLINE_REMINDER_INTERVAL_SECONDS", "0"))

    # Порт приложения
    APP_PORT: int = int(getenv("APP_PORT", "8000"))

    def validate(self) -> None:
        """Проверяет наличие обязательных переменных окружения."""
        required_vars = {
            "S3_BUCKET_NAME": self.S3_BUCKET_NAME,
        }
        missing_vars = [key for key, value in required_vars.items() if not value]
        if missing_vars:
            raise ValueError(f"Missing required environment variables: {', '.join(missing_vars)}")
        if self.VERSION_READ_FAILURE_MODE not in ("degrade", "propagate"):
            raise ValueError(
                f"VERSION_READ_FAILURE_MODE must be 'degrade' or 'propagate', got {self.VERSION_READ_FAILURE_MODE!r}"
            )
        if self.STANDSTILL_PERIOD_DAYS < 0:
            raise ValueError("STANDSTILL_PERIOD_DAYS must not be negative")
        if any(days < 0 for days in self.DEADLINE_REMINDER_DAYS):
            raise ValueError("DEADLINE_REMINDER_DAYS must not contain negative values")

settings = Config()
settings.validate()
