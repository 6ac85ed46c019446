from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    PROJECT_NAME: str = "Test Tracker"
    API_V1_STR: str = "/api/v1"
    BACKEND_CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # Spreadsheet storage
    DATA_DIR: str = "./data"
    TEST_CASES_FILE: str = "test_cases.xlsx"
    TEST_STATUS_FILE: str = "test_status.xlsx"
    RESULTS_DIR: str = "./data/results"

    # HTTP client
    API_BASE_URL: str = "http://localhost:8000/api/v1"
    API_TIMEOUT: float = 30.0
    API_MAX_RETRIES: int = 2

    # Field updates
    DEBOUNCE_MS: int = 1000
    WRITE_TIMEOUT_SECONDS: float = 30.0

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/app.log"

    DEFAULT_USER: str = "Unknown"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding='utf-8', case_sensitive=True, extra='ignore')

settings = Settings()
