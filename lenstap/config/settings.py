"""
Pydantic settings for lenstap
"""

from typing import List, Optional
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_CAMERA_PACKAGES = [
    "com.google.android.GoogleCamera",
    "com.android.camera",
    "com.android.camera2",
    "com.samsung.android.camera",
    "com.oneplus.camera",
    "com.motorola.cameraone",
    "com.sonyericsson.android.camera",
    "org.codeaurora.snapcam",
]


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Application settings
    app_name: str = Field(default="lenstap", description="Application name")
    environment: str = Field(default="development", description="Environment (development, testing, production)")
    debug: bool = Field(default=False, description="Debug mode")

    # Preference store settings
    preferences_path: str = Field(default="./lenstap_prefs.json", description="JSON preference file path")
    clamp_sensitivity: bool = Field(default=True, description="Clamp vibration sensitivity into [0, 100] when reading preferences")

    # Foreground gate settings
    camera_packages: List[str] = Field(
        default_factory=lambda: list(DEFAULT_CAMERA_PACKAGES),
        description="Package names treated as camera applications"
    )

    # Simulation settings
    simulation_seed: int = Field(default=42, description="Seed for the simulated sensor source")
    simulation_sample_rate_hz: float = Field(default=50.0, description="Accelerometer rate of the simulated sensor source")

    # Logging settings
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format"
    )
    log_file: Optional[str] = Field(default=None, description="Log file path")
    log_max_size: int = Field(default=10485760, description="Max log file size in bytes (10MB)")
    log_backup_count: int = Field(default=5, description="Number of log backup files")

    model_config = SettingsConfigDict(
        env_prefix="LENSTAP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment setting."""
        allowed_environments = ["development", "testing", "production"]
        if v not in allowed_environments:
            raise ValueError(f"Environment must be one of: {allowed_environments}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level setting."""
        allowed_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed_levels:
            raise ValueError(f"Log level must be one of: {allowed_levels}")
        return v.upper()

    @field_validator("simulation_sample_rate_hz")
    @classmethod
    def validate_sample_rate(cls, v):
        """Validate simulated sample rate."""
        if not 1.0 <= v <= 1000.0:
            raise ValueError("Simulation sample rate must be between 1 and 1000 Hz")
        return v

    @field_validator("camera_packages")
    @classmethod
    def validate_camera_packages(cls, v):
        """Strip blanks from the camera package list."""
        packages = [p.strip() for p in v if p and p.strip()]
        if not packages:
            raise ValueError("At least one camera package must be configured")
        return packages

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == "testing"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def get_test_settings() -> Settings:
    """Get settings for testing."""
    return Settings(
        environment="testing",
        debug=True,
        preferences_path=":memory:",
        log_level="DEBUG"
    )


def load_settings_from_file(file_path: str) -> Settings:
    """Load settings from a specific file."""
    return Settings(_env_file=file_path)


def validate_settings(settings: Settings) -> List[str]:
    """Validate settings and return list of issues."""
    issues = []

    if settings.is_production and settings.debug:
        issues.append("Debug mode should be disabled in production")

    if settings.preferences_path == ":memory:" and not settings.is_testing:
        issues.append("In-memory preferences are only meant for the testing environment")

    return issues
