from decimal import Decimal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


MAX_UINT256 = 2**256 - 1


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TOURS_",
        env_file=".env",
        extra="ignore",
    )

    PROJECT_NAME: str = "Tour Check-in Rewards API"
    LOG_LEVEL: str = "INFO"

    # Reward amounts are fixed for the lifetime of a service instance
    CREATION_POINTS: int = 10
    CHECK_IN_POINTS: int = 5

    # Initial value only, administrators may change it at runtime
    VOTE_THRESHOLD: int = 3
    MIN_VOTE_STAKE: Decimal = Decimal("1")
    MAX_BALANCE: int = MAX_UINT256

    # Comma separated identities
    ADMINISTRATORS: str = ""

    @field_validator("CREATION_POINTS", "CHECK_IN_POINTS")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("point awards cannot be negative")
        return value

    @field_validator("VOTE_THRESHOLD")
    @classmethod
    def _positive_threshold(cls, value: int) -> int:
        if value < 1:
            raise ValueError("vote threshold must be at least 1")
        return value

    @field_validator("MIN_VOTE_STAKE")
    @classmethod
    def _positive_stake(cls, value: Decimal) -> Decimal:
        if not value.is_finite() or value <= 0:
            raise ValueError("minimum vote stake must be a positive amount")
        return value

    @field_validator("MAX_BALANCE")
    @classmethod
    def _positive_balance_cap(cls, value: int) -> int:
        if value < 1:
            raise ValueError("balance cap must be at least 1")
        return value

    @property
    def administrators(self) -> set[str]:
        return {a.strip() for a in self.ADMINISTRATORS.split(",") if a.strip()}


settings = Settings()
