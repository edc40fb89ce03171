from typing import List, Optional
from urllib.parse import quote_plus

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class CoinPackage(BaseModel):
    """충전 패키지 (price 는 분 단위)"""

    id: str
    coins: int
    bonus: int = 0
    price: int

    @property
    def total_coins(self) -> int:
        return self.coins + self.bonus


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file="ledgerapi/.env",
        env_file_encoding="utf-8",
        extra="allow",
    )
    # Application
    APP_NAME: str = "Coin Ledger API"
    PROJECT_NAME: str = "Coin Ledger API"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USERNAME: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DATABASE: str = "postgres"
    POSTGRES_SCHEMA: str = "public"

    # Full URL override (e.g. sqlite for local runs)
    DATABASE_URL: Optional[str] = None
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    @property
    def database_url(self) -> str:
        """Construct database URL from individual components"""

        if self.DATABASE_URL:
            return self.DATABASE_URL

        # URL encode the password to handle special characters
        encoded_password = quote_plus(self.POSTGRES_PASSWORD)
        return f"postgresql+psycopg2://{self.POSTGRES_USERNAME}:{encoded_password}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DATABASE}"

    # Security (tokens are issued upstream; admin calls carry a shared token)
    ADMIN_TOKEN: str = ""

    # Business Rules
    COIN_PACKAGES: List[CoinPackage] = [
        CoinPackage(id="coins_100", coins=100, bonus=0, price=1000),
        CoinPackage(id="coins_500", coins=500, bonus=50, price=5000),
        CoinPackage(id="coins_1000", coins=1000, bonus=150, price=10000),
    ]
    REFERRAL_REWARD_INVITER: int = 50  # 초대한 사용자 보상 코인
    REFERRAL_REWARD_INVITEE: int = 10  # 신규 가입자 보상 코인

    # Commission
    COMMISSION_MAX_LEVELS: int = 3  # 주문 1건당 수수료를 받는 최대 단계
    DEFAULT_COMMISSION_RATE: int = 1000  # basis points (1000 = 10%)
    AGENT_CODE_PREFIX: str = "A"
    AGENT_CODE_LENGTH: int = 8

    # Timezone (월별 실적 집계 기준)
    TIMEZONE: str = "Asia/Shanghai"


settings = Settings()
