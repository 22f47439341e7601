"""
应用配置
从环境变量 / .env 读取配置
"""
from decimal import Decimal
from pydantic import ConfigDict, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """应用设置"""

    # 应用基础配置
    APP_NAME: str = "HotelOps"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # 操作人 (recorded when a command names nobody)
    DEFAULT_OPERATOR: str = "Current User"

    # 定价
    TAX_RATE: Decimal = Decimal("0.12")

    # 预订状态机: False restores the permissive legacy behaviour
    STRICT_BOOKING_TRANSITIONS: bool = True

    # 事件总线
    EVENT_DISPATCH_MODE: str = "sync"
    EVENT_HISTORY_SIZE: int = 100

    # 模拟支付网关
    PAYMENT_SUCCESS_RATE: float = 0.95

    # 启动时加载演示数据
    SEED_DEMO_DATA: bool = True

    model_config = ConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    @field_validator("EVENT_DISPATCH_MODE")
    @classmethod
    def validate_dispatch_mode(cls, v: str) -> str:
        if v not in ("sync", "deferred"):
            raise ValueError(f"EVENT_DISPATCH_MODE must be 'sync' or 'deferred', got {v!r}")
        return v

    @field_validator("PAYMENT_SUCCESS_RATE")
    @classmethod
    def validate_success_rate(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("PAYMENT_SUCCESS_RATE must be between 0 and 1")
        return v


# 全局设置实例
settings = Settings()
