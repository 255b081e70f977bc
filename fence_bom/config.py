from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./fence_bom.db"
    APP_NAME: str = "Fence BOM Engine"
    LOG_LEVEL: str = "INFO"

    # Catalog defaults
    DEFAULT_PRODUCT_TYPE: str = "wood-vertical"
    DEFAULT_MATERIAL_LENGTH_FT: float = 8.0   # V2 context fallback for cap/trim/rot board
    DEFAULT_PICKET_WIDTH_IN: float = 5.5      # 1x6 picket actual width

    # V1 vs V2 comparison thresholds
    COMPARE_MATCH_TOLERANCE: float = 0.001
    COMPARE_CLOSE_PCT: float = 1.0

    class Config:
        env_file = ".env"


settings = Settings()
