import os
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    APP_NAME: str = "Farcaster Box Backend"
    ENV: str = Field(default="prod", description="dev | prod")
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "https://farcaster-box-frontend.vercel.app",
        "https://farcaster-box-frame.vercel.app",
    ]

    # Neynar (Farcaster profiles)
    NEYNAR_API_KEY: Optional[str] = None
    NEYNAR_BASE_URL: str = "https://api.neynar.com/v2/farcaster"

    # Replicate (box character generation)
    REPLICATE_API_TOKEN: Optional[str] = None
    REPLICATE_I2I_MODEL: Optional[str] = None
    REPLICATE_PROMPT: str = (
        "cute 3d box character, cardboard body, toy figure, studio lighting, "
        "based on the person in the image"
    )
    REPLICATE_STRENGTH: float = 0.65

    # Pinata (IPFS)
    PINATA_API_KEY: Optional[str] = None
    PINATA_SECRET_KEY: Optional[str] = None
    PINATA_BASE_URL: str = "https://api.pinata.cloud"

    # thirdweb Engine (minting)
    ENGINE_URL: Optional[str] = None
    ENGINE_ACCESS_TOKEN: Optional[str] = None
    ENGINE_BACKEND_WALLET: Optional[str] = None
    NFT_CHAIN: str = "base"
    NFT_CONTRACT_ADDRESS: Optional[str] = None

    # HTTP
    HTTP_TIMEOUT_SEC: float = 60.0
    GENERATION_TIMEOUT_SEC: float = 300.0

    # Jobs
    JOB_TTL_SECONDS: int = 0  # 0 = keep records until consumed
    JOB_SWEEP_INTERVAL_SECONDS: int = 60

    model_config = SettingsConfigDict(
        env_file=None if os.getenv("DISABLE_DOTENV") == "1" else ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()
