"""Configuration management using pydantic-settings."""
from typing import Dict, List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    # Origin (live competition backend)
    origin_base_url: str = "http://localhost:8000"
    origin_timeout_seconds: float = 30.0

    # Version of the cache layout; partitions of other versions are pruned
    engine_version: str = "1.0.0"
    cache_prefix: str = "dope"

    # Route policy
    api_prefix: str = "/api/"
    network_only_routes: List[str] = [
        "/api/timer/start",
        "/api/timer/stop",
        "/api/scores/submit",
        "/api/penalties/add",
    ]
    cache_first_routes: List[str] = [
        "/api/competitions",
        "/api/divisions",
        "/api/stages",
        "/api/scoring-rules",
    ]
    network_first_routes: List[str] = [
        "/api/matches/current",
        "/api/scores/live",
        "/api/leaderboard",
        "/api/timer/status",
    ]
    static_extensions: List[str] = [
        ".js", ".css", ".png", ".jpg", ".jpeg", ".svg",
        ".woff", ".woff2", ".mp3", ".wav",
    ]

    # Entry limits per partition kind
    partition_limits: Dict[str, int] = {
        "static": 50,
        "dynamic": 100,
        "api": 200,
    }

    # Assets that must be cached on install
    critical_assets: List[str] = [
        "/",
        "/index.html",
        "/manifest.webmanifest",
        "/src/assets/sounds/beep.mp3",
        "/src/assets/sounds/start-signal.mp3",
        "/src/assets/sounds/stop-signal.mp3",
    ]
    precache_attempts: int = 3

    # Replay endpoints for queued mutations
    score_sync_endpoint: str = "/api/scores/submit"
    timer_sync_endpoint: str = "/api/timer/sync"

    # Offline mutation store
    database_url: str = "sqlite:///./offline_queue.db"

    # Background revalidation
    revalidation_workers: int = 4

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
