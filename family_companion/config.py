# family_companion/config.py
from pydantic_settings import BaseSettings
from typing import Optional, List


class Settings(BaseSettings):
    # Server
    server_host: str = "0.0.0.0"
    server_port: int = 8000

    # Database
    database_url: str = "sqlite+aiosqlite:///./data/family_companion.db"
    seed_sample_data: bool = True

    # Redis Configuration with smart defaults
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: Optional[str] = None
    redis_ssl: bool = False
    redis_connection_timeout: int = 5
    redis_socket_timeout: int = 5
    mock_redis: bool = False  # Force the in-memory cache

    # OpenAI - without a key the local keyword responder answers
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o"

    # WebSocket hub
    websocket_path: str = "/ws"
    receive_timeout_seconds: float = 60.0

    # Cached family insights / contact suggestions
    insights_cache_ttl: int = 300

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = "server.log"

    class Config:
        env_file = ".env"

    def validate_config(self) -> List[str]:
        """Return a list of configuration problems, prefixed ERROR or WARNING"""
        issues = []

        if not self.database_url:
            issues.append("ERROR: DATABASE_URL is empty")
        elif not self.database_url.startswith(("sqlite+aiosqlite", "postgresql+asyncpg")):
            issues.append(f"WARNING: database driver may not be async: {self.database_url}")

        if not self.openai_api_key:
            issues.append("WARNING: OPENAI_API_KEY not set - using local keyword responder")

        if not self.websocket_path.startswith("/"):
            issues.append(f"ERROR: WEBSOCKET_PATH must start with '/': {self.websocket_path}")

        if self.receive_timeout_seconds <= 0:
            issues.append("ERROR: RECEIVE_TIMEOUT_SECONDS must be positive")

        return issues

    def get_redis_hosts_to_try(self) -> List[str]:
        """Get list of Redis hosts to try in order of preference"""
        hosts = [self.redis_host]

        if self.redis_host in ["localhost", "127.0.0.1"]:
            try:
                with open('/proc/version', 'r') as f:
                    if 'microsoft' in f.read().lower():
                        # WSL-specific hosts
                        hosts.extend([
                            "127.0.0.1",
                            "localhost",
                            "host.docker.internal",
                            "172.17.0.1"  # Docker bridge
                        ])
            except OSError:
                pass

            if "127.0.0.1" not in hosts:
                hosts.append("127.0.0.1")

        return list(dict.fromkeys(hosts))  # Remove duplicates while preserving order


settings = Settings()
