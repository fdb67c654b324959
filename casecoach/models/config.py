"""Application configuration models

Validated from config/casecoach.yaml (after ${VAR} substitution) or built
from defaults when no file is given. Provider credentials are read from the
environment separately and never live in the YAML file.
"""

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from casecoach.models.cache import CacheConfig
from casecoach.models.llm import CascadePolicy, CascadeSettings, default_policies

REQUIRED_POLICIES = (
    "evaluate",
    "coach_questions",
    "evaluate_hypothesis",
    "clarify",
    "transcribe",
)

_PLACEHOLDER_KEYS = {"your_api_key", "your-api-key", "changeme", "placeholder", "xxx"}


class ServerSettings(BaseModel):
    """HTTP server and logging settings"""

    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)
    cors_origins: List[str] = Field(default_factory=list)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    json_logs: bool = True
    max_audio_mb: int = Field(default=25, ge=1, le=100)

    @property
    def max_audio_bytes(self) -> int:
        return self.max_audio_mb * 1024 * 1024


class AppConfig(BaseModel):
    """Top-level configuration"""

    model_config = ConfigDict(extra="forbid")

    server: ServerSettings = Field(default_factory=ServerSettings)
    cascade: CascadeSettings = Field(default_factory=CascadeSettings)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    policies: Dict[str, CascadePolicy] = Field(default_factory=default_policies)

    @field_validator("policies", mode="before")
    @classmethod
    def merge_with_defaults(cls, v):
        """Policies given in the file override the built-in ones by name."""
        if v is None:
            return default_policies()
        merged: Dict[str, object] = dict(default_policies())
        for name, policy in v.items():
            if isinstance(policy, dict):
                policy = {"name": name, **policy}
            merged[name] = policy
        return merged

    @field_validator("policies")
    @classmethod
    def require_operation_policies(cls, v: Dict[str, CascadePolicy]):
        missing = [name for name in REQUIRED_POLICIES if name not in v]
        if missing:
            raise ValueError(f"Missing cascade policies: {', '.join(missing)}")
        return v

    def policy(self, name: str) -> CascadePolicy:
        return self.policies[name]


class ProviderCredentials(BaseModel):
    """API keys per provider, None when not configured"""

    groq_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None

    @field_validator("groq_api_key", "gemini_api_key")
    @classmethod
    def blank_or_placeholder_is_missing(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not v or v.lower() in _PLACEHOLDER_KEYS or v.startswith("${"):
            return None
        return v

    def for_provider(self, provider: str) -> Optional[str]:
        return getattr(self, f"{provider}_api_key", None)

    @property
    def configured_providers(self) -> List[str]:
        return [p for p in ("groq", "gemini") if self.for_provider(p)]
