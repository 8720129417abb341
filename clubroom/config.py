"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import List, Tuple

import yaml
from pydantic import BaseModel, Field, field_validator

from .domain.models import DEFAULT_RULES, TIME_OPTIONS, AvailabilityRule, Role


class SyncConfig(BaseModel):
    """Settings for talking to the remote document store."""
    timeout_seconds: float = 15.0
    settle_delay_seconds: float = 1.0

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        """Ensure requests can actually complete."""
        if value <= 0:
            raise ValueError("timeout_seconds must be greater than zero")
        return value

    @field_validator("settle_delay_seconds")
    @classmethod
    def validate_settle_delay(cls, value: float) -> float:
        if value < 0:
            raise ValueError("settle_delay_seconds must not be negative")
        return value


class RuleConfig(BaseModel):
    """Weekly rule as written in the config file."""
    day_of_week: int  # 0=Sunday, 6=Saturday
    slots: List[str] = Field(default_factory=list)

    @field_validator("day_of_week")
    @classmethod
    def validate_day(cls, v: int) -> int:
        """Validate weekday is between 0 and 6."""
        if not 0 <= v <= 6:
            raise ValueError(f"day_of_week must be between 0 and 6, got {v}")
        return v

    def to_rule(self) -> AvailabilityRule:
        return AvailabilityRule(day_of_week=self.day_of_week, slots=tuple(sorted(self.slots)))


def _default_rule_configs() -> List[RuleConfig]:
    return [
        RuleConfig(day_of_week=rule.day_of_week, slots=list(rule.slots))
        for rule in DEFAULT_RULES
    ]


class AppConfig(BaseModel):
    """Application configuration."""
    endpoint_url: str = ""
    sync: SyncConfig = Field(default_factory=SyncConfig)
    default_role: Role = Role.MEMBER
    timezone: str = "Asia/Tokyo"
    local_store_path: Path = Path("clubroom_data.json")
    time_options: List[str] = Field(default_factory=lambda: list(TIME_OPTIONS))
    default_rules: List[RuleConfig] = Field(default_factory=_default_rule_configs)

    @field_validator("endpoint_url")
    @classmethod
    def validate_endpoint_url(cls, value: str) -> str:
        """Only http(s) endpoints are supported; empty means local storage."""
        value = value.strip()
        if value and not value.startswith(("http://", "https://")):
            raise ValueError(f"endpoint_url must be an http(s) URL, got '{value}'")
        return value

    @field_validator("default_rules")
    @classmethod
    def validate_default_rules(cls, value: List[RuleConfig]) -> List[RuleConfig]:
        """Ensure there is at most one rule per weekday."""
        seen: set[int] = set()
        for rule in value:
            if rule.day_of_week in seen:
                raise ValueError(f"Duplicate rule for day_of_week {rule.day_of_week}")
            seen.add(rule.day_of_week)
        return value

    @property
    def uses_remote(self) -> bool:
        return bool(self.endpoint_url)

    def initial_rules(self) -> Tuple[AvailabilityRule, ...]:
        """Weekly rules used before the first successful fetch."""
        return tuple(rule.to_rule() for rule in self.default_rules)

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        return cls(**data)


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of clubroom/)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
