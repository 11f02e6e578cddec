"""
Engine configuration for DAE.

Defines the auction policies and operational limits.

Precedence (lowest to highest):
    defaults < JSON config file < .env file < process environment
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from dotenv import dotenv_values, find_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from dae.core.auction.policy import (
    AuctionRules,
    LateBidPolicy,
    SettlementPolicy,
    DEFAULT_RULES_VERSION,
    parse_late_bid_policy,
    parse_settlement_policy,
)
from dae.utils.validation import MAX_AMOUNT

ENV_PREFIX = "DAE_"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class EngineConfig:
    """Engine-wide configuration parameters"""

    # Auction policies
    late_bid_policy: LateBidPolicy = LateBidPolicy.CLAMP  # No hard cutoff after the window
    settlement_policy: SettlementPolicy = SettlementPolicy.ACCEPT_OFFER  # Seller keeps the offer
    rules_version: str = DEFAULT_RULES_VERSION

    # Limits
    max_amount: int = MAX_AMOUNT  # Largest accepted bid

    # Logging
    log_level: str = "INFO"
    log_to_file: bool = False
    log_dir: Path = field(default_factory=lambda: Path("logs"))

    def rules(self) -> AuctionRules:
        """Default rules built from the configured policies."""
        return AuctionRules(
            version=self.rules_version,
            late_bid_policy=self.late_bid_policy,
            settlement_policy=self.settlement_policy,
        )

    @property
    def log_level_value(self) -> int:
        return getattr(logging, self.log_level)


class ConfigFile(BaseModel):
    """Schema of a JSON config file. Every key is optional."""

    model_config = ConfigDict(extra="forbid")

    late_bid_policy: Optional[str] = None
    settlement_policy: Optional[str] = None
    rules_version: Optional[str] = Field(default=None, min_length=1)
    max_amount: Optional[int] = Field(default=None, ge=0, le=MAX_AMOUNT)
    log_level: Optional[str] = None
    log_to_file: Optional[bool] = None
    log_dir: Optional[str] = None

    @field_validator("late_bid_policy")
    @classmethod
    def _check_late_bid_policy(cls, v):
        if v is not None:
            parse_late_bid_policy(v)
        return v

    @field_validator("settlement_policy")
    @classmethod
    def _check_settlement_policy(cls, v):
        if v is not None:
            parse_settlement_policy(v)
        return v

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, v):
        if v is not None and v.upper() not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
        return v


def _apply(config: EngineConfig, values: Dict[str, str]) -> None:
    """Apply string/JSON values (already validated or to be parsed here)."""
    if values.get("late_bid_policy") is not None:
        config.late_bid_policy = parse_late_bid_policy(values["late_bid_policy"])
    if values.get("settlement_policy") is not None:
        config.settlement_policy = parse_settlement_policy(values["settlement_policy"])
    if values.get("rules_version"):
        config.rules_version = values["rules_version"]
    if values.get("max_amount") is not None:
        try:
            max_amount = int(values["max_amount"])
        except ValueError:
            raise ValueError(f"max_amount must be an integer, got {values['max_amount']!r}") from None
        if not 0 <= max_amount <= MAX_AMOUNT:
            raise ValueError(f"max_amount out of range: {max_amount}")
        config.max_amount = max_amount
    if values.get("log_level") is not None:
        level = str(values["log_level"]).upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}, got {level!r}")
        config.log_level = level
    if values.get("log_to_file") is not None:
        flag = values["log_to_file"]
        config.log_to_file = flag if isinstance(flag, bool) else str(flag).lower() in ("1", "true", "yes")
    if values.get("log_dir"):
        config.log_dir = Path(values["log_dir"])


def _environment(env_file: Optional[str]) -> Dict[str, str]:
    """DAE_* variables from the .env file, overridden by the real environment."""
    path = env_file if env_file is not None else find_dotenv(usecwd=True)
    merged: Dict[str, str] = {}
    if path:
        merged.update({k: v for k, v in dotenv_values(path).items() if v is not None})
    merged.update(os.environ)

    return {
        key[len(ENV_PREFIX):].lower(): value
        for key, value in merged.items()
        if key.startswith(ENV_PREFIX)
    }


def load_config(config_path: Optional[str] = None, env_file: Optional[str] = None) -> EngineConfig:
    """
    Load configuration from file and environment, on top of defaults.

    Args:
        config_path: Optional path to a JSON config file
        env_file: Optional .env path (default: nearest .env from cwd)

    Returns:
        EngineConfig instance

    Raises:
        FileNotFoundError: config_path does not exist
        ValueError: malformed file or environment value
    """
    result = EngineConfig()

    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")
        try:
            data = json.loads(path.read_text())
            parsed = ConfigFile.model_validate(data)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {path}: {e}") from e
        except ValidationError as e:
            raise ValueError(f"Invalid configuration in {path}: {e}") from e
        _apply(result, parsed.model_dump(exclude_none=True))

    _apply(result, _environment(env_file))
    return result
