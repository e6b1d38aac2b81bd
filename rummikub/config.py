"""Engine settings, validated with pydantic and loadable from YAML."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal, Union

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator

from .rules import Ruleset


class RulesConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_players: int = Field(2, ge=2)
    max_players: int = Field(4, le=4)
    values: int = Field(13, ge=3, le=13)
    copies_per_tiletype: int = Field(2, ge=1)
    num_jokers: int = Field(2, ge=0)
    initial_hand_size: int = Field(14, ge=1)
    initial_meld_min_points: int = Field(30, ge=0)
    aggressive_after_draws: int = Field(3, ge=1, description="Consecutive bot draws before aggressive play.")
    joker_penalty: int = Field(30, ge=0, description="Penalty for a joker left in hand at game end.")

    @model_validator(mode="after")
    def check_player_bounds(self) -> "RulesConfig":
        if self.min_players > self.max_players:
            raise ValueError("min_players cannot exceed max_players")
        return self

    def to_ruleset(self) -> Ruleset:
        return Ruleset(**self.model_dump())


class EngineSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    turn_time_limit: float = Field(120.0, gt=0, description="Seconds a player has before a forced draw.")
    bot_first_move_delay: float = Field(5.0, ge=0)
    bot_move_delay: float = Field(4.0, ge=0, description="Delay before a bot answers a human.")
    bot_followup_delay: float = Field(3.5, ge=0, description="Delay between consecutive bot turns.")
    default_bot_difficulty: Literal["easy", "medium", "hard"] = "medium"
    chat_history_limit: int = Field(100, ge=1)
    game_log_limit: int = Field(50, ge=1)
    log_level: str = "INFO"
    rules: RulesConfig = Field(default_factory=RulesConfig)


def load_settings(path: Union[str, Path]) -> EngineSettings:
    with open(path, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    return EngineSettings.model_validate(data)


def configure_logging(level: str = "INFO") -> None:
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level.upper(), logging.INFO)),
    )
