"""Startup configuration: key bindings, timing and paths.

Read once from ``reqdeck.toml`` and never written back. The lookup order is
``$REQDECK_CONFIG/reqdeck.toml``, then the platform config directory, then the
built-in defaults. User key tables are merged over the default bindings.
"""

from __future__ import annotations

import logging
import os
import tomllib
from enum import Enum
from pathlib import Path
from typing import Dict, Optional

from platformdirs import user_config_dir, user_data_dir, user_log_dir
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

APP_NAME = "reqdeck"
CONFIG_FILE = "reqdeck.toml"
CONFIG_ENV_VAR = "REQDECK_CONFIG"
COLLECTIONS_ENV_VAR = "REQDECK_COLLECTIONS"


class Action(str, Enum):
    QUIT = "quit"
    MOVE_UP = "move_up"
    MOVE_DOWN = "move_down"
    SELECT = "select"
    BACK = "back"
    CREATE_COLLECTION = "create_collection"
    DELETE_COLLECTION = "delete_collection"
    CREATE_REQUEST = "create_request"
    CREATE_DIRECTORY = "create_directory"
    RENAME_DIRECTORY = "rename_directory"
    DELETE_ITEM = "delete_item"
    CYCLE_METHOD = "cycle_method"
    SEND_REQUEST = "send_request"
    EDIT_REQUEST = "edit_request"
    EDIT_HEADERS = "edit_headers"
    EDIT_BODY = "edit_body"
    NEXT_RESPONSE_TAB = "next_response_tab"
    EDIT_COLLECTION = "edit_collection"


DEFAULT_KEYS: Dict[str, Action] = {
    "q": Action.QUIT,
    "ctrl+c": Action.QUIT,
    "k": Action.MOVE_UP,
    "up": Action.MOVE_UP,
    "j": Action.MOVE_DOWN,
    "down": Action.MOVE_DOWN,
    "enter": Action.SELECT,
    "esc": Action.BACK,
    "n": Action.CREATE_COLLECTION,
    "d": Action.DELETE_COLLECTION,
    "r": Action.CREATE_REQUEST,
    "f": Action.CREATE_DIRECTORY,
    "e": Action.RENAME_DIRECTORY,
    "x": Action.DELETE_ITEM,
    "m": Action.CYCLE_METHOD,
    "s": Action.SEND_REQUEST,
    "i": Action.EDIT_REQUEST,
    "h": Action.EDIT_HEADERS,
    "b": Action.EDIT_BODY,
    "tab": Action.NEXT_RESPONSE_TAB,
    "c": Action.EDIT_COLLECTION,
}


def default_collections_dir() -> Path:
    return Path(user_data_dir(APP_NAME, appauthor=False)) / "collections"


def default_log_file() -> Path:
    return Path(user_log_dir(APP_NAME, appauthor=False)) / f"{APP_NAME}.log"


class Config(BaseModel):
    keys: Dict[str, Action] = Field(default_factory=lambda: dict(DEFAULT_KEYS))
    tick_rate: float = Field(default=30.0, gt=0)
    frame_rate: float = Field(default=60.0, gt=0)
    collections_dir: Path = Field(default_factory=default_collections_dir)
    dry_run: bool = False
    request_timeout: float = Field(default=30.0, gt=0)
    log_level: str = "INFO"
    log_file: Path = Field(default_factory=default_log_file)

    def action_for(self, chord: str) -> Optional[Action]:
        return self.keys.get(chord)


def get_config_path() -> Optional[Path]:
    env_dir = os.environ.get(CONFIG_ENV_VAR)
    if env_dir:
        logger.debug("loading config from $%s: %s", CONFIG_ENV_VAR, env_dir)
        return Path(env_dir) / CONFIG_FILE
    path = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILE
    if path.exists():
        return path
    return None


def load_config(path: Optional[Path] = None) -> Config:
    path = path or get_config_path()
    data: dict = {}
    if path is not None:
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as ex:
            logger.warning("ignoring config file %s: %s", path, ex)
            data = {}

    keys = dict(DEFAULT_KEYS)
    keys.update(data.pop("keys", {}) or {})
    data["keys"] = keys

    env_collections = os.environ.get(COLLECTIONS_ENV_VAR)
    if env_collections:
        data["collections_dir"] = env_collections

    try:
        return Config.model_validate(data)
    except ValidationError as ex:
        logger.warning("invalid config, falling back to defaults: %s", ex)
        return Config()
