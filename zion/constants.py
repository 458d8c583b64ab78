from enum import Enum

DEFAULT_COMMAND_PREFIX: str = "/"

DEFAULT_DATABASE_PATH: str = "data/zion.db"

USER_AGENT: str = "ZION-Chatbot/1.0.0"


class MessageRole(str, Enum):
    """Roles a stored chat message can carry."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ConfigKey(str, Enum):
    """Environment variables understood by the configuration loader."""

    COMMAND_PREFIX = "ZION_COMMAND_PREFIX"
    DATABASE_PATH = "ZION_DATABASE_PATH"
    LOG_LEVEL = "ZION_LOG_LEVEL"
    LOG_FILE = "ZION_LOG_FILE"
    MAX_RETRIES = "ZION_MAX_RETRIES"
