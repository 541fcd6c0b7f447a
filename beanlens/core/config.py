from typing import List, Set

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    APP_NAME: str = "BeanLens API"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Root directory served by the workspace-backed search/document capabilities
    WORKSPACE_ROOT: str = "."
    SOURCE_FILE_SUFFIX: str = ".java"
    IGNORED_DIRECTORIES: Set[str] = {".git", "node_modules", "target", "build", "out"}

    # Edits arriving within this window are coalesced into one scan
    SCAN_DEBOUNCE_MS: int = 500

    # Usage filter heuristics
    SELF_REFERENCE_WINDOW: int = 2
    USAGE_CONTEXT_LINES: int = 2
    HEADER_SCAN_LINES: int = 30

    # External bean resolution
    REFERENCE_CANDIDATE_LIMIT: int = 50
    FACTORY_WINDOW_LINES: int = 5
    CONFIG_FILE_GLOB: str = "**/*{Config,Configuration,Application}.java"
    CONFIG_FILE_EXCLUDE: str = "**/node_modules/**"
    CONFIG_FILE_LIMIT: int = 10

    # Constructor parameters of these types are never reported as injections
    BUILTIN_TYPES: Set[str] = {
        'byte', 'short', 'int', 'long', 'float', 'double', 'boolean', 'char',
        'String', 'Object', 'Integer', 'Long', 'Double', 'Float', 'Boolean',
        'Character', 'Byte', 'Short', 'BigDecimal', 'BigInteger',
    }

    ALLOW_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding='utf-8')

settings = Settings()
