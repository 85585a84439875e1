# -----------------------------------------------------------------------------
# Copyright (c) 2025 Storage Metrics (scaleoutSean@Github)
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

from pathlib import Path
from typing import List, Literal, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field, field_validator
from dotenv import load_dotenv
import yaml
import os
import logging

from storage_metrics.session import (
    TLS_VALIDATION_MODES, BearerTokenSession, CookieSession, Credentials, SessionClient, TokenHeaderSession
)

logger = logging.getLogger(__name__)

# Ensure .env from parent directory is loaded for local CLI runs
load_dotenv(dotenv_path=Path(__file__).parent.parent / ".env")

SESSION_CLASSES = {
    'token_header': TokenHeaderSession,
    'cookie': CookieSession,
    'bearer': BearerTokenSession,
}


def _check_tls_validation(value: str) -> str:
    value = (value or 'strict').lower()
    if value not in TLS_VALIDATION_MODES:
        raise ValueError(f"tls_validation must be one of {TLS_VALIDATION_MODES}, got '{value}'")
    return value


class ArrayConfig(BaseModel):
    """One array to poll and how to authenticate against it."""
    name: str
    endpoint: str
    auth: Literal['token_header', 'cookie', 'bearer'] = 'bearer'
    vendor: Optional[str] = None
    username: str = "admin"
    password: Optional[str] = Field(default=None, repr=False)
    token: Optional[str] = Field(default=None, repr=False)
    certificate: Optional[str] = None
    region: Optional[str] = None

    def credentials(self) -> Credentials:
        return Credentials(
            username=self.username,
            password=self.password,
            token=self.token,
            certificate=self.certificate,
        )

    def tags(self) -> dict:
        """Tags identifying this array on every point polled from it."""
        tags = {'array': self.name}
        if self.vendor:
            tags['vendor'] = self.vendor
        if self.region:
            tags['region'] = self.region
        return tags


class FileConfig(BaseSettings):
    # Logging
    log_level: Optional[str] = "INFO"
    log_file: Optional[str] = None

    # TLS settings
    tls_ca: Optional[str] = None
    tls_validation: Optional[str] = "strict"

    # HTTP settings
    request_timeout: Optional[float] = 30.0

    arrays: List[ArrayConfig] = Field(default_factory=list)

    model_config = SettingsConfigDict(extra='ignore')

    @field_validator('tls_validation')
    @classmethod
    def validate_tls_validation(cls, value):
        return _check_tls_validation(value)


class EnvConfig(BaseSettings):
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: Optional[str] = Field(default=None)

    TLS_CA: Optional[str] = Field(default=None)
    TLS_VALIDATION: str = Field(default="strict")

    REQUEST_TIMEOUT: float = Field(default=30.0)

    # JSON list of array objects, e.g. ARRAYS='[{"name": "vnx1", "endpoint": "10.0.0.1", "auth": "cookie"}]'
    ARRAYS: List[ArrayConfig] = Field(default_factory=list)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra='ignore',  # Ignore extra fields in .env that aren't defined in the model
    )

    @field_validator('TLS_VALIDATION')
    @classmethod
    def validate_tls_validation(cls, value):
        return _check_tls_validation(value)


class Settings:
    def __init__(self, config_file: Optional[str] = None, from_env: bool = False):
        self.from_env = from_env

        if from_env:
            logger.debug("Loading configuration from environment variables")
            self._env_config = EnvConfig()

            self.log_level = self._env_config.LOG_LEVEL
            self.log_file = self._env_config.LOG_FILE
            self.tls_ca = self._env_config.TLS_CA
            self.tls_validation = self._env_config.TLS_VALIDATION
            self.request_timeout = self._env_config.REQUEST_TIMEOUT
            self.arrays = self._env_config.ARRAYS

        else:
            # Load from YAML file
            logger.debug(f"Loading configuration from file: {config_file}")
            data = {}
            if config_file:
                if os.path.exists(config_file):
                    with open(config_file, 'r') as f:
                        data = yaml.safe_load(f) or {}
                else:
                    logger.warning(f"Configuration file {config_file} not found, using defaults")
            self._file_config = FileConfig(**data)

            self.log_level = self._file_config.log_level
            self.log_file = self._file_config.log_file
            self.tls_ca = self._file_config.tls_ca
            self.tls_validation = self._file_config.tls_validation
            self.request_timeout = self._file_config.request_timeout
            self.arrays = self._file_config.arrays

    def get_array(self, name: str) -> ArrayConfig:
        for array in self.arrays:
            if array.name == name:
                return array
        raise KeyError(f"No array named '{name}' in configuration")

    def open_session(self, array: ArrayConfig, **kwargs) -> SessionClient:
        """Log in to `array` with its auth style and the global TLS settings."""
        session_class = SESSION_CLASSES[array.auth]
        logger.info(f"[open_session] Connecting to {array.name} ({array.endpoint}) using {session_class.__name__}")
        return session_class(
            array.endpoint,
            array.credentials(),
            tls_validation=self.tls_validation,
            tls_ca=self.tls_ca,
            timeout=self.request_timeout,
            **kwargs,
        )
