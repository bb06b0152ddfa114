"""
Configuration management for the Oracle Runner.

Supports configuration via environment variables and .env files. The
configuration is loaded once by the outer caller and passed explicitly
into the workflow; nothing in the core reads the environment.
"""

import re
from typing import Optional

from mnemonic import Mnemonic
from pydantic import Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from oracle_runner.core.result import WaitLevel


DEFAULT_GAS_BUDGET = 10_000_000
DEFAULT_DERIVATION_PATH = "m/44'/784'/0'/0'/0'"

_OBJECT_ID_RE = re.compile(r"^0x[0-9a-fA-F]{1,64}$")


class ConfigurationError(Exception):
    """Raised when credentials or identifiers are missing or malformed."""
    pass


class RunnerConfig(BaseSettings):
    """
    Configuration settings for the Oracle Runner.

    The credentials and package identifiers keep the variable names used by
    the oracle deployment (``ADMIN_PHRASE``, ``FULLNODE``,
    ``MYSTENLABS_ORACLE_PACKAGE_ID``, ``DEMO_APP_PACKAGE_ID``); everything
    else can be overridden with the ``ORACLE_`` prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="ORACLE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Credentials
    admin_phrase: SecretStr = Field(
        validation_alias="ADMIN_PHRASE",
        description="BIP-39 mnemonic of the administrative key"
    )
    fullnode: str = Field(
        validation_alias="FULLNODE",
        description="JSON-RPC URL of the full node"
    )
    derivation_path: str = Field(
        default=DEFAULT_DERIVATION_PATH,
        description="Hardened SLIP-0010 path used to derive the Ed25519 key"
    )

    # On-chain targets
    oracle_package_id: str = Field(
        validation_alias="MYSTENLABS_ORACLE_PACKAGE_ID",
        description="Package id of the oracle"
    )
    demo_app_package_id: str = Field(
        validation_alias="DEMO_APP_PACKAGE_ID",
        description="Package id of the consumer application"
    )
    oracle_module: str = Field(default="mystenlabs_oracle")
    authorize_function: str = Field(default="authorize")
    app_module: str = Field(default="interact")
    interact_function: str = Field(default="interact")

    # Submission settings
    gas_budget: int = Field(
        default=DEFAULT_GAS_BUDGET,
        ge=1,
        lt=1 << 64,
        description="Gas budget attached to the transaction block"
    )
    wait_level: WaitLevel = Field(
        default=WaitLevel.WAIT_FOR_LOCAL_EXECUTION,
        description="Confirmation level to wait for after submission"
    )
    show_object_changes: bool = Field(default=True)
    show_effects: bool = Field(default=True)

    # Network timing
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for a single JSON-RPC request"
    )
    confirmation_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Maximum time to wait for local execution"
    )
    poll_interval_seconds: float = Field(
        default=1.0,
        gt=0,
        description="Delay between execution status polls"
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format"
    )

    @field_validator("admin_phrase")
    @classmethod
    def _check_phrase(cls, value: SecretStr) -> SecretStr:
        phrase = " ".join(value.get_secret_value().split())
        if not phrase:
            raise ValueError("admin phrase is empty")
        if not Mnemonic("english").check(phrase):
            raise ValueError("admin phrase is not a valid BIP-39 mnemonic")
        return SecretStr(phrase)

    @field_validator("fullnode")
    @classmethod
    def _check_fullnode(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError("fullnode must be an http(s) URL")
        return value

    @field_validator("oracle_package_id", "demo_app_package_id")
    @classmethod
    def _check_package_id(cls, value: str) -> str:
        value = value.strip()
        if not _OBJECT_ID_RE.match(value):
            raise ValueError(f"not a hex object id: {value!r}")
        return value

    @field_validator("derivation_path")
    @classmethod
    def _check_path(cls, value: str) -> str:
        parts = value.split("/")
        if parts[0] != "m" or len(parts) < 2:
            raise ValueError("derivation path must start with 'm/'")
        for part in parts[1:]:
            if not part.endswith("'") or not part[:-1].isdigit():
                raise ValueError("Ed25519 derivation supports hardened segments only")
        return value

    @property
    def authorize_target(self) -> str:
        """Fully qualified target of the oracle's authorize entry point."""
        return f"{self.oracle_package_id}::{self.oracle_module}::{self.authorize_function}"

    @property
    def interact_target(self) -> str:
        """Fully qualified target of the application's interact entry point."""
        return f"{self.demo_app_package_id}::{self.app_module}::{self.interact_function}"


def load_config(env_file: Optional[str] = ".env", **overrides) -> RunnerConfig:
    """
    Load configuration from the environment and an optional .env file.

    Args:
        env_file: Path of the .env file to read (None to skip)
        **overrides: Explicit values taking precedence over the environment

    Returns:
        Validated configuration

    Raises:
        ConfigurationError: If a value is missing or malformed
    """
    overrides = {k: v for k, v in overrides.items() if v is not None}
    try:
        return RunnerConfig(_env_file=env_file, **overrides)
    except ValidationError as e:
        problems = []
        for error in e.errors():
            location = ".".join(str(part) for part in error["loc"]) or "config"
            problems.append(f"{location}: {error['msg']}")
        raise ConfigurationError("Invalid configuration: " + "; ".join(problems)) from e
