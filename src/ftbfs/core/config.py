"""Application configuration and runtime state."""

from __future__ import annotations

import os
import re
from datetime import datetime
from pathlib import Path
from typing import Any

import platformdirs
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from ftbfs.core.base import BaseConfig, BaseState
from ftbfs.core.log import Logger
from ftbfs.core.yaml_settings import YamlWithIncludesSettingsSource

# Modules reachable from {name.attr} templates in YAML values,
# e.g. {platformdirs.user_state_dir} or {os.getcwd}
TEMPLATE_NAMESPACE = {
    'os': os,
    'platformdirs': platformdirs,
    'Path': Path,
}


# ============================================================
# CONFIG MODELS (loaded from YAML/env/CLI)
# ============================================================

class TeamsConfig(BaseConfig):
    """Where the team to packages mapping lives."""

    mapping_url: str = Field(
        description="URL of the JSON document mapping team -> packages"
    )
    timeout: float = Field(
        default=30.0,
        description="HTTP timeout in seconds for fetching the mapping",
    )


class ContainerConfig(BaseConfig):
    """Ephemeral build container settings."""

    prefix: str = Field(
        default="ftbfs",
        description="Container names are <prefix>-<run_name>",
    )
    image_remote: str = Field(
        default="ubuntu-daily",
        description="Image remote; the image is <image_remote>:<release>",
    )
    base_snapshot: str = Field(
        default="base",
        description="Label of the snapshot taken after provisioning",
    )
    network_attempts: int = Field(
        default=60,
        description="Network reachability probes before giving up",
    )
    network_interval: float = Field(
        default=1.0,
        description="Seconds to sleep between network probes",
    )
    workdir: str = Field(
        default="/root/build",
        description="Directory inside the container where sources unpack",
    )


class RebuildConfig(BaseConfig):
    """Package build settings."""

    timeout: int = Field(
        default=900,
        description="Wall-clock limit for one package build in seconds",
    )
    grace: int = Field(
        default=60,
        description=(
            "Extra seconds the host waits past the in-container timeout "
            "before killing the exec itself"
        ),
    )
    tooling: list[str] = Field(
        default_factory=lambda: [
            "build-essential", "devscripts", "ubuntu-dev-tools",
        ],
        description="Packages installed once into the base snapshot",
    )


class DistroConfig(BaseConfig):
    """Distribution metadata lookup."""

    supported_command: str = Field(
        default="ubuntu-distro-info --supported",
        description="Prints the supported release names, one per line",
    )


class Config(BaseConfig):
    """All configuration sections.

    Building a Config installs the global logger, so anything that
    loads settings gets logging configured as a side effect.
    """

    logger: Logger = Field(
        default=None,
        description="Logger configuration and runtime instance",
    )
    teams: TeamsConfig = Field(description="Team mapping lookup")
    container: ContainerConfig = Field(default_factory=ContainerConfig)
    rebuild: RebuildConfig = Field(default_factory=RebuildConfig)
    distro: DistroConfig = Field(default_factory=DistroConfig)

    log_root: Path = Field(
        default=Path("logs"),
        description="Directory holding one subdirectory per rebuild run",
    )
    run_name: str = Field(
        default_factory=lambda: datetime.now().strftime('%Y%m%d-%H%M%S'),
        description="Name of this run; defaults to the start timestamp",
    )

    commands: dict[str, dict[str, str]] = Field(
        default_factory=dict,
        description=(
            "Command templates by category (lxc, build). Runtime fields "
            "such as {container} are filled when the command runs"
        ),
    )

    @property
    def container_name(self) -> str:
        return f"{self.container.prefix}-{self.run_name}"

    @model_validator(mode='after')
    def _setup_logger(self) -> 'Config':
        from ftbfs.core.log import setup_logger

        if self.logger is None:
            self.logger = Logger()

        setup_logger(
            log_root=self.log_root,
            run_name=self.run_name,
            level=self.logger.level,
            console=self.logger.console,
            file=self.logger.file,
            logfire=self.logger.logfire,
        )
        return self

    def close(self):
        from ftbfs.core.log import logger
        logger.close()
        super().close()


# ============================================================
# RUNTIME STATE MODELS (mutable during workflow execution)
# ============================================================

class RebuildState(BaseState):
    """State of one rebuild run."""

    release: str = Field(default="", description="Target release")
    packages: list[str] = Field(
        default_factory=list, description="Source packages, in order"
    )
    container: Any = Field(
        default=None, description="Open Container session"
    )
    log_dir: Any = Field(
        default=None, description="RunLogDir for this run's artifacts"
    )
    results: list = Field(
        default_factory=list, description="PackageResult per finished package"
    )
    status: str = Field(
        default="pending",
        description="pending, provisioning, building, complete",
    )

    model_config = ConfigDict(arbitrary_types_allowed=True)


class Runtime(BaseModel):
    """Runtime state grouped by command."""

    rebuild: RebuildState = Field(default_factory=RebuildState)


# ============================================================
# STATE (config + runtime combined)
# ============================================================

class State(BaseSettings):
    """Configuration plus runtime state; the object every workflow
    node receives.

    Loaded from init arguments, FTBFS_ environment variables, .env
    and YAML (with includes), in that priority order.
    """

    config: Config = Field(description="Configuration (YAML/env/CLI)")
    runtime: Runtime = Field(
        default_factory=Runtime,
        description="Runtime state (mutates during workflow execution)",
    )
    include: list[str] | None = Field(
        default=None,
        description="Additional YAML files to merge over the defaults",
    )

    model_config = SettingsConfigDict(
        yaml_file="ftbfs.yaml",
        env_file=".env",
        env_prefix="FTBFS_",
        env_nested_delimiter="__",
        cli_parse_args=True,
        cli_implicit_flags=True,
        arbitrary_types_allowed=True,
        extra='ignore',
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Environment beats YAML so FTBFS_CONFIG__... can override defaults
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlWithIncludesSettingsSource(settings_cls),
            file_secret_settings,
        )

    @model_validator(mode="after")
    def substitute_templates(self) -> "State":
        """Replace {config.*} and {module.attr} references in string
        and Path values throughout the state."""
        self._substitute_recursive(self)
        return self

    def _substitute_recursive(self, obj: Any) -> None:
        if isinstance(obj, BaseModel):
            for field_name in obj.__class__.model_fields:
                value = getattr(obj, field_name)
                new_value = self._substitute_value(value)
                if new_value is not value:
                    setattr(obj, field_name, new_value)
        elif isinstance(obj, dict):
            for key in obj:
                obj[key] = self._substitute_value(obj[key])
        elif isinstance(obj, list):
            for i in range(len(obj)):
                obj[i] = self._substitute_value(obj[i])

    def _substitute_value(self, value: Any) -> Any:
        if isinstance(value, str):
            return self._substitute_string(value)
        if isinstance(value, Path):
            return Path(self._substitute_string(str(value)))
        if isinstance(value, (BaseModel, dict, list)):
            self._substitute_recursive(value)
        return value

    def _substitute_string(self, value: str) -> str:
        """Resolve dotted references; unknown names are left as-is so
        runtime templates like {container} survive."""
        def replace_template(match):
            parts = match.group(1).split(".")
            if parts[0] in TEMPLATE_NAMESPACE:
                obj = TEMPLATE_NAMESPACE[parts[0]]
                parts = parts[1:]
            else:
                obj = self
            try:
                for part in parts:
                    obj = getattr(obj, part)
                if callable(obj):
                    obj = obj('ftbfs', appauthor=False)
                return str(obj)
            except (AttributeError, TypeError):
                return match.group(0)

        return re.sub(r'\{([a-z._]+)\}', replace_template, value)


__all__ = ["State", "Config", "BaseConfig", "BaseState"]
