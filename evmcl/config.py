# evmcl Completion Engine — (c) 2025 rtj.dev LLC — MIT Licensed
"""config.py
Configuration models and loader for the evmcl completion engine.

Example `evmcl.yaml`:

    eager_timeout: 1.5
    module_timeout: 4
    ipfs_gateway: https://ipfs.io/ipfs/
    logging_hooks: true
    retry_policy:
      enabled: true
      max_retries: 3
    modules:
      - my_project.evmcl_modules.build_tokens_module
"""
from __future__ import annotations

import importlib
from pathlib import Path
from typing import Any

import toml
import yaml
from pydantic import BaseModel, Field, field_validator

from evmcl.logger import logger
from evmcl.module import ModuleDescriptor
from evmcl.registry import ModuleRegistry, default_registry
from evmcl.resolvers import DEFAULT_IPFS_GATEWAY
from evmcl.retry import RetryPolicy
from evmcl.utils import is_coroutine


def import_object(dotted_path: str) -> Any:
    """Import an object from a dotted path like 'my.module.build_module'."""
    module_path, _, attr = dotted_path.rpartition(".")
    if not module_path:
        raise ValueError(f"Invalid import path: {dotted_path}")
    try:
        module = importlib.import_module(module_path)
    except ModuleNotFoundError as error:
        logger.error("Failed to import module '%s': %s", module_path, error)
        raise ValueError(f"Could not import '{dotted_path}': {error}") from error
    try:
        return getattr(module, attr)
    except AttributeError as error:
        logger.error("Module '%s' does not have attribute '%s': %s", module_path, attr, error)
        raise ValueError(f"Module '{module_path}' has no attribute '{attr}'") from error


def load_module_descriptor(dotted_path: str) -> ModuleDescriptor:
    """Import a `ModuleDescriptor`, or a factory returning one, from a dotted path."""
    target = import_object(dotted_path)
    if isinstance(target, ModuleDescriptor):
        return target
    if callable(target):
        if is_coroutine(target):
            raise ValueError(f"Module factory '{dotted_path}' must be synchronous")
        module = target()
        if isinstance(module, ModuleDescriptor):
            return module
    raise ValueError(f"'{dotted_path}' does not provide a ModuleDescriptor")


class EngineConfig(BaseModel):
    """
    Settings of a `CompletionEngine`.

    Attributes:
        eager_timeout (float): Upper bound of one eager evaluation in seconds.
        module_timeout (float): Upper bound of one module resolution in seconds.
        excluded_commands (list[str]): Commands never evaluated eagerly.
        default_module (str): Module implicitly loaded in every script.
        ipfs_gateway (str): Gateway used by the default content resolver.
        retry_policy (RetryPolicy): Retries of remote manifest fetches.
        logging_hooks (bool): Attach the debug logging hooks to the engine.
        modules (list[str]): Dotted paths of extra modules to register.
    """

    eager_timeout: float = Field(default=2.0, gt=0)
    module_timeout: float = Field(default=5.0, gt=0)
    excluded_commands: list[str] = Field(default_factory=lambda: ["load"])
    default_module: str = "std"
    ipfs_gateway: str = DEFAULT_IPFS_GATEWAY
    retry_policy: RetryPolicy = Field(default_factory=RetryPolicy)
    logging_hooks: bool = False
    modules: list[str] = Field(default_factory=list)

    @field_validator("retry_policy", mode="before")
    @classmethod
    def validate_retry_policy(cls, value: dict | RetryPolicy | None) -> RetryPolicy:
        if value is None:
            return RetryPolicy()
        if isinstance(value, RetryPolicy):
            return value
        if not isinstance(value, dict):
            raise ValueError("retry_policy must be a dictionary.")
        return RetryPolicy(**value)

    def build_registry(self) -> ModuleRegistry:
        registry = default_registry(retry_policy=self.retry_policy)
        for dotted_path in self.modules:
            registry.register(load_module_descriptor(dotted_path))
        return registry


def loader(file_path: Path | str) -> EngineConfig:
    """
    Load engine configuration from a YAML or TOML file.

    Args:
        file_path (Path | str): Path to the config file (YAML or TOML).

    Returns:
        EngineConfig: The validated configuration.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file format is unsupported or the document is not a mapping.
    """
    if isinstance(file_path, (str, Path)):
        path = Path(file_path)
    else:
        raise TypeError("file_path must be a string or Path object.")

    if not path.is_file():
        raise FileNotFoundError(f"No such config file: {file_path}")

    suffix = path.suffix
    with path.open("r", encoding="UTF-8") as config_file:
        if suffix in (".yaml", ".yml"):
            raw_config = yaml.safe_load(config_file)
        elif suffix == ".toml":
            raw_config = toml.load(config_file)
        else:
            raise ValueError(f"Unsupported config format: {suffix}")

    if raw_config is None:
        raw_config = {}
    if not isinstance(raw_config, dict):
        raise ValueError(
            "Configuration file must contain a mapping.\n"
            "Example:\n"
            "eager_timeout: 2\n"
            "retry_policy:\n"
            "  enabled: true"
        )

    logger.debug("Loaded configuration from %s", path)
    return EngineConfig.model_validate(raw_config)
