# evmcl Completion Engine — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Module registry: maps a module name from a `load` command to a `ModuleDescriptor`.

Built-in modules resolve immediately. Remote modules are addressed by content,
`load ipfs:<cid> as tokens`, and are described by a YAML (or JSON) manifest
fetched through the content resolver:

    name: tokens
    description: Token helpers
    commands:
      - name: transfer
        args: [[DAI, USDC, WETH], []]
    helpers:
      - name: price
        nargs: 1

Each entry of a command's `args` lists the completion candidates of that
argument position.
"""
from __future__ import annotations

import asyncio
from typing import Any, Iterable

import aiohttp
import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from evmcl.bindings import BindingsManager
from evmcl.exceptions import ExternalCallError, UnknownModuleError
from evmcl.logger import logger
from evmcl.module import CommandDescriptor, HelperDescriptor, ModuleDescriptor
from evmcl.modules import build_aragonos_module, build_std_module
from evmcl.retry import RetryHandler, RetryPolicy

RETRYABLE_FETCH_ERRORS = (ExternalCallError, OSError, asyncio.TimeoutError, aiohttp.ClientError)

IPFS_PREFIX = "ipfs:"


class RawCommand(BaseModel):
    """Command entry of a remote module manifest."""

    name: str
    description: str = ""
    args: list[list[str]] = Field(default_factory=list)

    @field_validator("args", mode="before")
    @classmethod
    def validate_args(cls, value: Any) -> Any:
        if value is None:
            return []
        if not isinstance(value, list):
            raise ValueError("args must be a list of candidate lists.")
        return [[] if choices is None else choices for choices in value]


class RawHelper(BaseModel):
    """Helper entry of a remote module manifest."""

    name: str
    description: str = ""
    nargs: int = Field(default=0, ge=0)


class ModuleManifest(BaseModel):
    """Remote module manifest."""

    name: str
    description: str = ""
    commands: list[RawCommand] = Field(default_factory=list)
    helpers: list[RawHelper] = Field(default_factory=list)

    @field_validator("commands", "helpers", mode="before")
    @classmethod
    def expand_names(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [{"name": entry} if isinstance(entry, str) else entry for entry in value]
        return value


def _choices_completer(choices: list[list[str]]):
    def complete(index: int, args: list, bindings: BindingsManager) -> list[str]:
        if 0 <= index < len(choices):
            return list(choices[index])
        return []

    return complete


def build_module_from_manifest(text: str, source: str | None = None) -> ModuleDescriptor:
    """
    Build a module descriptor from manifest text.

    Raises:
        ExternalCallError: If the text is not a valid manifest.
    """
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as error:
        raise ExternalCallError(f"Invalid module manifest {source or ''}: {error}") from error
    if not isinstance(raw, dict):
        raise ExternalCallError(f"Module manifest {source or ''} must be a mapping")
    try:
        manifest = ModuleManifest.model_validate(raw)
    except ValidationError as error:
        raise ExternalCallError(f"Invalid module manifest {source or ''}: {error}") from error

    commands = [
        CommandDescriptor(
            name=command.name,
            description=command.description,
            arg_completions_fn=_choices_completer(command.args) if command.args else None,
        )
        for command in manifest.commands
    ]
    helpers = [
        HelperDescriptor(name=helper.name, description=helper.description, nargs=helper.nargs)
        for helper in manifest.helpers
    ]
    return ModuleDescriptor.build(
        manifest.name,
        commands=commands,
        helpers=helpers,
        description=manifest.description,
        source=source,
    )


class ModuleRegistry:
    """
    Resolves module names to descriptors.

    Attributes:
        retry_handler (RetryHandler): Retry logic applied to remote manifest fetches.
    """

    def __init__(
        self,
        modules: Iterable[ModuleDescriptor] | None = None,
        *,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._modules: dict[str, ModuleDescriptor] = {}
        self.retry_handler = RetryHandler(retry_policy, retry_on=RETRYABLE_FETCH_ERRORS)
        for module in modules or ():
            self.register(module)

    def register(self, module: ModuleDescriptor) -> None:
        if module.name in self._modules:
            raise ValueError(f"Module {module.name} already registered")
        self._modules[module.name] = module
        logger.debug("[registry] Registered module '%s'", module.name)

    def get(self, name: str) -> ModuleDescriptor | None:
        return self._modules.get(name)

    @property
    def names(self) -> list[str]:
        return list(self._modules)

    def __contains__(self, name: object) -> bool:
        return name in self._modules

    async def resolve(
        self, name: str, provider: Any = None, resolver: Any = None
    ) -> ModuleDescriptor:
        """
        Resolve `name` to a module descriptor.

        Raises:
            UnknownModuleError: If the name is neither registered nor a content address.
            ExternalCallError: If a remote manifest cannot be fetched or parsed.
        """
        module = self._modules.get(name)
        if module is not None:
            return module
        if not name.startswith(IPFS_PREFIX) or len(name) == len(IPFS_PREFIX):
            raise UnknownModuleError(name)

        cid = name[len(IPFS_PREFIX) :]
        if resolver is None:
            raise ExternalCallError(f"No content resolver available to load {name}")
        try:
            text = await self.retry_handler.call(name, resolver.fetch, cid)
        except ExternalCallError:
            raise
        except Exception as error:
            raise ExternalCallError(f"Could not fetch module {name}: {error}") from error
        logger.debug("[registry] Fetched manifest for '%s'", name)
        return build_module_from_manifest(text, source=name)


def default_registry(retry_policy: RetryPolicy | None = None) -> ModuleRegistry:
    """Registry with the built-in `std` and `aragonos` modules."""
    return ModuleRegistry(
        [build_std_module(), build_aragonos_module()], retry_policy=retry_policy
    )
