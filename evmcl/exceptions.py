# evmcl Completion Engine — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Defines all custom exception classes used by the evmcl completion engine.

Exceptions are grouped by how an analysis pass reacts to them:

- Structural errors signal misuse of the bindings store. They should never
  happen in normal operation and abort the current pass.
- Resolution errors are expected while a script is being typed. The node that
  raised them is skipped and the pass continues.
- External call errors wrap provider and content resolver failures, including
  timeouts. The node's eager bindings are treated as absent.

Exception Hierarchy:
- EvmclError
    ├── StructuralError
    ├── BindingNotFoundError
    ├── ResolutionError
    │   ├── UnknownModuleError
    │   ├── UnknownCommandError
    │   ├── UnknownAliasError
    │   ├── ModuleAlreadyLoadedError
    │   └── AliasAlreadyUsedError
    └── ExternalCallError
"""


class EvmclError(Exception):
    """Base exception for the evmcl completion engine."""


class StructuralError(EvmclError):
    """Exception raised when the bindings store is used out of contract."""


class BindingNotFoundError(EvmclError, KeyError):
    """Exception raised when a binding lookup finds nothing in any scope."""

    def __init__(self, space: object, name: str):
        self.space = space
        self.name = name
        super().__init__(f"Binding '{name}' not found in {space} space")

    def __str__(self) -> str:
        return str(self.args[0])


class ResolutionError(EvmclError):
    """Exception raised when a command node cannot be resolved."""


class UnknownModuleError(ResolutionError):
    """Exception raised when a module name or prefix is not loaded or not registered."""

    def __init__(self, name: str):
        self.module_name = name
        super().__init__(f"Module {name} not found")


class UnknownCommandError(ResolutionError):
    """Exception raised when a module does not define the requested command."""

    def __init__(self, module: str, command: str):
        self.module_name = module
        self.command_name = command
        super().__init__(f"Command {command} not found on module {module}")


class UnknownAliasError(ResolutionError):
    """Exception raised when an alias points at a module that is not loaded."""

    def __init__(self, alias: str, module: str):
        self.alias = alias
        self.module_name = module
        super().__init__(f"Alias {alias} refers to module {module}, which is not loaded")


class ModuleAlreadyLoadedError(ResolutionError):
    """Exception raised when the same module is loaded twice."""

    def __init__(self, name: str):
        self.module_name = name
        super().__init__(f"Module {name} already loaded")


class AliasAlreadyUsedError(ResolutionError):
    """Exception raised when a load reuses an alias that is already bound."""

    def __init__(self, alias: str):
        self.alias = alias
        super().__init__(f"Alias {alias} already used")


class ExternalCallError(EvmclError):
    """Exception raised when a provider or content resolver call fails or times out."""
