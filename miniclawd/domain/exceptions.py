"""
Exception hierarchy for the agent runtime.

Everything raised by the runtime inherits from MiniclawdError. Tool and
parse failures never leave the agent loop; backend failures are turned into
result strings by the loop; storage failures propagate to the caller.
"""


class MiniclawdError(Exception):
    """Base exception for all runtime errors"""


class StorageError(MiniclawdError):
    """Raised when a storage adapter cannot load or save a value"""


class StorageKeyNotFound(StorageError):
    """Raised by a storage adapter when the requested key does not exist"""


class BackendError(MiniclawdError):
    """Raised when the text-generation backend fails"""


class BackendTimeoutError(BackendError):
    """Raised when the text-generation backend does not answer in time"""


class ToolError(MiniclawdError):
    """Base exception for tool lookup and execution failures"""


class ToolNotFoundError(ToolError):
    """Raised when a tool name is not present in the registry"""


class ToolExecutionError(ToolError):
    """Raised when a tool fails while executing"""


class ToolValidationError(ToolExecutionError):
    """Raised when tool arguments do not match the tool's schema"""


class ToolTimeoutError(ToolExecutionError):
    """Raised when a tool exceeds the configured execution timeout"""
