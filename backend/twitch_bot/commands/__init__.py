"""Custom command management and runtime."""

from .engine import CommandManagementEngine, CommandRegistry, FeedbackSink
from .handlers import HANDLERS, SUB_COMMANDS, Operation, Outcome, RegistrySnapshot
from .parsing import ParsedTrigger, parse_trigger
from .permissions import INVALID, normalize_permission
from .runtime import CustomCommandRuntime, find_matching_command

__all__ = [
    "CommandManagementEngine",
    "CommandRegistry",
    "CustomCommandRuntime",
    "FeedbackSink",
    "HANDLERS",
    "INVALID",
    "Operation",
    "Outcome",
    "ParsedTrigger",
    "RegistrySnapshot",
    "SUB_COMMANDS",
    "find_matching_command",
    "normalize_permission",
    "parse_trigger",
]
