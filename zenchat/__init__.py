"""zenchat: the tool-calling chat orchestrator behind a calm new-tab page."""

from .backends import ModelBackend, OpenAIBackend, RelayBackend, create_backend
from .compressor import ContextCompressor, estimate_tokens
from .config import Settings
from .errors import (
    InvalidTransitionError,
    ModelRequestError,
    RelayError,
    TurnInProgressError,
    UnknownToolError,
    ZenChatError,
)
from .executor import ToolExecutor
from .extractor import ExtractionIssue, ExtractionResult, extract_tool_calls
from .models import (
    Attachment,
    ContextBudget,
    Conversation,
    FetchUrlCall,
    Message,
    ModelParams,
    ModelRequest,
    Role,
    SearchResult,
    ToolCall,
    ToolStatus,
    TurnResult,
    TurnState,
    WebSearchCall,
)
from .orchestrator import Orchestrator, OrchestratorContext
from .presentation import PresentationSink, reveal
from .registry import ToolRegistry
from .relay import HttpRelay, NetworkRelay
from .tool import BaseTool
from .tools import FetchUrlTool, WebSearchTool

__all__ = [
    "Attachment",
    "BaseTool",
    "ContextBudget",
    "ContextCompressor",
    "Conversation",
    "ExtractionIssue",
    "ExtractionResult",
    "FetchUrlCall",
    "FetchUrlTool",
    "HttpRelay",
    "InvalidTransitionError",
    "Message",
    "ModelBackend",
    "ModelParams",
    "ModelRequest",
    "ModelRequestError",
    "NetworkRelay",
    "OpenAIBackend",
    "Orchestrator",
    "OrchestratorContext",
    "PresentationSink",
    "RelayBackend",
    "RelayError",
    "Role",
    "SearchResult",
    "Settings",
    "ToolCall",
    "ToolExecutor",
    "ToolRegistry",
    "ToolStatus",
    "TurnInProgressError",
    "TurnResult",
    "TurnState",
    "UnknownToolError",
    "WebSearchCall",
    "WebSearchTool",
    "ZenChatError",
    "create_backend",
    "estimate_tokens",
    "extract_tool_calls",
    "reveal",
]
