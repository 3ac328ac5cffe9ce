"""LangChain agent integration for progressive skill disclosure.

DisclosureMiddleware runs a DisclosureSession for the latest user message
before each model call and appends the rendered bundle to the system prompt.
The engine itself never talks to a model; this adapter is the host side that
injects the bundle into the model-facing context.

Usage:
    from langchain.agents import create_agent
    from skill_disclosure.skills.disclosure.middleware import DisclosureMiddleware

    middleware = DisclosureMiddleware(handle, budget=8000)
    agent = create_agent(model=model, middleware=[middleware])
"""

import logging
import threading
from collections import OrderedDict
from typing import Any, Callable, Optional

from langchain.agents.middleware import AgentMiddleware
from langchain.agents.middleware.types import ModelRequest, ModelResponse
from langchain.tools import ToolRuntime, tool
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_core.runnables.config import ensure_config

from skill_disclosure.skills.disclosure.matcher import TriggerMatcher
from skill_disclosure.skills.disclosure.models import DisclosureBundle
from skill_disclosure.skills.disclosure.registry import RegistryHandle, SkillRegistry
from skill_disclosure.skills.disclosure.session import DisclosureSession
from skill_disclosure.utils.errors import SkillDisclosureError

logger = logging.getLogger(__name__)


DEFAULT_DISCLOSURE_PROMPT_TEMPLATE = """
## Relevant Skills

The following skill guidance was selected for the current task.

{bundle}

If a skill mentions a reference document that is not included above, load it
with the `load_skill_reference` tool.
"""


def latest_user_text(messages: list[BaseMessage]) -> str:
    """Text of the most recent human message, or "" if there is none."""
    for message in reversed(messages):
        if not isinstance(message, HumanMessage):
            continue
        content = message.content
        if isinstance(content, str):
            return content
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        return " ".join(parts)
    return ""


DEFAULT_THREAD_ID = "default"


def thread_id_from_config(config: Optional[dict[str, Any]]) -> str:
    """Conversation key from a runnable config's ``configurable.thread_id``."""
    thread_id = ((config or {}).get("configurable") or {}).get("thread_id")
    return str(thread_id) if thread_id is not None else DEFAULT_THREAD_ID


def create_load_reference_tool(middleware: "DisclosureMiddleware"):
    """Create a load_skill_reference tool bound to a middleware's sessions.

    Each call is served by the session of the conversation it runs in,
    identified by the ``thread_id`` in the tool's runtime config.

    Args:
        middleware: Middleware holding the per-conversation sessions

    Returns:
        A tool function that can be added to an agent
    """

    @tool
    def load_skill_reference(skill_id: str, reference_id: str, runtime: ToolRuntime) -> str:
        """Load a reference document named by a disclosed skill.

        Args:
            skill_id: The skill that owns the reference
            reference_id: The reference id (e.g. "references/forms.md")

        Returns:
            The reference content, or an explanation if it cannot be loaded
        """
        session = middleware.session_for(thread_id_from_config(runtime.config))
        if session is None:
            return "No skills have been disclosed yet."
        try:
            content = session.resolve_reference(skill_id, reference_id)
        except SkillDisclosureError as e:
            logger.warning(f"load_skill_reference failed: {e}")
            return f"Error loading reference: {e}"
        return f"## Reference: {skill_id}/{reference_id}\n\n{content}"

    return load_skill_reference


class DisclosureMiddleware(AgentMiddleware):
    """Middleware that discloses relevant skills to an agent per model call.

    Sessions are kept per conversation (``configurable.thread_id``), so the
    reference tool of one conversation never charges another one's budget.
    Only the most recent ``max_sessions`` conversations are remembered.

    Attributes:
        tools: The load_skill_reference tool for on-demand references
    """

    def __init__(
        self,
        registry: SkillRegistry | RegistryHandle,
        budget: int = 8000,
        matcher: Optional[TriggerMatcher] = None,
        timeout: Optional[float] = None,
        prompt_template: str = DEFAULT_DISCLOSURE_PROMPT_TEMPLATE,
        max_sessions: int = 256,
    ):
        """Initialize the disclosure middleware.

        Args:
            registry: A snapshot, or a handle whose current snapshot is used
                for each new session
            budget: Per-session capacity in size units
            matcher: Trigger matcher shared by sessions
            timeout: Per-fetch timeout in seconds
            prompt_template: Must contain a {bundle} placeholder
            max_sessions: Conversations whose latest session is kept
        """
        self.registry = registry
        self.budget = budget
        self.matcher = matcher or TriggerMatcher()
        self.timeout = timeout
        self.prompt_template = prompt_template
        self.max_sessions = max_sessions
        self._sessions: OrderedDict[str, DisclosureSession] = OrderedDict()
        self._lock = threading.Lock()
        self.tools = [create_load_reference_tool(self)]

    def _snapshot(self) -> SkillRegistry:
        if isinstance(self.registry, RegistryHandle):
            return self.registry.snapshot
        return self.registry

    def session_for(self, thread_id: Optional[str] = None) -> Optional[DisclosureSession]:
        """Latest session of a conversation, or None if it has not disclosed yet."""
        with self._lock:
            return self._sessions.get(thread_id or DEFAULT_THREAD_ID)

    def disclose(self, query: str, thread_id: Optional[str] = None) -> DisclosureBundle:
        """Run a fresh session for query and keep it for the conversation's reference lookups."""
        session = DisclosureSession(
            self._snapshot(),
            self.budget,
            matcher=self.matcher,
            timeout=self.timeout,
        )
        bundle = session.run(query)

        key = thread_id or DEFAULT_THREAD_ID
        with self._lock:
            self._sessions[key] = session
            self._sessions.move_to_end(key)
            while len(self._sessions) > self.max_sessions:
                self._sessions.popitem(last=False)
        return bundle

    def _build_prompt_section(self, bundle: DisclosureBundle) -> str:
        return self.prompt_template.format(bundle=bundle.render())

    def wrap_model_call(
        self,
        request: ModelRequest,
        handler: Callable[[ModelRequest], ModelResponse],
    ) -> ModelResponse:
        """Append the disclosure bundle for the latest user message to the system prompt.

        Args:
            request: The model request containing messages and config
            handler: The next handler in the middleware chain

        Returns:
            The model response from the handler
        """
        messages = list(request.messages)
        query = latest_user_text(messages)
        if not query:
            return handler(request)

        bundle = self.disclose(query, thread_id=thread_id_from_config(ensure_config()))
        if not bundle.entries:
            return handler(request)

        section = self._build_prompt_section(bundle)
        messages = inject_system_section(messages, section)
        logger.debug(f"Injected {len(bundle)} disclosure entries for skills {bundle.skill_ids()}")
        return handler(request.override(messages=messages))


def inject_system_section(messages: list[BaseMessage], section: str) -> list[BaseMessage]:
    """Append section to the first system message, or prepend a new one.

    Returns:
        A new message list; the input list is not modified
    """
    messages = list(messages)
    for i, message in enumerate(messages):
        if isinstance(message, SystemMessage):
            messages[i] = SystemMessage(content=f"{message.content}\n\n{section}")
            return messages
    messages.insert(0, SystemMessage(content=section))
    return messages
