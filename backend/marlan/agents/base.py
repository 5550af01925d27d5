"""Base agent: LangChain tool-calling executor over a static tool set"""
import time
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from langchain.agents import AgentExecutor, create_tool_calling_agent
from langchain_core.prompts import ChatPromptTemplate, MessagesPlaceholder

from ..llm import get_llm
from ..prompts import build_system_prompt
from ..tools.registry import ToolContext, ToolKind, ToolRegistry
from ..tracing import trace_run_config
from ..utils.structured_logger import get_logger
from .types import AgentContext, AgentDescriptor, AgentResponse, create_agent_message

logger = get_logger(__name__)

APOLOGY_MESSAGE = "I encountered an error while processing your request. Please try again."
MAX_AGENT_STEPS = 5

# The system prompt is passed as a variable so braces inside it are never parsed as template fields
agent_prompt = ChatPromptTemplate.from_messages([
    ("system", "{system_prompt}"),
    ("human", "{input}"),
    MessagesPlaceholder(variable_name="agent_scratchpad"),
])

agent_prompt_no_tools = ChatPromptTemplate.from_messages([
    ("system", "{system_prompt}"),
    ("human", "{input}"),
])

ROLE_LABELS = {"user": "User", "system": "System"}


class BaseAgent:
    """
    Common behaviour of every agent

    Subclasses only declare their identity, capabilities and tool kinds.
    The system prompt comes from the prompt package unless the context
    carries a per-turn override in ``metadata["system_prompt"]``.
    """

    id: str = "default"
    name: str = "Agent"
    description: str = ""
    capabilities: List[str] = []
    icon: str = "bot"
    tools: List[ToolKind] = []

    def __init__(self, registry: Optional[ToolRegistry] = None, llm=None):
        self.registry = registry
        self._llm = llm
        self.system_prompt = build_system_prompt(self.id)

    @property
    def llm(self):
        # created lazily so importing agents never needs API keys
        if self._llm is None:
            self._llm = get_llm()
        return self._llm

    def descriptor(self) -> AgentDescriptor:
        return AgentDescriptor(
            id=self.id,
            name=self.name,
            description=self.description,
            capabilities=list(self.capabilities),
            icon=self.icon,
        )

    def format_prompt(self, context: AgentContext) -> str:
        """Conversation history as "User: ..." / "Assistant: ..." blocks"""
        return "\n\n".join(
            f"{ROLE_LABELS.get(msg.role, 'Assistant')}: {msg.content}" for msg in context.history
        )

    def build_tools(self, context: AgentContext) -> list:
        if self.registry is None or not self.tools:
            return []
        tool_context = ToolContext(
            user_id=context.metadata.get("user_id"),
            deep_search_enabled=bool(context.metadata.get("deep_search_enabled", False)),
        )
        return self.registry.tools_for(self.tools, tool_context)

    def _run_config(self, context: AgentContext) -> Dict[str, Any]:
        return trace_run_config(
            session_id=context.session_id,
            user_id=context.metadata.get("user_id"),
            tags=[f"agent:{self.id}"],
        )

    def _prompt_input(self, context: AgentContext) -> Dict[str, str]:
        return {
            "system_prompt": context.metadata.get("system_prompt") or self.system_prompt,
            "input": self.format_prompt(context),
        }

    def _executor(self, tools: list) -> AgentExecutor:
        agent = create_tool_calling_agent(self.llm, tools, agent_prompt)
        return AgentExecutor(
            agent=agent,
            tools=tools,
            max_iterations=MAX_AGENT_STEPS,
            return_intermediate_steps=True,
        )

    async def generate(self, context: AgentContext) -> Tuple[str, List[Dict[str, Any]]]:
        """Call the model for the current history; returns (text, tool_calls)"""
        tools = self.build_tools(context)
        prompt_input = self._prompt_input(context)
        run_config = self._run_config(context)

        if tools:
            result = await self._executor(tools).ainvoke(prompt_input, config=run_config)
            steps = result.get("intermediate_steps") or []
            tool_calls = [{"tool": action.tool, "input": action.tool_input} for action, _ in steps]
            return result.get("output", ""), tool_calls

        reply = await (agent_prompt_no_tools | self.llm).ainvoke(prompt_input, config=run_config)
        return reply.content, []

    async def process_message(self, message: str, context: AgentContext) -> AgentResponse:
        """
        Process a user message with this agent

        The user message and the reply are appended to context.history.
        Model or tool failures produce the apology message instead of raising.
        """
        log = logger.bind(agent=self.id, session=context.session_id)
        start = time.perf_counter()
        log.info("Processing message", message_length=len(message))

        context.history.append(create_agent_message("user", message))

        try:
            text, tool_calls = await self.generate(context)
        except Exception as e:
            elapsed = round((time.perf_counter() - start) * 1000)
            log.error("Error processing message", error=str(e), processing_time_ms=elapsed)
            error_message = create_agent_message("assistant", APOLOGY_MESSAGE, {"error": str(e)})
            context.history.append(error_message)
            return AgentResponse(message=error_message, processing_time_ms=elapsed)

        assistant_message = create_agent_message(
            "assistant", text, {"tool_calls": tool_calls} if tool_calls else None
        )
        context.history.append(assistant_message)

        elapsed = round((time.perf_counter() - start) * 1000)
        log.info(
            "Message processed",
            processing_time_ms=elapsed,
            tool_call_count=len(tool_calls),
            response_length=len(text),
        )
        return AgentResponse(
            message=assistant_message,
            tool_calls=tool_calls or None,
            processing_time_ms=elapsed,
        )

    async def stream_message(self, message: str, context: AgentContext) -> AsyncIterator[Dict[str, Any]]:
        """
        Stream a reply as events

        Yields ``tool_start``, ``tool_end`` and ``token`` events and finally one
        ``final`` event carrying the AgentResponse.
        """
        log = logger.bind(agent=self.id, session=context.session_id)
        start = time.perf_counter()
        context.history.append(create_agent_message("user", message))

        tokens: List[str] = []
        tool_calls: List[Dict[str, Any]] = []
        output: Optional[str] = None

        try:
            tools = self.build_tools(context)
            prompt_input = self._prompt_input(context)
            run_config = self._run_config(context)

            if tools:
                events = self._executor(tools).astream_events(prompt_input, config=run_config, version="v2")
                async for event in events:
                    kind = event["event"]
                    if kind == "on_chat_model_stream":
                        chunk = event.get("data", {}).get("chunk")
                        token = getattr(chunk, "content", "") if chunk is not None else ""
                        if isinstance(token, str) and token:
                            tokens.append(token)
                            yield {"type": "token", "content": token}
                    elif kind == "on_tool_start":
                        tool_calls.append({"tool": event.get("name"), "input": event.get("data", {}).get("input")})
                        yield {"type": "tool_start", "tool": event.get("name")}
                    elif kind == "on_tool_end":
                        result = event.get("data", {}).get("output", "")
                        yield {"type": "tool_end", "tool": event.get("name"), "result": str(result)[:200]}
                    elif kind == "on_chain_end" and event.get("name") == "AgentExecutor":
                        data_output = event.get("data", {}).get("output") or {}
                        if isinstance(data_output, dict):
                            output = data_output.get("output")
            else:
                async for chunk in (agent_prompt_no_tools | self.llm).astream(prompt_input, config=run_config):
                    token = chunk.content
                    if isinstance(token, str) and token:
                        tokens.append(token)
                        yield {"type": "token", "content": token}
        except Exception as e:
            elapsed = round((time.perf_counter() - start) * 1000)
            log.error("Error streaming message", error=str(e), processing_time_ms=elapsed)
            error_message = create_agent_message("assistant", APOLOGY_MESSAGE, {"error": str(e)})
            context.history.append(error_message)
            yield {"type": "final", "response": AgentResponse(message=error_message, processing_time_ms=elapsed)}
            return

        text = output if output is not None else "".join(tokens)
        assistant_message = create_agent_message(
            "assistant", text, {"tool_calls": tool_calls} if tool_calls else None
        )
        context.history.append(assistant_message)
        elapsed = round((time.perf_counter() - start) * 1000)
        log.info("Message streamed", processing_time_ms=elapsed, response_length=len(text))
        yield {
            "type": "final",
            "response": AgentResponse(
                message=assistant_message,
                tool_calls=tool_calls or None,
                processing_time_ms=elapsed,
            ),
        }
