"""
Secondary agent stream.

Every dispatch also runs the declared functions through a LangChain
tool-calling runnable. Its output is drained and discarded: nothing from this
path reaches the caller, and a failure while draining is only logged.
"""

import asyncio
import logging
from typing import Any, Callable, Protocol, Sequence

from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    FunctionMessage,
    HumanMessage,
    SystemMessage,
)
from langchain_core.prompts import ChatPromptTemplate, MessagesPlaceholder
from langchain_core.runnables import RunnableLambda
from langchain_core.tools import BaseTool

from chat_relay.config import AGENT_SYSTEM_PROMPT, AGENT_TEMPERATURE, Message
from chat_relay.utils import consume_stream, run_async_fn_without_blocking

logger = logging.getLogger(__name__)


class AgentRunnable(Protocol):
    def astream(self, input: Any, **kwargs: Any) -> Any:
        ...


AgentFactory = Callable[[list[BaseTool]], AgentRunnable]


def build_agent_prompt() -> ChatPromptTemplate:
    """Same shape as the public openai-functions-agent hub prompt."""
    return ChatPromptTemplate.from_messages([
        ("system", AGENT_SYSTEM_PROMPT),
        MessagesPlaceholder("chat_history", optional=True),
        ("human", "{input}"),
        MessagesPlaceholder("agent_scratchpad", optional=True),
    ])


def default_agent_factory(tools: list[BaseTool]) -> AgentRunnable:
    """Prompt piped into a streaming ChatOpenAI with the tools bound."""
    from langchain_openai import ChatOpenAI

    llm = ChatOpenAI(streaming=True, temperature=AGENT_TEMPERATURE)
    if tools:
        return build_agent_prompt() | llm.bind_tools(tools)
    return build_agent_prompt() | llm


def null_agent_factory(tools: list[BaseTool]) -> AgentRunnable:
    """Agent that does nothing; for callers that don't want the extra request."""
    return RunnableLambda(lambda _: None)


def to_langchain_message(message: Message) -> BaseMessage:
    text = message.get_text()
    if message.role == "system":
        return SystemMessage(content=text)
    if message.role == "assistant":
        return AIMessage(content=text)
    if message.role == "function":
        return FunctionMessage(content=text, name=message.name or "")
    return HumanMessage(content=text)


def build_agent_inputs(messages: Sequence[Message]) -> dict:
    """Last message becomes the input; everything before it is history."""
    if not messages:
        return {"input": "", "chat_history": []}
    return {
        "input": messages[-1].get_text(),
        "chat_history": [to_langchain_message(m) for m in messages[:-1]],
    }


async def drain_agent_stream(runnable: AgentRunnable, inputs: dict) -> None:
    try:
        await consume_stream(runnable.astream(inputs))
    except Exception as e:
        logger.warning(f"Agent stream failed (output discarded anyway): {e}", exc_info=True)


def start_agent_stream(runnable: AgentRunnable, inputs: dict) -> "asyncio.Task[None]":
    """Kick off the drain in the background and return its task."""
    return run_async_fn_without_blocking(drain_agent_stream, runnable, inputs)
