"""
MODEL GATEWAY MODULE
====================

Uniform access to the named LLM backends. One ModelGateway.chat() call is one
non-streaming chat completion against the provider the logical model name
resolves to; the reply is normalized into ModelResponse (text, tool calls with
their raw argument text, token usage) or returned as a Failure. Nothing raises
past chat().

REGISTRY:
  build_model_registry() turns the provider keys from config into an immutable
  ModelRegistry. fitcoach.main builds it once at startup and passes it in;
  tests pass their own registry and a fake client_factory.

PROVIDERS:
  - groq:             langchain_groq.ChatGroq
  - deepseek, gemini: langchain_openai.ChatOpenAI against the provider's
                      OpenAI-compatible base URL
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage

from config import DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE
from fitcoach.models import (
    AvailableModels,
    ChatMessage,
    ChatOptions,
    ErrorCode,
    ModelResponse,
    Result,
    ToolCall,
    ToolFunction,
    Usage,
    failure,
)

logger = logging.getLogger("fitcoach")

GROQ_BASE_URL = "https://api.groq.com/openai/v1"
DEEPSEEK_BASE_URL = "https://api.deepseek.com/"
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"


# ==============================================================================
# REGISTRY
# ==============================================================================

@dataclass(frozen=True)
class ModelConfig:
    name: str            # Provider model id.
    provider: str
    base_url: str
    api_key: str
    show_in_dropdown: bool = True
    description: str = ""


@dataclass(frozen=True)
class ModelRegistry:
    models: Dict[str, ModelConfig] = field(default_factory=dict)
    default_model: str = ""

    def resolve(self, model: Optional[str]) -> Optional[ModelConfig]:
        """Find a model by logical name or provider id; None selects the default."""
        key = model or self.default_model
        if key in self.models:
            return self.models[key]
        for config in self.models.values():
            if config.name == key:
                return config
        return None


def build_model_registry(
    groq_api_key: str = "",
    deepseek_api_key: str = "",
    gemini_api_key: str = "",
    default_model: str = "GPT OSS 120b",
) -> ModelRegistry:
    models = {
        "GPT OSS 120b": ModelConfig(
            name="openai/gpt-oss-120b",
            provider="groq",
            base_url=GROQ_BASE_URL,
            api_key=groq_api_key,
            description="OpenAI's open-weight 120B model on Groq. Strong reasoning, reliable tool use.",
        ),
        "Llama 3.3 Versatile": ModelConfig(
            name="llama-3.3-70b-versatile",
            provider="groq",
            base_url=GROQ_BASE_URL,
            api_key=groq_api_key,
            description="Meta Llama 3.3 70B on Groq. Balanced quality and speed.",
        ),
        "Llama 3.1 Instant": ModelConfig(
            name="llama-3.1-8b-instant",
            provider="groq",
            base_url=GROQ_BASE_URL,
            api_key=groq_api_key,
            description="Meta Llama 3.1 8B on Groq. Fastest replies, lighter answers.",
        ),
        "Llama Guard 4": ModelConfig(
            name="meta-llama/llama-guard-4-12b",
            provider="groq",
            base_url=GROQ_BASE_URL,
            api_key=groq_api_key,
            show_in_dropdown=False,
            description="Safety classifier, not a chat model.",
        ),
        "DeepSeek Chat": ModelConfig(
            name="deepseek-chat",
            provider="deepseek",
            base_url=DEEPSEEK_BASE_URL,
            api_key=deepseek_api_key,
            description="DeepSeek V3 chat model. Detailed, structured answers.",
        ),
        "Gemini 2.0 Flash": ModelConfig(
            name="gemini-2.0-flash",
            provider="gemini",
            base_url=GEMINI_BASE_URL,
            api_key=gemini_api_key,
            description="Google Gemini 2.0 Flash. Quick multimodal-grade model.",
        ),
    }
    return ModelRegistry(models=models, default_model=default_model)


# ==============================================================================
# CLIENT CONSTRUCTION / MESSAGE CONVERSION
# ==============================================================================

ClientFactory = Callable[[ModelConfig, float, int], BaseChatModel]


def default_client_factory(config: ModelConfig, temperature: float, max_tokens: int) -> BaseChatModel:
    """Build the LangChain chat model for one call."""
    if config.provider == "groq":
        from langchain_groq import ChatGroq

        return ChatGroq(
            model=config.name,
            api_key=config.api_key,
            temperature=temperature,
            max_tokens=max_tokens,
        )

    from langchain_openai import ChatOpenAI

    return ChatOpenAI(
        model=config.name,
        api_key=config.api_key,
        base_url=config.base_url,
        temperature=temperature,
        max_tokens=max_tokens,
    )


def to_langchain_messages(messages: List[ChatMessage]) -> List[BaseMessage]:
    converted: List[BaseMessage] = []
    for message in messages:
        if message.role == "system":
            converted.append(SystemMessage(content=message.content))
        elif message.role == "assistant":
            converted.append(AIMessage(content=message.content))
        elif message.role == "tool":
            converted.append(ToolMessage(content=message.content, tool_call_id=message.tool_call_id or ""))
        else:
            converted.append(HumanMessage(content=message.content))
    return converted


def _text_content(content: Any) -> str:
    # Some providers return a list of content parts instead of a string.
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(part.get("text", ""))
        return "".join(parts)
    return ""


def extract_tool_calls(reply: AIMessage) -> List[ToolCall]:
    """
    Normalize emitted tool calls to ToolCall(id, name, raw argument text).

    The provider's raw OpenAI-format calls are preferred because they keep the
    argument string exactly as the model wrote it (even when it is not valid
    JSON); parsed LangChain tool_calls are re-serialized otherwise.
    """
    raw_calls = (reply.additional_kwargs or {}).get("tool_calls") or []
    calls: List[ToolCall] = []

    if raw_calls:
        for index, raw in enumerate(raw_calls):
            if not isinstance(raw, dict):
                logger.warning("Skipping malformed tool call entry: %r", raw)
                continue
            function = raw.get("function")
            if not isinstance(function, dict):
                function = {}
            arguments = function.get("arguments")
            if not isinstance(arguments, str):
                arguments = json.dumps(arguments or {})
            calls.append(ToolCall(
                id=str(raw.get("id") or f"call_{index}"),
                function=ToolFunction(name=str(function.get("name") or ""), arguments=arguments),
            ))
        return calls

    for index, call in enumerate(reply.tool_calls or []):
        calls.append(ToolCall(
            id=call.get("id") or f"call_{index}",
            function=ToolFunction(name=call.get("name", ""), arguments=json.dumps(call.get("args") or {})),
        ))
    for index, call in enumerate(reply.invalid_tool_calls or [], start=len(calls)):
        calls.append(ToolCall(
            id=call.get("id") or f"call_{index}",
            function=ToolFunction(name=call.get("name") or "", arguments=call.get("args") or ""),
        ))
    return calls


def _usage(reply: AIMessage) -> Optional[Usage]:
    metadata = getattr(reply, "usage_metadata", None)
    if not metadata:
        return None
    return Usage(
        prompt_tokens=metadata.get("input_tokens", 0),
        completion_tokens=metadata.get("output_tokens", 0),
        total_tokens=metadata.get("total_tokens", 0),
    )


# ==============================================================================
# MODEL GATEWAY
# ==============================================================================

class ModelGateway:
    """
    chat(messages, options) -> Result[ModelResponse]

    Failure codes: MODEL_NOT_SUPPORTED (unknown name), API_KEY_MISSING,
    NO_RESPONSE (empty reply), MODEL_ERROR (any provider/transport exception,
    timeouts included, or a reply that cannot be normalized).
    """

    def __init__(self, registry: ModelRegistry, client_factory: ClientFactory = default_client_factory):
        self.registry = registry
        self.client_factory = client_factory

    def chat(self, messages: List[ChatMessage], options: Optional[ChatOptions] = None) -> Result[ModelResponse]:
        options = options or ChatOptions()
        model_name = options.model or self.registry.default_model
        config = self.registry.resolve(model_name)

        if config is None:
            return failure(f"Model {model_name} not supported", ErrorCode.MODEL_NOT_SUPPORTED)
        if not config.api_key:
            return failure(f"API key not configured for model {model_name}", ErrorCode.API_KEY_MISSING)

        temperature = DEFAULT_TEMPERATURE if options.temperature is None else options.temperature
        max_tokens = options.max_tokens or DEFAULT_MAX_TOKENS

        try:
            llm = self.client_factory(config, temperature, max_tokens)
            if options.tools:
                bind_kwargs = {}
                if options.tool_choice is not None:
                    bind_kwargs["tool_choice"] = options.tool_choice
                llm = llm.bind_tools(options.tools, **bind_kwargs)

            reply = llm.invoke(to_langchain_messages(messages))
        except Exception as e:
            logger.error("Model provider error (%s): %s", config.name, e)
            return failure("Model provider error", ErrorCode.MODEL_ERROR, str(e))

        if reply is None:
            return failure("No response from model", ErrorCode.NO_RESPONSE)

        try:
            content = _text_content(reply.content)
            tool_calls = extract_tool_calls(reply)
            usage = _usage(reply)
        except Exception as e:
            logger.error("Unreadable reply from %s: %s", config.name, e)
            return failure("Malformed model reply", ErrorCode.MODEL_ERROR, str(e))

        if not content.strip() and not tool_calls:
            return failure("No response from model", ErrorCode.NO_RESPONSE)

        logger.info(
            "Model %s replied (%s chars, %s tool calls%s)",
            config.name,
            len(content),
            len(tool_calls),
            f", {usage.total_tokens} tokens" if usage else "",
        )
        return ModelResponse(
            content=content,
            model=config.name,
            tool_calls=tool_calls or None,
            usage=usage,
        )

    def get_available_models(self) -> Result[AvailableModels]:
        """User-selectable models with an info blurb, plus the default."""
        try:
            selectable = {key: config for key, config in self.registry.models.items() if config.show_in_dropdown}
            names = list(selectable)
            default = self.registry.default_model if self.registry.default_model in selectable else (names[0] if names else "")
            info = {
                key: {
                    "id": config.name,
                    "provider": config.provider,
                    "description": config.description,
                    "available": bool(config.api_key),
                }
                for key, config in selectable.items()
            }
            return AvailableModels(models=names, default_model=default, model_info=info)
        except Exception as e:
            logger.error("Error getting available models: %s", e, exc_info=True)
            return failure("Failed to get available models", ErrorCode.MODELS_ERROR, str(e))
