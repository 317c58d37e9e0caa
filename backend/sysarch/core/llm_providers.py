"""
LLM providers for the SysArch advisor

Chooses a LangChain chat model from the configured key or provider name and
builds it lazily on first use.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, Optional, List, Tuple

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_openai import ChatOpenAI

logger = logging.getLogger(__name__)


class ProviderType(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"
    FALLBACK = "fallback"


# Checked in order; Anthropic keys also start with "sk-"
KEY_PATTERNS: List[Tuple[ProviderType, "re.Pattern[str]"]] = [
    (ProviderType.ANTHROPIC, re.compile(r"^sk-ant-[A-Za-z0-9\-_]{40,}$")),
    (ProviderType.OPENAI, re.compile(r"^sk-[A-Za-z0-9\-_]{40,}$")),
    (ProviderType.GOOGLE, re.compile(r"^AIza[A-Za-z0-9\-_]{35,}$")),
]

KEY_PREFIXES: Dict[ProviderType, str] = {
    ProviderType.OPENAI: "sk-",
    ProviderType.ANTHROPIC: "sk-ant-",
    ProviderType.GOOGLE: "AIza",
}

PROVIDER_ALIASES: Dict[str, ProviderType] = {
    "openai": ProviderType.OPENAI,
    "anthropic": ProviderType.ANTHROPIC,
    "claude": ProviderType.ANTHROPIC,
    "google": ProviderType.GOOGLE,
    "gemini": ProviderType.GOOGLE,
    "fallback": ProviderType.FALLBACK,
    "mock": ProviderType.FALLBACK,
}

DEFAULT_MODELS: Dict[ProviderType, str] = {
    ProviderType.OPENAI: "gpt-4o-mini",
    ProviderType.ANTHROPIC: "claude-3-5-haiku-latest",
    ProviderType.GOOGLE: "gemini-2.5-flash",
    ProviderType.FALLBACK: "mock-model",
}

FALLBACK_RESPONSES = [
    "Mock advisor: capacity tracks demand and no manual intervention is required.",
    "Mock advisor: fallback mode is active. Configure LLM_API_KEY for real analysis.",
]


@dataclass
class ProviderConfig:
    """Everything needed to build one chat model"""
    provider_type: ProviderType
    api_key: str
    model: str
    temperature: float = 0.2
    max_tokens: int = 512
    timeout: int = 30
    extra_params: Dict[str, Any] = field(default_factory=dict)

    @property
    def key_valid(self) -> bool:
        if self.provider_type == ProviderType.FALLBACK:
            return True
        prefix = KEY_PREFIXES[self.provider_type]
        return bool(self.api_key) and self.api_key.startswith(prefix) and len(self.api_key) > 20


def detect_provider(api_key: Optional[str]) -> ProviderType:
    """Guess the provider from the key format; unknown keys use the fallback"""
    if not api_key:
        return ProviderType.FALLBACK
    for provider_type, pattern in KEY_PATTERNS:
        if pattern.match(api_key):
            return provider_type
    return ProviderType.FALLBACK


def provider_from_name(name: str) -> ProviderType:
    return PROVIDER_ALIASES.get(name.lower(), ProviderType.FALLBACK)


def resolve_config(
    api_key: Optional[str],
    provider_name: Optional[str] = None,
    model: Optional[str] = None,
    **kwargs
) -> ProviderConfig:
    """
    Build a ProviderConfig from settings values.

    An explicit provider name wins over key detection, and a missing model
    falls back to the provider's default.
    """
    provider_type = provider_from_name(provider_name) if provider_name else detect_provider(api_key)
    return ProviderConfig(
        provider_type=provider_type,
        api_key=api_key or "",
        model=model or DEFAULT_MODELS[provider_type],
        temperature=kwargs.get("temperature", 0.2),
        max_tokens=kwargs.get("max_tokens", 512),
        timeout=kwargs.get("timeout", 30),
        extra_params=kwargs.get("extra_params", {})
    )


def build_chat_model(config: ProviderConfig) -> BaseChatModel:
    """Instantiate the LangChain chat model for a provider"""
    if config.provider_type == ProviderType.OPENAI:
        return ChatOpenAI(
            model=config.model,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            request_timeout=config.timeout,
            api_key=config.api_key,
            **config.extra_params
        )

    if config.provider_type == ProviderType.ANTHROPIC:
        try:
            from langchain_anthropic import ChatAnthropic
        except ImportError:
            raise ImportError("Anthropic support needs: pip install sysarch-simulator[anthropic]")
        return ChatAnthropic(
            model=config.model,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            timeout=config.timeout,
            api_key=config.api_key,
            **config.extra_params
        )

    if config.provider_type == ProviderType.GOOGLE:
        from langchain_google_genai import ChatGoogleGenerativeAI
        return ChatGoogleGenerativeAI(
            model=config.model,
            temperature=config.temperature,
            max_output_tokens=config.max_tokens,
            timeout=config.timeout,
            google_api_key=config.api_key,
            **config.extra_params
        )

    from langchain_core.language_models.fake_chat_models import FakeListChatModel
    return FakeListChatModel(responses=FALLBACK_RESPONSES)


class AdvisorLLMManager:
    """Holds the advisor's provider config and builds the chat model once"""

    def __init__(self, api_key: Optional[str], provider_name: Optional[str] = None,
                 model: Optional[str] = None, **config_kwargs):
        self.config = resolve_config(api_key, provider_name, model, **config_kwargs)
        self.detected_from_key = not provider_name
        self._llm: Optional[BaseChatModel] = None
        self._attempted = False

    async def get_llm_instance(self) -> Optional[BaseChatModel]:
        """Chat model, or None when the key is invalid or the build failed"""
        if self._attempted:
            return self._llm
        self._attempted = True

        provider = self.config.provider_type.value
        if not self.config.key_valid:
            logger.error(f"Invalid API key format for {provider}")
            return None
        try:
            self._llm = build_chat_model(self.config)
        except Exception as e:
            logger.error(f"Failed to initialize {provider} provider: {e}")
            return None

        logger.info(f"LLM provider initialized: {provider} with model {self.config.model}")
        return self._llm

    def get_provider_info(self) -> Dict[str, Any]:
        return {
            "provider": self.config.provider_type.value,
            "model": self.config.model,
            "initialized": self._llm is not None,
            "detected_from_key": self.detected_from_key,
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens
        }


def create_advisor_llm_manager(settings_obj) -> Optional[AdvisorLLMManager]:
    """Create LLM manager from application settings, or None when unconfigured"""
    if not settings_obj.advisor_configured:
        return None
    config = settings_obj.get_llm_config()
    return AdvisorLLMManager(
        api_key=config.pop("api_key"),
        provider_name=config.pop("provider_name"),
        model=config.pop("model"),
        **config
    )
