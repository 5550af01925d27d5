"""LLM initialisation"""
from langchain_deepseek import ChatDeepSeek
from langchain_openai import ChatOpenAI

from .config import config
from .utils.structured_logger import get_logger

logger = get_logger(__name__)


def get_llm(provider: str = None, temperature: float = None, streaming: bool = True):
    """
    Get a chat model instance

    Strategy:
    1. An explicit provider argument wins
    2. Otherwise config.LLM_PROVIDER decides
    3. "deepseek" uses ChatDeepSeek, anything else ChatOpenAI

    Args:
        provider: "openai" or "deepseek"
        temperature: Sampling temperature (defaults to config.LLM_TEMPERATURE)
        streaming: Enable token streaming

    Returns:
        LangChain chat model
    """
    provider = (provider or config.LLM_PROVIDER).lower()
    temperature = config.LLM_TEMPERATURE if temperature is None else temperature

    if provider == "deepseek":
        logger.debug("Using DeepSeek model", model=config.DEEPSEEK_MODEL)
        return ChatDeepSeek(
            model=config.DEEPSEEK_MODEL,
            temperature=temperature,
            max_tokens=config.LLM_MAX_TOKENS,
            api_key=config.DEEPSEEK_API_KEY,
            streaming=streaming,
        )

    logger.debug("Using OpenAI model", model=config.OPENAI_MODEL)
    return ChatOpenAI(
        model=config.OPENAI_MODEL,
        temperature=temperature,
        max_tokens=config.LLM_MAX_TOKENS,
        api_key=config.OPENAI_API_KEY,
        streaming=streaming,
    )
