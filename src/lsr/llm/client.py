"""Unified LLM client via LiteLLM with Ollama auto-pull support.

Provider failures are normalized into TranslationError with a structured
ErrorKind, so callers never have to pattern-match on message text.
"""

from __future__ import annotations

import asyncio

from rich.console import Console

from lsr.core.config import LLMConfig
from lsr.core.errors import ErrorKind, TranslationError, looks_rate_limited

console = Console()

_checked_models: set[str] = set()


def _extract_ollama_model(provider: str) -> str | None:
    """Extract the Ollama model name from a LiteLLM provider string.

    Returns None if the provider is not an Ollama model.
    E.g. "ollama_chat/qwen3:8b" -> "qwen3:8b"
    """
    for prefix in ("ollama_chat/", "ollama/"):
        if provider.startswith(prefix):
            return provider[len(prefix) :]
    return None


def ensure_ollama_model(provider: str) -> None:
    """Pull the Ollama model if not already available locally.

    No-op if the provider is not an Ollama model or if ollama package
    is not installed.
    """
    model_name = _extract_ollama_model(provider)
    if model_name is None:
        return

    try:
        import ollama
    except ImportError:
        return

    try:
        available = {m.model for m in ollama.list().models}
    except Exception:
        return

    if model_name in available:
        return

    # Ollama stores models as "name:tag"; a bare name matches ":latest"
    if ":" not in model_name and f"{model_name}:latest" in available:
        return

    console.print(f"[bold]Pulling Ollama model:[/bold] {model_name}")
    try:
        ollama.pull(model_name)
        console.print(f"[green]Model ready:[/green] {model_name}")
    except Exception as e:
        console.print(f"[yellow]Failed to pull model {model_name}:[/yellow] {e}")


def check_credentials(config: LLMConfig) -> None:
    """Raise a CONFIGURATION TranslationError if the provider's API keys are missing."""
    if _extract_ollama_model(config.provider) is not None or config.api_base:
        return
    from litellm import validate_environment

    env = validate_environment(model=config.provider)
    if not env.get("keys_in_environment", True):
        missing = ", ".join(env.get("missing_keys", [])) or "API key"
        raise TranslationError(
            f"{missing} is not set for {config.provider}. Please configure it in your .env file.",
            kind=ErrorKind.CONFIGURATION,
        )


def classify_error(error: Exception) -> TranslationError:
    """Map a LiteLLM (or unknown) exception to a TranslationError."""
    if isinstance(error, TranslationError):
        return error

    import litellm

    message = str(error) or error.__class__.__name__
    if isinstance(error, litellm.RateLimitError):
        kind = ErrorKind.RATE_LIMIT
    elif isinstance(error, (litellm.AuthenticationError, litellm.NotFoundError)):
        kind = ErrorKind.CONFIGURATION
    elif isinstance(
        error,
        (
            litellm.BadRequestError,
            litellm.Timeout,
            litellm.APIConnectionError,
            litellm.ServiceUnavailableError,
        ),
    ):
        kind = ErrorKind.TRANSIENT
    elif looks_rate_limited(message):
        # Some providers only report quota exhaustion in the message
        kind = ErrorKind.RATE_LIMIT
    else:
        kind = ErrorKind.TRANSIENT
    return TranslationError(message, kind=kind)


def _extract_content(response: object) -> str:
    choices = getattr(response, "choices", None)
    if not choices:
        raise TranslationError("No translation candidates returned from API.")
    content = choices[0].message.content
    if not content:
        raise TranslationError("Translation text is empty")
    return content


async def complete(
    messages: list[dict[str, str]],
    config: LLMConfig,
    **kwargs: object,
) -> str:
    """Send a chat completion request via LiteLLM.

    Auto-pulls Ollama models if not available locally and checks for
    missing API keys before the request.

    Args:
        messages: Chat messages in OpenAI format.
        config: LLM configuration.
        **kwargs: Additional kwargs passed to litellm.acompletion.

    Returns:
        The assistant's response text.

    Raises:
        TranslationError: With kind RATE_LIMIT, CONFIGURATION or TRANSIENT.
    """
    from litellm import acompletion

    if config.provider not in _checked_models:
        await asyncio.to_thread(ensure_ollama_model, config.provider)
        _checked_models.add(config.provider)
    check_credentials(config)

    try:
        response = await acompletion(
            model=config.provider,
            messages=messages,
            api_base=config.api_base,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            timeout=config.timeout,
            **kwargs,
        )
    except Exception as e:
        raise classify_error(e) from e
    return _extract_content(response)
