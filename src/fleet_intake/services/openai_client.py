"""
OpenAI client factory for the candidate extraction service.

Azure OpenAI is used when its credentials are present, standard OpenAI
otherwise. Clients are built with automatic retries disabled: a failed or
timed-out extraction is reported to the reviewer, who retries manually.

Environment variables:
    AZURE_OPENAI_API_KEY      - Azure OpenAI API key
    AZURE_OPENAI_ENDPOINT     - Azure endpoint (or AZURE_OPENAI_BASE_URL)
    AZURE_OPENAI_API_VERSION  - API version (default: 2024-02-15-preview)
    AZURE_OPENAI_DEPLOYMENT   - Deployment name (default: gpt-4o-mini)
    OPENAI_API_KEY            - Standard OpenAI API key
    OPENAI_MODEL              - Standard OpenAI model (default: gpt-4o-mini)
"""

import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_API_VERSION = "2024-02-15-preview"
DEFAULT_MODEL = "gpt-4o-mini"


def _get_azure_endpoint() -> Optional[str]:
    endpoint = os.getenv("AZURE_OPENAI_ENDPOINT") or os.getenv("AZURE_OPENAI_BASE_URL")
    if not endpoint:
        return None

    endpoint = endpoint.rstrip("/")
    for suffix in ("/openai/v1", "/openai"):
        if endpoint.endswith(suffix):
            endpoint = endpoint[: -len(suffix)]
            break
    return endpoint


def is_azure_openai_configured() -> bool:
    return bool(os.getenv("AZURE_OPENAI_API_KEY") and _get_azure_endpoint())


def get_openai_client(api_key: Optional[str] = None, timeout: Optional[float] = None):
    """
    Create an OpenAI client, using Azure OpenAI if configured.

    Args:
        api_key: Optional API key override for standard OpenAI.
        timeout: Optional request timeout in seconds.

    Returns:
        OpenAI or AzureOpenAI client instance.

    Raises:
        ValueError: If no valid credentials are found.
    """
    azure_api_key = os.getenv("AZURE_OPENAI_API_KEY")
    azure_endpoint = _get_azure_endpoint()

    if azure_api_key and azure_endpoint:
        from openai import AzureOpenAI

        logger.debug(f"Creating AzureOpenAI client with endpoint: {azure_endpoint[:30]}...")
        return AzureOpenAI(
            api_key=azure_api_key,
            api_version=os.getenv("AZURE_OPENAI_API_VERSION", DEFAULT_API_VERSION),
            azure_endpoint=azure_endpoint,
            timeout=timeout,
            max_retries=0,
        )

    standard_api_key = api_key or os.getenv("OPENAI_API_KEY")
    if standard_api_key:
        from openai import OpenAI

        logger.debug("Creating standard OpenAI client")
        return OpenAI(api_key=standard_api_key, timeout=timeout, max_retries=0)

    raise ValueError(
        "No OpenAI credentials found. Set either:\n"
        "  - AZURE_OPENAI_API_KEY + AZURE_OPENAI_ENDPOINT (for Azure OpenAI)\n"
        "  - OPENAI_API_KEY (for standard OpenAI)"
    )


def get_default_model() -> str:
    """Deployment name for Azure OpenAI, model name otherwise."""
    if is_azure_openai_configured():
        return os.getenv("AZURE_OPENAI_DEPLOYMENT", DEFAULT_MODEL)
    return os.getenv("OPENAI_MODEL", DEFAULT_MODEL)
