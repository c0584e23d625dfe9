"""
AI Client - thin wrapper around the AI proxy.
The proxy forwards {"input", "mode"} to an OpenAI Responses-style endpoint;
mode 'research' enables web search on the proxy side.
"""

import json
import logging
from typing import Any, Dict

import requests

from outreach.config import config

logger = logging.getLogger(__name__)

MODE_CHOICES = ['default', 'research']


class AIClientError(RuntimeError):
    """The AI proxy could not be reached or answered in an unexpected format."""


def extract_text(result: Dict[str, Any]) -> str:
    """
    Pull the generated text out of a Responses-style payload:
    output[0].content[0].text, then output_text, then the raw JSON.
    """
    try:
        return result['output'][0]['content'][0]['text']
    except (KeyError, IndexError, TypeError):
        pass
    if isinstance(result, dict) and result.get('output_text'):
        return result['output_text']
    return json.dumps(result, indent=2)


def call_ai(prompt: str, mode: str = 'default') -> str:
    """
    Send a prompt to the AI proxy. Returns generated text.

    Args:
        prompt: Free-form prompt text, passed through unchanged
        mode: 'default' or 'research'
    """
    if mode not in MODE_CHOICES:
        raise AIClientError(f"Unknown AI mode '{mode}'. Choose from: {', '.join(MODE_CHOICES)}")
    if not config.AI_PROXY_URL:
        raise AIClientError("OUTREACH_AI_PROXY_URL not set in environment")

    payload = {"input": prompt, "mode": mode}

    try:
        logger.debug(f"Calling AI proxy in {mode} mode")
        response = requests.post(config.AI_PROXY_URL, json=payload, timeout=config.HTTP_TIMEOUT)
        response.raise_for_status()
        result = response.json()
    except requests.exceptions.RequestException as e:
        logger.error(f"AI proxy error: {e}")
        raise AIClientError(f"Failed to call AI proxy: {e}")
    except ValueError as e:
        logger.error(f"AI proxy returned invalid JSON: {e}")
        raise AIClientError(f"Unexpected AI proxy response format: {e}")

    return extract_text(result)
